"""
Clustering Package

Zoom-sensitive proximity clustering of incidents, geofence construction and
GeoJSON export of the resulting clusters.
"""

from .clustering import ProximityClusterer, clamp_zoom, clustering_threshold
from .geofence import GeofenceBuilder, to_local_km
from .export_geojson import (
    clusters_to_feature_collection,
    create_cluster_center_feature,
    create_geofence_feature,
    save_geojson,
)

__all__ = [
    "ProximityClusterer",
    "clamp_zoom",
    "clustering_threshold",
    "GeofenceBuilder",
    "to_local_km",
    "clusters_to_feature_collection",
    "create_cluster_center_feature",
    "create_geofence_feature",
    "save_geojson",
]
