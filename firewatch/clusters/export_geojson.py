"""
GeoJSON Export Helper Module

Converts clusters into GeoJSON features for the external map renderer: one
polygon per geofence and one point per cluster center.
"""

import json
from typing import Iterable, List

from ..data.models import Cluster


def create_cluster_center_feature(cluster: Cluster) -> dict:
    """
    Create a point feature for a cluster center.

    Args:
        cluster (Cluster): Cluster to describe

    Returns:
        dict: GeoJSON feature with point geometry
    """
    lng, lat = cluster.center
    return {
        "type": "Feature",
        "geometry": {"type": "Point", "coordinates": [float(lng), float(lat)]},
        "properties": {
            "cluster_id": cluster.cluster_id,
            "feature_type": "cluster_center",
            "count": cluster.size,
            "has_live": cluster.has_live,
            "incident_ids": [record.id for record in cluster.members],
        },
    }


def create_geofence_feature(cluster: Cluster) -> dict:
    """
    Create a polygon feature for a cluster's geofence.

    Args:
        cluster (Cluster): Cluster to describe

    Returns:
        dict: GeoJSON feature with polygon geometry
    """
    return {
        "type": "Feature",
        "geometry": cluster.geofence.to_geojson(),
        "properties": {
            "cluster_id": cluster.cluster_id,
            "feature_type": "geofence",
            "geofence_kind": cluster.geofence.kind,
        },
    }


def create_geojson_featurecollection(features: List[dict]) -> dict:
    return {"type": "FeatureCollection", "features": features}


def clusters_to_feature_collection(clusters: Iterable[Cluster]) -> dict:
    """Geofence polygon followed by center point, per cluster, in cluster order."""
    features = []
    for cluster in clusters:
        features.append(create_geofence_feature(cluster))
        features.append(create_cluster_center_feature(cluster))
    return create_geojson_featurecollection(features)


def save_geojson(geojson: dict, filepath: str):
    """
    Save GeoJSON to file.

    Args:
        geojson (dict): GeoJSON object
        filepath (str): Output file path
    """
    with open(filepath, "w") as f:
        json.dump(geojson, f, indent=2)
