"""
Incident Data Package

Incident records, snapshots and cluster value types, plus the clients that
poll the external document store and the store that holds the latest snapshot.
"""

from .models import (
    AddCluster,
    Cluster,
    ClusterCenter,
    Geofence,
    IncidentRecord,
    LocationEnrichment,
    NewsArticle,
    RemoveCluster,
    Snapshot,
    UpdateCluster,
)
from .incident_collect import (
    FirestoreIncidentSource,
    JsonFileIncidentSource,
    SourceError,
    StaticIncidentSource,
)
from .incident_store import IncidentStore, normalize_documents

__all__ = [
    "AddCluster",
    "Cluster",
    "ClusterCenter",
    "Geofence",
    "IncidentRecord",
    "LocationEnrichment",
    "NewsArticle",
    "RemoveCluster",
    "Snapshot",
    "UpdateCluster",
    "FirestoreIncidentSource",
    "JsonFileIncidentSource",
    "SourceError",
    "StaticIncidentSource",
    "IncidentStore",
    "normalize_documents",
]
