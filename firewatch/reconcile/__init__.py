"""
Reconciliation Package

Scheduling of cluster recomputation and projection of cluster changes into
renderer operations.
"""

from .projector import (
    ClusterMarkerProjector,
    assign_cluster_ids,
    counter_ids,
    membership_overlap,
    playback_target,
)
from .scheduler import IDLE, RUNNING, SCHEDULED, ReconciliationScheduler

__all__ = [
    "ClusterMarkerProjector",
    "assign_cluster_ids",
    "counter_ids",
    "membership_overlap",
    "playback_target",
    "IDLE",
    "RUNNING",
    "SCHEDULED",
    "ReconciliationScheduler",
]
