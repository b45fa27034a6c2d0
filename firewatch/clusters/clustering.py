"""
Fire Clustering Module

Groups incident reports into clusters with a single greedy pass whose distance
threshold shrinks as the viewport zooms in.

Distances are Euclidean in (lng, lat) degree space rather than geodesic. This
is only meaningful at city-scale zoom levels, which is where the map is used.
"""

import math
from typing import List

import numpy as np
from scipy.spatial.distance import cdist

from ..config import (
    DEFAULT_BASE_UNIT,
    DEFAULT_MAX_ZOOM,
    DEFAULT_MIN_ZOOM,
    DEFAULT_REFERENCE_ZOOM,
)
from ..data.models import ClusterCenter, Snapshot


def clamp_zoom(
    zoom: float, min_zoom: float = DEFAULT_MIN_ZOOM, max_zoom: float = DEFAULT_MAX_ZOOM
) -> float:
    """Clamp a zoom level into the supported range; non-finite values map to min_zoom."""
    try:
        zoom = float(zoom)
    except (TypeError, ValueError):
        return min_zoom
    if not math.isfinite(zoom):
        return min_zoom
    return min(max(zoom, min_zoom), max_zoom)


def clustering_threshold(
    zoom: float,
    base_unit: float = DEFAULT_BASE_UNIT,
    reference_zoom: float = DEFAULT_REFERENCE_ZOOM,
    min_zoom: float = DEFAULT_MIN_ZOOM,
    max_zoom: float = DEFAULT_MAX_ZOOM,
) -> float:
    """
    Distance threshold in degrees for a zoom level.

    The threshold halves with every zoom level above reference_zoom, so higher
    zoom gives tighter, more granular clusters.

    Args:
        zoom: Viewport zoom level
        base_unit: Threshold in degrees at reference_zoom
        reference_zoom: Zoom level where the threshold equals base_unit
        min_zoom: Lower clamp for zoom
        max_zoom: Upper clamp for zoom

    Returns:
        float: Positive threshold in degrees
    """
    zoom = clamp_zoom(zoom, min_zoom, max_zoom)
    return base_unit / math.pow(2.0, zoom - reference_zoom)


class ProximityClusterer:
    """Zoom-sensitive greedy clustering of a Snapshot."""

    def __init__(
        self,
        base_unit: float = DEFAULT_BASE_UNIT,
        reference_zoom: float = DEFAULT_REFERENCE_ZOOM,
        min_zoom: float = DEFAULT_MIN_ZOOM,
        max_zoom: float = DEFAULT_MAX_ZOOM,
    ):
        self.base_unit = base_unit
        self.reference_zoom = reference_zoom
        self.min_zoom = min_zoom
        self.max_zoom = max_zoom

    @classmethod
    def from_config(cls, config) -> "ProximityClusterer":
        return cls(
            base_unit=config.base_unit,
            reference_zoom=config.reference_zoom,
            min_zoom=config.min_zoom,
            max_zoom=config.max_zoom,
        )

    def threshold(self, zoom: float) -> float:
        return clustering_threshold(
            zoom, self.base_unit, self.reference_zoom, self.min_zoom, self.max_zoom
        )

    def cluster(self, snapshot: Snapshot, zoom: float) -> List[ClusterCenter]:
        """
        Partition a Snapshot into ClusterCenters.

        Incidents are processed in snapshot order. Each one joins the first
        existing center (in creation order) whose running centroid lies within
        the threshold, otherwise it opens a new center.

        Args:
            snapshot: Incident snapshot (or any sequence of IncidentRecords)
            zoom: Viewport zoom level

        Returns:
            list: ClusterCenters in creation order
        """
        records = list(snapshot)
        if not records:
            return []

        threshold = self.threshold(zoom)
        centers: List[ClusterCenter] = []
        # Centroids kept alongside the centers for vectorized distance checks
        centroids = np.empty((len(records), 2), dtype=float)

        for record in records:
            point = np.array([record.coordinates], dtype=float)

            if centers:
                distances = cdist(point, centroids[: len(centers)])[0]
                within = np.flatnonzero(distances <= threshold)
                if within.size:
                    idx = int(within[0])
                    centers[idx].add(record)
                    centroids[idx] = centers[idx].centroid
                    continue

            centroids[len(centers)] = record.coordinates
            centers.append(ClusterCenter.open(record))

        return centers
