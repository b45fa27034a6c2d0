"""
Geofence Builder

Derives the polygon that bounds a cluster: a fixed-radius circle for a single
incident, or the convex hull of all members buffered outward by the same
radius.

Geometry is computed on a flat plane in kilometres around the cluster centroid
(111 km per degree of latitude, 111 * cos(lat) km per degree of longitude).
This is an approximation for city-scale clusters, not a geodesic buffer.
"""

import math
from typing import List, Sequence, Tuple

import numpy as np
from shapely.errors import GEOSException
from shapely.geometry import MultiPoint, Polygon
from shapely.geometry.polygon import orient

from ..config import DEFAULT_CIRCLE_RADIUS_KM, DEFAULT_CIRCLE_STEPS, MIN_CIRCLE_STEPS
from ..data.models import ClusterCenter, Coordinate, Geofence

KM_PER_DEG_LAT = 111.0
MIN_HULL_AREA_KM2 = 1e-9


def km_per_degree(lat0: float) -> Tuple[float, float]:
    """Kilometres per degree of (longitude, latitude) at latitude lat0."""
    cos_lat = max(abs(math.cos(math.radians(lat0))), 1e-6)
    return KM_PER_DEG_LAT * cos_lat, KM_PER_DEG_LAT


def to_local_km(coords: Sequence[Coordinate], origin: Coordinate) -> np.ndarray:
    """Project (lng, lat) pairs onto a km plane centred on origin."""
    km_lon, km_lat = km_per_degree(origin[1])
    pts = np.asarray(coords, dtype=float).reshape(-1, 2)
    return np.column_stack(
        ((pts[:, 0] - origin[0]) * km_lon, (pts[:, 1] - origin[1]) * km_lat)
    )


def from_local_km(xy, origin: Coordinate) -> List[Coordinate]:
    km_lon, km_lat = km_per_degree(origin[1])
    pts = np.asarray(xy, dtype=float).reshape(-1, 2)
    lngs = origin[0] + pts[:, 0] / km_lon
    lats = origin[1] + pts[:, 1] / km_lat
    return [(float(lng), float(lat)) for lng, lat in zip(lngs, lats)]


class GeofenceBuilder:
    """Builds circle or buffered-hull geofences for cluster centers."""

    def __init__(
        self,
        radius_km: float = DEFAULT_CIRCLE_RADIUS_KM,
        steps: int = DEFAULT_CIRCLE_STEPS,
        verbose: bool = False,
    ):
        if steps < MIN_CIRCLE_STEPS:
            raise ValueError(f"steps must be at least {MIN_CIRCLE_STEPS}, got {steps}")
        if radius_km <= 0:
            raise ValueError(f"radius_km must be positive, got {radius_km}")
        self.radius_km = radius_km
        self.steps = steps
        self.verbose = verbose

    @classmethod
    def from_config(cls, config) -> "GeofenceBuilder":
        return cls(
            radius_km=config.circle_radius_km,
            steps=config.circle_steps,
            verbose=config.verbose,
        )

    @property
    def quad_segs(self) -> int:
        # shapely resolution is per quarter circle
        return max(self.steps // 4, 1)

    def circle(self, center: Coordinate) -> Geofence:
        """Circle of radius_km around center, approximated with `steps` vertices."""
        angles = np.linspace(0.0, 2.0 * math.pi, self.steps, endpoint=False)
        xy = np.column_stack((np.cos(angles), np.sin(angles))) * self.radius_km
        ring = from_local_km(xy, center)
        ring.append(ring[0])
        return Geofence(ring=tuple(ring), kind="circle")

    def build_geofence(self, cluster: ClusterCenter) -> Geofence:
        """
        Build the geofence for one cluster.

        Singletons get a circle. Multi-point clusters get a buffered convex
        hull, or a circle around the centroid when the hull is degenerate
        (collinear or coincident members) or geometry computation fails.

        Args:
            cluster: ClusterCenter with at least one member

        Returns:
            Geofence: Closed ring in (lng, lat) order; never raises for
            geometry problems
        """
        if cluster.size <= 1:
            return self.circle(cluster.centroid)

        try:
            return self._buffered_hull(cluster)
        except (GEOSException, ValueError, ZeroDivisionError, FloatingPointError) as e:
            print(
                f"[WARNING] Hull geofence failed for {cluster.size} incidents "
                f"near {cluster.centroid}: {e} - using circle"
            )
            return self.circle(cluster.centroid)

    def _buffered_hull(self, cluster: ClusterCenter) -> Geofence:
        origin = cluster.centroid
        local = to_local_km([r.coordinates for r in cluster.members], origin)

        hull = MultiPoint([tuple(p) for p in local]).convex_hull
        if hull.geom_type != "Polygon" or hull.area <= MIN_HULL_AREA_KM2:
            if self.verbose:
                print(f"   Degenerate hull ({hull.geom_type}) for {cluster.size} incidents - using circle")
            return self.circle(origin)

        buffered = hull.buffer(self.radius_km, quad_segs=self.quad_segs)
        if buffered.is_empty or buffered.geom_type != "Polygon":
            return self.circle(origin)

        buffered = orient(buffered, sign=1.0)
        ring = from_local_km(list(buffered.exterior.coords), origin)
        ring[-1] = ring[0]

        if not Polygon(ring).is_valid:
            print(f"[WARNING] Invalid hull geofence near {origin} - using circle")
            return self.circle(origin)

        return Geofence(ring=tuple(ring), kind="hull")
