import numpy as np
import pytest
from shapely.errors import GEOSException
from shapely.geometry import Point, Polygon

from firewatch.clusters.clustering import ProximityClusterer
from firewatch.clusters.geofence import GeofenceBuilder, to_local_km
from firewatch.data.models import ClusterCenter


def _center(make_record, points):
    center = ClusterCenter.open(make_record(0, *points[0]))
    for i, point in enumerate(points[1:], start=1):
        center.add(make_record(i, *point))
    return center


def _radii_km(geofence, origin):
    local = to_local_km(geofence.ring, origin)
    return np.hypot(local[:, 0], local[:, 1])


def test_singleton_circle_contains_point_and_respects_radius(make_record):
    builder = GeofenceBuilder(radius_km=0.2, steps=64)
    center = _center(make_record, [(-123.1207, 49.2827)])

    geofence = builder.build_geofence(center)

    assert geofence.kind == "circle"
    assert geofence.ring[0] == geofence.ring[-1]
    assert geofence.vertex_count == 64
    assert Polygon(geofence.ring).contains(Point(-123.1207, 49.2827))
    radii = _radii_km(geofence, center.centroid)
    assert np.all(radii <= 0.2 * (1 + 1e-9))
    assert np.all(radii >= 0.2 * (1 - 1e-9))


def test_circle_polygon_is_valid_and_counter_clockwise(make_record):
    geofence = GeofenceBuilder().build_geofence(_center(make_record, [(10.0, 45.0)]))
    polygon = Polygon(geofence.ring)
    assert polygon.is_valid
    assert polygon.exterior.is_ccw


def test_collinear_members_fall_back_to_centroid_circle(make_record):
    points = [(-123.10, 49.28), (-123.101, 49.281), (-123.102, 49.282)]
    center = _center(make_record, points)

    geofence = GeofenceBuilder(radius_km=0.2).build_geofence(center)

    assert geofence.kind == "circle"
    radii = _radii_km(geofence, center.centroid)
    assert radii == pytest.approx(np.full(len(radii), 0.2))


def test_coincident_members_fall_back_to_circle(make_record):
    center = _center(make_record, [(-123.1, 49.28)] * 3)
    assert GeofenceBuilder().build_geofence(center).kind == "circle"


def test_multi_point_cluster_gets_buffered_hull(make_record):
    points = [(-123.100, 49.280), (-123.098, 49.280), (-123.099, 49.2815)]
    center = _center(make_record, points)

    geofence = GeofenceBuilder(radius_km=0.2, steps=64).build_geofence(center)
    polygon = Polygon(geofence.ring)

    assert geofence.kind == "hull"
    assert geofence.ring[0] == geofence.ring[-1]
    assert polygon.is_valid
    assert all(polygon.contains(Point(p)) for p in points)
    # buffer reaches roughly one radius beyond the hull
    local = to_local_km(geofence.ring, center.centroid)
    hull_local = to_local_km(points, center.centroid)
    reach = np.max(np.hypot(local[:, 0], local[:, 1]))
    spread = np.max(np.hypot(hull_local[:, 0], hull_local[:, 1]))
    assert spread + 0.19 < reach <= spread + 0.2 + 1e-6


def test_geometry_failure_degrades_to_circle(make_record, monkeypatch):
    builder = GeofenceBuilder()
    center = _center(make_record, [(-123.100, 49.280), (-123.098, 49.280), (-123.099, 49.2815)])

    def broken(cluster):
        raise GEOSException("TopologyException: side location conflict")

    monkeypatch.setattr(builder, "_buffered_hull", broken)
    geofence = builder.build_geofence(center)

    assert geofence.kind == "circle"
    assert geofence == builder.circle(center.centroid)


def test_builder_is_deterministic(make_record):
    points = [(-123.100, 49.280), (-123.098, 49.280), (-123.099, 49.2815)]
    builder = GeofenceBuilder()
    assert builder.build_geofence(_center(make_record, points)) == builder.build_geofence(
        _center(make_record, points)
    )


def test_too_few_steps_rejected():
    with pytest.raises(ValueError):
        GeofenceBuilder(steps=16)


def test_vancouver_pair_geofence_at_zoom_11(make_snapshot, vancouver_points):
    centers = ProximityClusterer().cluster(make_snapshot(vancouver_points), 11)
    geofence = GeofenceBuilder().build_geofence(centers[0])

    polygon = Polygon(geofence.ring)
    assert geofence.kind in ("circle", "hull")
    assert all(polygon.contains(Point(p)) for p in vancouver_points)


def test_vancouver_pair_at_zoom_15_gives_two_circles(make_snapshot, vancouver_points):
    centers = ProximityClusterer().cluster(make_snapshot(vancouver_points), 15)
    builder = GeofenceBuilder()
    geofences = [builder.build_geofence(c) for c in centers]
    assert [g.kind for g in geofences] == ["circle", "circle"]
