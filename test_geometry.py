"""
Test Geofence Geometry (pure functions)
=======================================

Containment tests and shape validation, no registry or detector involved.

Usage:
    pytest test_geometry.py
"""

import math

import pytest

from armada_geofence import (
    CircleShape,
    Geofence,
    InvalidGeofenceError,
    PolygonShape,
    haversine_m,
    is_inside_geofence,
    point_in_circle,
    point_in_polygon,
)

SQUARE = [(0.0, 0.0), (1.0, 0.0), (1.0, 1.0), (0.0, 1.0)]

# Interior, exterior and points sitting exactly on edges or vertices
SAMPLE_POINTS = [
    (0.5, 0.5),
    (1.5, 0.5),
    (-0.5, 0.5),
    (0.5, 1.5),
    (0.0, 0.5),
    (1.0, 0.5),
    (0.5, 0.0),
    (0.5, 1.0),
    (0.0, 0.0),
    (1.0, 1.0),
]


def rotations(ring):
    return [ring[i:] + ring[:i] for i in range(len(ring))]


def test_haversine_zero_and_one_degree():
    """Same point is 0 m apart; one degree of latitude is ~111.2 km."""
    assert haversine_m((106.8456, -6.2088), (106.8456, -6.2088)) == 0.0

    one_degree = haversine_m((0.0, 0.0), (0.0, 1.0))
    assert one_degree == pytest.approx(6_371_000.0 * math.pi / 180.0, rel=1e-9)


def test_haversine_is_symmetric():
    a = (106.8456, -6.2088)
    b = (107.6191, -6.9175)
    assert haversine_m(a, b) == pytest.approx(haversine_m(b, a))


def test_point_in_circle():
    """Center is inside, a point ~11 km away is not."""
    center = (106.8456, -6.2088)

    assert point_in_circle(center, center, 500)
    assert not point_in_circle((106.90, -6.30), center, 500)


def test_point_in_circle_radius_is_inclusive():
    center = (0.0, 0.0)
    edge = (0.0, 0.001)
    distance = haversine_m(edge, center)

    assert point_in_circle(edge, center, distance)
    assert not point_in_circle(edge, center, distance * 0.999)


def test_point_in_polygon_basic():
    assert point_in_polygon((0.5, 0.5), SQUARE)
    assert not point_in_polygon((1.5, 0.5), SQUARE)
    assert not point_in_polygon((0.5, -0.1), SQUARE)


def test_point_in_polygon_concave():
    """U shape: the notch between the arms is outside."""
    u_shape = [(0, 0), (3, 0), (3, 3), (2, 3), (2, 1), (1, 1), (1, 3), (0, 3)]

    assert point_in_polygon((0.5, 2.0), u_shape)
    assert point_in_polygon((2.5, 2.0), u_shape)
    assert not point_in_polygon((1.5, 2.0), u_shape)


def test_point_in_polygon_rotation_invariant():
    """Every cyclic rotation of the ring classifies every sample point the same way."""
    for point in SAMPLE_POINTS:
        expected = point_in_polygon(point, SQUARE)
        for ring in rotations(SQUARE):
            assert point_in_polygon(point, ring) == expected, (point, ring)


def test_point_in_polygon_closing_invariant():
    """Repeating the first vertex at the end never changes the answer."""
    for point in SAMPLE_POINTS:
        for ring in rotations(SQUARE):
            closed = ring + [ring[0]]
            assert point_in_polygon(point, closed) == point_in_polygon(point, ring)


def test_point_in_polygon_degenerate_ring():
    assert not point_in_polygon((0.5, 0.5), [(0, 0), (1, 1)])
    assert not point_in_polygon((0.5, 0.5), [])


def test_circle_validation():
    CircleShape(center=(106.8456, -6.2088), radius_m=500).validate("g1")

    with pytest.raises(InvalidGeofenceError, match="radius"):
        CircleShape(center=(106.8456, -6.2088), radius_m=0).validate("g1")

    with pytest.raises(InvalidGeofenceError, match="radius"):
        CircleShape(center=(106.8456, -6.2088), radius_m=float("nan")).validate("g1")

    with pytest.raises(InvalidGeofenceError, match="latitude"):
        CircleShape(center=(106.8456, -96.0), radius_m=500).validate("g1")


def test_polygon_validation():
    PolygonShape.from_outer_ring(SQUARE).validate("p1")
    # Closed ring counts distinct vertices only
    PolygonShape.from_outer_ring(SQUARE + [SQUARE[0]]).validate("p1")

    with pytest.raises(InvalidGeofenceError, match="3 distinct"):
        PolygonShape.from_outer_ring([(0, 0), (1, 1), (0, 0)]).validate("p1")

    with pytest.raises(InvalidGeofenceError, match="longitude"):
        PolygonShape.from_outer_ring([(0, 0), (181, 0), (0, 1)]).validate("p1")


def test_polygon_rings_are_read_only():
    shape = PolygonShape.from_outer_ring(SQUARE)

    with pytest.raises(ValueError):
        shape.outer_ring[0, 0] = 5.0


def test_polygon_holes_are_ignored():
    """Only the outer ring takes part in containment."""
    hole = [(0.4, 0.4), (0.6, 0.4), (0.6, 0.6), (0.4, 0.6)]
    geofence = Geofence(
        geofence_id="p1",
        name="Yard",
        shape=PolygonShape(rings=(SQUARE, hole)),
    )

    assert is_inside_geofence((0.5, 0.5), geofence)


def test_is_inside_geofence_dispatch():
    circle = Geofence(
        geofence_id="c1",
        name="Depot",
        shape=CircleShape(center=(106.8456, -6.2088), radius_m=500),
    )
    polygon = Geofence(geofence_id="p1", name="Yard", shape=PolygonShape.from_outer_ring(SQUARE))
    unknown = Geofence(geofence_id="x1", name="Broken", shape="not a shape")

    assert is_inside_geofence((106.8456, -6.2088), circle)
    assert is_inside_geofence((0.5, 0.5), polygon)

    with pytest.raises(TypeError):
        is_inside_geofence((0.5, 0.5), unknown)
