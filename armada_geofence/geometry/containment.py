"""
Containment Module
==================

Stateless containment tests - applies geofence geometry to a point.

Design:
- Pure functions (no state)
- One containment policy for every caller: ray casting for polygons,
  haversine great-circle distance for circles
- Coordinates are [longitude, latitude] in degrees

Boundary policy:
    Polygon edges use the half-open crossing rule ``(yi > y) != (yj > y)``
    with a strict ``x < x_cross`` comparison. A point lying exactly on an
    edge may be classified inside or outside, but the answer depends only
    on the set of edges, so it is the same for every call, every cyclic
    rotation of the ring, and closed or open rings alike.
"""

import math
from typing import Sequence

import numpy as np

from armada_geofence.geometry.shapes import CircleShape, PolygonShape

EARTH_RADIUS_M = 6_371_000.0


def haversine_m(point_a: Sequence[float], point_b: Sequence[float]) -> float:
    """
    Great-circle distance between two [lng, lat] points.

    Args:
        point_a: (lng, lat) in degrees
        point_b: (lng, lat) in degrees

    Returns:
        Distance in meters
    """
    lng1, lat1 = math.radians(point_a[0]), math.radians(point_a[1])
    lng2, lat2 = math.radians(point_b[0]), math.radians(point_b[1])
    dlat = lat2 - lat1
    dlng = lng2 - lng1

    a = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlng / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(max(0.0, 1 - a)))
    return EARTH_RADIUS_M * c


def point_in_circle(
    point: Sequence[float],
    center: Sequence[float],
    radius_m: float
) -> bool:
    """
    Check whether a point lies within radius_m meters of center.

    Returns:
        True if haversine distance <= radius_m
    """
    return haversine_m(point, center) <= radius_m


def point_in_polygon(point: Sequence[float], ring) -> bool:
    """
    Even-odd ray casting test against a single ring.

    The ring is closed implicitly: the edge from the last vertex back to
    the first is always tested. If the caller already repeated the first
    vertex at the end, that extra edge has zero length and never straddles
    the ray, so the result is unchanged.

    Args:
        point: (lng, lat) to test
        ring: Nx2 sequence of (lng, lat) vertices

    Returns:
        True if the point is inside the ring
    """
    vertices = np.asarray(ring, dtype=float)
    if vertices.ndim != 2 or vertices.shape[0] < 3:
        return False

    x, y = float(point[0]), float(point[1])

    xi, yi = vertices[:, 0], vertices[:, 1]
    # Previous vertex for every vertex (index -1 wraps to the last one)
    xj, yj = np.roll(xi, 1), np.roll(yi, 1)

    straddles = (yi > y) != (yj > y)

    # Non-straddling edges may divide by zero; they are masked out below
    with np.errstate(divide='ignore', invalid='ignore'):
        x_cross = (xj - xi) * (y - yi) / (yj - yi) + xi

    crossings = np.count_nonzero(straddles & (x < x_cross))
    return bool(crossings % 2 == 1)


def is_inside_geofence(point: Sequence[float], geofence) -> bool:
    """
    Dispatch a containment test on the geofence's shape.

    Callers must pass only active, validated geofences; the registry is
    responsible for that filtering.

    Args:
        point: (lng, lat) to test
        geofence: Geofence whose shape is CircleShape or PolygonShape

    Returns:
        True if the point is inside the geofence

    Raises:
        TypeError: If the shape type is unknown
    """
    shape = geofence.shape

    if isinstance(shape, CircleShape):
        return point_in_circle(point, shape.center, float(shape.radius_m))
    elif isinstance(shape, PolygonShape):
        return point_in_polygon(point, shape.outer_ring)
    else:
        raise TypeError(f"Unsupported geofence shape: {type(shape).__name__}")
