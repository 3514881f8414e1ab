"""
Geometry Layer
==============

Bounded Context: Pure geographic shapes and containment queries.

Responsibilities:
- Shape representation (immutable)
- Point-in-polygon (ray casting) and point-in-circle (haversine) tests
- NO state, NO event detection, NO I/O

Design Philosophy:
- Pure functions where possible
- Immutable data structures
- Explicit validation
- Zero side effects
"""

from armada_geofence.geometry.shapes import (
    Coordinate,
    CircleShape,
    PolygonShape,
    coordinate_error,
)
from armada_geofence.geometry.containment import (
    EARTH_RADIUS_M,
    haversine_m,
    point_in_circle,
    point_in_polygon,
    is_inside_geofence,
)

__all__ = [
    "Coordinate",
    "CircleShape",
    "PolygonShape",
    "coordinate_error",
    "EARTH_RADIUS_M",
    "haversine_m",
    "point_in_circle",
    "point_in_polygon",
    "is_inside_geofence",
]
