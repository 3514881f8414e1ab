"""
Geometric Shapes Module
========================

Pure geographic shape representations - NO state, NO side effects.

Design:
- Immutable shapes (frozen dataclass pattern)
- Coordinates are [longitude, latitude] pairs in degrees
- Polygon rings stored as read-only float arrays
- Validation is explicit (validate()) so the registry can reject a shape
  per item instead of failing at construction time
"""

import math
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import numpy as np

from armada_geofence.errors import InvalidGeofenceError

Coordinate = Tuple[float, float]


def coordinate_error(point: Sequence[float]) -> Optional[str]:
    """
    Describe what is wrong with a [lng, lat] pair.

    Args:
        point: Candidate (longitude, latitude) pair

    Returns:
        Human-readable reason, or None if the pair is a usable coordinate
    """
    try:
        if len(point) != 2:
            return f"expected [lng, lat] pair, got {len(point)} values"
        lng, lat = float(point[0]), float(point[1])
    except (TypeError, ValueError):
        return f"coordinates must be numeric, got {point!r}"

    if not (math.isfinite(lng) and math.isfinite(lat)):
        return f"coordinates must be finite, got ({lng}, {lat})"
    if not -180.0 <= lng <= 180.0:
        return f"longitude must be in [-180, 180], got {lng}"
    if not -90.0 <= lat <= 90.0:
        return f"latitude must be in [-90, 90], got {lat}"
    return None


@dataclass(frozen=True)
class CircleShape:
    """
    Immutable circle defined by a center and a radius in meters.

    Attributes:
        center: (lng, lat) of the circle center
        radius_m: Radius in meters (must be > 0)
    """

    center: Coordinate
    radius_m: float

    def validate(self, geofence_id) -> None:
        """
        Check circle invariants.

        Raises:
            InvalidGeofenceError: If center or radius is unusable
        """
        reason = coordinate_error(self.center)
        if reason is not None:
            raise InvalidGeofenceError(geofence_id, f"circle center: {reason}")

        try:
            radius = float(self.radius_m)
        except (TypeError, ValueError):
            raise InvalidGeofenceError(
                geofence_id, f"circle radius must be numeric, got {self.radius_m!r}"
            )
        if not math.isfinite(radius) or radius <= 0:
            raise InvalidGeofenceError(
                geofence_id, f"circle radius must be > 0, got {self.radius_m}"
            )

    @property
    def shape_type(self) -> str:
        return "circle"


@dataclass(frozen=True, eq=False)
class PolygonShape:
    """
    Immutable polygon geometry.

    Design:
    - Rings follow GeoJSON order: rings[0] is the outer ring, the rest are
      holes. Only the outer ring takes part in containment tests.
    - Rings do not need to be closed (first == last); containment closes
      them implicitly.
    - Each ring is stored as a read-only Nx2 float array.

    Attributes:
        rings: Sequence of rings, each a sequence of (lng, lat) vertices
    """

    rings: Tuple[np.ndarray, ...]

    def __post_init__(self):
        """Coerce rings to read-only float arrays."""
        try:
            rings = tuple(np.asarray(ring, dtype=float) for ring in self.rings)
        except (TypeError, ValueError) as e:
            raise InvalidGeofenceError(None, f"polygon rings are not numeric: {e}")

        for ring in rings:
            ring.flags.writeable = False

        object.__setattr__(self, 'rings', rings)

    @classmethod
    def from_outer_ring(cls, vertices: Sequence[Sequence[float]]) -> 'PolygonShape':
        """Build a polygon with a single outer ring."""
        return cls(rings=(vertices,))

    @property
    def outer_ring(self) -> np.ndarray:
        """Outer ring as an Nx2 array (empty array if no rings)."""
        if not self.rings:
            return np.empty((0, 2), dtype=float)
        return self.rings[0]

    @property
    def shape_type(self) -> str:
        return "polygon"

    def distinct_vertex_count(self) -> int:
        """Number of distinct vertices in the outer ring."""
        ring = self.outer_ring
        if ring.ndim != 2 or ring.shape[0] == 0:
            return 0
        return len({(float(lng), float(lat)) for lng, lat in ring})

    def validate(self, geofence_id) -> None:
        """
        Check polygon invariants on the outer ring.

        Raises:
            InvalidGeofenceError: If the ring is malformed or degenerate
        """
        ring = self.outer_ring
        if ring.ndim != 2 or (ring.size and ring.shape[1] != 2):
            raise InvalidGeofenceError(
                geofence_id, f"outer ring must be Nx2 [lng, lat] pairs, got shape {ring.shape}"
            )

        for vertex in ring:
            reason = coordinate_error(vertex)
            if reason is not None:
                raise InvalidGeofenceError(geofence_id, f"polygon vertex: {reason}")

        distinct = self.distinct_vertex_count()
        if distinct < 3:
            raise InvalidGeofenceError(
                geofence_id,
                f"polygon must have at least 3 distinct vertices, got {distinct}"
            )
