"""
Geofence Domain Models
======================

Bounded Context: Geofences, vehicles and telemetry samples.

Design:
- Frozen dataclasses (value objects)
- str Enums for closed vocabularies (rule types, status)
- Validation is explicit: Geofence.validate() for registration,
  VehiclePosition.create() for incoming samples
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Sequence, Union

from armada_geofence.errors import InvalidGeofenceError, InvalidPositionError
from armada_geofence.geometry.shapes import (
    CircleShape,
    Coordinate,
    PolygonShape,
    coordinate_error,
)


class RuleType(str, Enum):
    """Rule attached to a geofence."""
    STANDARD = "STANDARD"      # Enter/exit are informational
    FORBIDDEN = "FORBIDDEN"    # Entering is a violation
    STAY_IN = "STAY_IN"        # Leaving is a violation


class GeofenceStatus(str, Enum):
    """Geofence lifecycle status."""
    ACTIVE = "active"
    INACTIVE = "inactive"


GeofenceShape = Union[CircleShape, PolygonShape]


@dataclass(frozen=True)
class Geofence:
    """
    Named geographic region with a rule.

    Attributes:
        geofence_id: Unique identifier
        name: Display name
        shape: CircleShape or PolygonShape
        rule_type: Rule evaluated on transitions
        status: Inactive geofences are never evaluated

    Example:
        >>> g = Geofence(
        ...     geofence_id="g1",
        ...     name="Depot",
        ...     shape=CircleShape(center=(106.8456, -6.2088), radius_m=500),
        ...     rule_type=RuleType.FORBIDDEN,
        ... )
    """

    geofence_id: str
    name: str
    shape: GeofenceShape
    rule_type: RuleType = RuleType.STANDARD
    status: GeofenceStatus = GeofenceStatus.ACTIVE

    @property
    def is_active(self) -> bool:
        return self.status == GeofenceStatus.ACTIVE

    def validate(self) -> None:
        """
        Check all registration invariants.

        Raises:
            InvalidGeofenceError: On empty id, unknown rule/status or bad shape
        """
        if self.geofence_id is None or str(self.geofence_id) == "":
            raise InvalidGeofenceError(self.geofence_id, "geofence_id cannot be empty")
        if not isinstance(self.rule_type, RuleType):
            raise InvalidGeofenceError(self.geofence_id, f"unknown rule_type {self.rule_type!r}")
        if not isinstance(self.status, GeofenceStatus):
            raise InvalidGeofenceError(self.geofence_id, f"unknown status {self.status!r}")
        if not isinstance(self.shape, (CircleShape, PolygonShape)):
            raise InvalidGeofenceError(
                self.geofence_id, f"unsupported shape {type(self.shape).__name__}"
            )
        self.shape.validate(self.geofence_id)


@dataclass(frozen=True)
class Vehicle:
    """Roster entry used to label events with human-readable names."""

    vehicle_id: str
    name: str
    license_plate: str = ""
    gps_id: Optional[str] = None

    @property
    def display_name(self) -> str:
        if self.name:
            return self.name
        return f"Vehicle {self.vehicle_id}"


def _as_utc(timestamp: Optional[datetime]) -> datetime:
    if timestamp is None:
        return datetime.now(timezone.utc)
    if timestamp.tzinfo is None:
        return timestamp.replace(tzinfo=timezone.utc)
    return timestamp


@dataclass(frozen=True)
class VehiclePosition:
    """
    One telemetry sample.

    Ephemeral: created per sample, consumed by the detector, not retained.
    Use create() to build validated instances from untrusted input.
    """

    vehicle_id: str
    coordinates: Coordinate
    timestamp: datetime

    @classmethod
    def create(
        cls,
        vehicle_id,
        coordinates: Sequence[float],
        timestamp: Optional[datetime] = None
    ) -> 'VehiclePosition':
        """
        Validate and build a position sample.

        Args:
            vehicle_id: Vehicle identifier (non-empty)
            coordinates: (lng, lat)
            timestamp: Sample time; naive datetimes are treated as UTC,
                None means now

        Returns:
            VehiclePosition

        Raises:
            InvalidPositionError: On empty id or malformed/out-of-range coordinates
        """
        if vehicle_id is None or str(vehicle_id).strip() == "":
            raise InvalidPositionError(vehicle_id, "vehicle_id cannot be empty")

        if coordinates is None:
            raise InvalidPositionError(vehicle_id, "coordinates missing")

        reason = coordinate_error(coordinates)
        if reason is not None:
            raise InvalidPositionError(vehicle_id, reason)

        if timestamp is not None and not isinstance(timestamp, datetime):
            raise InvalidPositionError(
                vehicle_id, f"timestamp must be datetime, got {type(timestamp).__name__}"
            )

        return cls(
            vehicle_id=str(vehicle_id),
            coordinates=(float(coordinates[0]), float(coordinates[1])),
            timestamp=_as_utc(timestamp),
        )

    @property
    def longitude(self) -> float:
        return self.coordinates[0]

    @property
    def latitude(self) -> float:
        return self.coordinates[1]
