"""
Telemetry Message Schema
========================

Bounded Context: Vehicle Position Data Structures

One GPS fix for one vehicle, as published on the telemetry topic.

Message Flow:
    GPS gateway / simulator -> VehiclePositionMessage -> MQTT -> TelemetrySubscriber
"""

import math
from dataclasses import dataclass
from typing import Any, Dict

from .common import Timestamp


@dataclass(frozen=True)
class VehiclePositionMessage:
    """
    Single vehicle position sample.

    Attributes:
        vehicle_id: Vehicle identifier
        longitude: Degrees, [-180, 180]
        latitude: Degrees, [-90, 90]
        timestamp: Sample time

    Invariants:
        - vehicle_id is non-empty
        - longitude/latitude are finite and in range

    Example:
        >>> msg = VehiclePositionMessage(
        ...     vehicle_id="v1",
        ...     longitude=106.8456,
        ...     latitude=-6.2088,
        ...     timestamp=Timestamp.now()
        ... )
    """
    vehicle_id: str
    longitude: float
    latitude: float
    timestamp: Timestamp

    def __post_init__(self):
        """Validate invariants."""
        if not self.vehicle_id:
            raise ValueError("vehicle_id cannot be empty")
        if not math.isfinite(self.longitude) or not -180.0 <= self.longitude <= 180.0:
            raise ValueError(f"longitude out of range: {self.longitude}")
        if not math.isfinite(self.latitude) or not -90.0 <= self.latitude <= 90.0:
            raise ValueError(f"latitude out of range: {self.latitude}")

    @property
    def coordinates(self):
        """(lng, lat) pair."""
        return (self.longitude, self.latitude)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to JSON-compatible dict."""
        return {
            'vehicle_id': self.vehicle_id,
            'longitude': self.longitude,
            'latitude': self.latitude,
            'timestamp': self.timestamp.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'VehiclePositionMessage':
        """Deserialize from dict.

        Numeric strings are accepted for longitude/latitude.

        Raises:
            ValueError: If required fields missing or invalid
        """
        try:
            return cls(
                vehicle_id=str(data['vehicle_id']),
                longitude=float(data['longitude']),
                latitude=float(data['latitude']),
                timestamp=Timestamp(value=str(data['timestamp'])),
            )
        except KeyError as e:
            raise ValueError(f"Missing required VehiclePositionMessage field: {e}")
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid VehiclePositionMessage data: {e}")
