"""
Armada MQTT Schemas
===================

Bounded Context: Data Structures

Immutable, typed data structures for MQTT messages.

Design:
- Frozen dataclasses (immutability)
- to_dict() for JSON serialization
- from_dict() for deserialization (raises ValueError)
- Schema versioning for evolution

Public API
----------
Common Types:
    Timestamp: ISO 8601 timestamp wrapper

Telemetry Types:
    VehiclePositionMessage: One vehicle GPS fix

Geofence Event Types:
    GeofenceEventMessage: Events detected for one sample
"""

from .common import Timestamp
from .telemetry import VehiclePositionMessage
from .geofence_event import GeofenceEventMessage

__all__ = [
    'Timestamp',
    'VehiclePositionMessage',
    'GeofenceEventMessage',
]
