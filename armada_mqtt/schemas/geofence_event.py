"""
Geofence Event Message Schema
=============================

Bounded Context: Geofence Event Data Structures

Envelope for the geofence events produced by one telemetry sample.

Design:
- Events are carried as armada_geofence.GeofenceEvent (single definition
  of the event fields, no parallel DTO)
- GeofenceEventMessage adds schema version, publish time and source

Message Flow:
    Detector -> GeofenceEvent -> GeofenceEventMessage -> GeofenceEventPublisher -> MQTT
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List

from armada_geofence.events import EventType, GeofenceEvent

from .common import Timestamp


@dataclass(frozen=True)
class GeofenceEventMessage:
    """
    Geofence event message for MQTT publication.

    Attributes:
        schema_version: Message schema version (for evolution)
        timestamp: ISO 8601 timestamp of message creation
        source_id: Monitor service identifier
        events: Events detected for one sample (one or more)

    Example:
        >>> msg = GeofenceEventMessage(
        ...     schema_version="1.0",
        ...     timestamp=Timestamp.now(),
        ...     source_id="monitor_1",
        ...     events=[event]
        ... )
    """
    schema_version: str
    timestamp: Timestamp
    source_id: str
    events: List[GeofenceEvent] = field(default_factory=list)

    def __post_init__(self):
        """Validate invariants."""
        if not self.source_id:
            raise ValueError("source_id cannot be empty")

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to JSON-compatible dict."""
        return {
            'schema_version': self.schema_version,
            'timestamp': self.timestamp.to_dict(),
            'source_id': self.source_id,
            'events': [event.to_dict() for event in self.events],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'GeofenceEventMessage':
        """Deserialize from dict.

        Raises:
            ValueError: If required fields missing or invalid
        """
        try:
            return cls(
                schema_version=str(data['schema_version']),
                timestamp=Timestamp(value=data['timestamp']),
                source_id=str(data['source_id']),
                events=[GeofenceEvent.from_dict(e) for e in data.get('events', [])],
            )
        except KeyError as e:
            raise ValueError(f"Missing required GeofenceEventMessage field: {e}")
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid GeofenceEventMessage data: {e}")

    @property
    def event_count(self) -> int:
        return len(self.events)

    @property
    def violation_count(self) -> int:
        return sum(1 for event in self.events if event.is_violation)

    def get_events_by_type(self, event_type: EventType) -> List[GeofenceEvent]:
        """Filter events by type."""
        return [event for event in self.events if event.event_type == event_type]
