"""
Geofence Event Module
=====================

Bounded Context: Geofence transition events.

Design:
- EventType is a closed enumeration (four members, no free-form strings)
- classify_transition() is the single transition table (pure function)
- GeofenceEvent is immutable; acknowledgement lives in AlertNotification
- to_dict()/from_dict() for the JSON wire format
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict

from armada_geofence.geometry.shapes import Coordinate
from armada_geofence.models import RuleType


class EventType(str, Enum):
    """Geofence transition event type."""
    ENTER = "enter"
    EXIT = "exit"
    VIOLATION_ENTER = "violation_enter"
    VIOLATION_EXIT = "violation_exit"

    @property
    def is_violation(self) -> bool:
        return self in (EventType.VIOLATION_ENTER, EventType.VIOLATION_EXIT)


_ENTER_EVENTS = {
    RuleType.STANDARD: EventType.ENTER,
    RuleType.FORBIDDEN: EventType.VIOLATION_ENTER,
    RuleType.STAY_IN: EventType.ENTER,
}

_EXIT_EVENTS = {
    RuleType.STANDARD: EventType.EXIT,
    RuleType.FORBIDDEN: EventType.EXIT,
    RuleType.STAY_IN: EventType.VIOLATION_EXIT,
}


def classify_transition(rule_type: RuleType, entered: bool) -> EventType:
    """
    Map a containment transition to an event type.

    Args:
        rule_type: Rule of the geofence that was crossed
        entered: True for OUTSIDE->INSIDE, False for INSIDE->OUTSIDE

    Returns:
        EventType for the transition

    Example:
        >>> classify_transition(RuleType.FORBIDDEN, entered=True)
        <EventType.VIOLATION_ENTER: 'violation_enter'>
        >>> classify_transition(RuleType.STAY_IN, entered=False)
        <EventType.VIOLATION_EXIT: 'violation_exit'>
    """
    table = _ENTER_EVENTS if entered else _EXIT_EVENTS
    return table[RuleType(rule_type)]


def make_event_id(vehicle_id, geofence_id, event_type: EventType, timestamp: datetime) -> str:
    """
    Deterministic event id.

    The same (vehicle, geofence, type, timestamp) always yields the same id,
    which lets downstream consumers deduplicate at-least-once deliveries.
    """
    millis = int(round(timestamp.timestamp() * 1000))
    return f"{vehicle_id}-{geofence_id}-{EventType(event_type).value}-{millis}"


@dataclass(frozen=True)
class GeofenceEvent:
    """
    Single geofence transition for one vehicle.

    Attributes:
        event_id: Deterministic id (see make_event_id)
        vehicle_id: Vehicle that moved
        vehicle_name: Display name from the roster
        geofence_id: Geofence crossed
        geofence_name: Geofence display name
        event_type: enter / exit / violation_enter / violation_exit
        rule_triggered: Geofence rule at detection time
        position: (lng, lat) of the triggering sample
        timestamp: Sample time
    """

    event_id: str
    vehicle_id: str
    vehicle_name: str
    geofence_id: str
    geofence_name: str
    event_type: EventType
    rule_triggered: RuleType
    position: Coordinate
    timestamp: datetime

    @property
    def is_violation(self) -> bool:
        return self.event_type.is_violation

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to JSON-compatible dict."""
        return {
            'event_id': self.event_id,
            'vehicle_id': self.vehicle_id,
            'vehicle_name': self.vehicle_name,
            'geofence_id': self.geofence_id,
            'geofence_name': self.geofence_name,
            'event_type': self.event_type.value,
            'rule_triggered': self.rule_triggered.value,
            'position': [self.position[0], self.position[1]],
            'timestamp': self.timestamp.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'GeofenceEvent':
        """Deserialize from dict.

        Raises:
            ValueError: If required fields missing or invalid
        """
        try:
            position = data['position']
            return cls(
                event_id=str(data['event_id']),
                vehicle_id=str(data['vehicle_id']),
                vehicle_name=str(data.get('vehicle_name', '')),
                geofence_id=str(data['geofence_id']),
                geofence_name=str(data.get('geofence_name', '')),
                event_type=EventType(data['event_type']),
                rule_triggered=RuleType(data['rule_triggered']),
                position=(float(position[0]), float(position[1])),
                timestamp=datetime.fromisoformat(data['timestamp']),
            )
        except KeyError as e:
            raise ValueError(f"Missing required GeofenceEvent field: {e}")
        except (TypeError, ValueError, IndexError) as e:
            raise ValueError(f"Invalid GeofenceEvent data: {e}")
