"""
Alert Stream Module
===================

Stateful accumulator turning geofence events into acknowledgeable alerts.

Design:
- Mutable alert list (newest first), guarded by a lock
- Idempotent on event id (at-least-once upstream delivery)
- Acknowledgement state lives on AlertNotification, never on the event
- classify_severity() is a pure function of the event fields
"""

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional

from armada_geofence.events import EventType, GeofenceEvent
from armada_geofence.models import RuleType

logger = logging.getLogger(__name__)


class Severity(str, Enum):
    """Alert severity."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


@dataclass
class AlertNotification:
    """
    Alert wrapper around a GeofenceEvent.

    Only `acknowledged` ever changes after creation.
    """

    id: str
    event: GeofenceEvent
    received_at: datetime
    acknowledged: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to JSON-compatible dict."""
        return {
            'id': self.id,
            'event': self.event.to_dict(),
            'received_at': self.received_at.isoformat(),
            'acknowledged': self.acknowledged,
            'severity': classify_severity(self).value,
        }


def classify_severity(alert: AlertNotification) -> Severity:
    """
    Severity of an alert, derived only from its event.

    - violation on a FORBIDDEN rule -> critical
    - any other violation           -> high
    - plain enter / exit            -> medium
    - anything else                 -> low
    """
    event_type = alert.event.event_type
    rule = alert.event.rule_triggered

    if event_type in (EventType.VIOLATION_ENTER, EventType.VIOLATION_EXIT):
        if rule == RuleType.FORBIDDEN:
            return Severity.CRITICAL
        return Severity.HIGH
    if event_type in (EventType.ENTER, EventType.EXIT):
        return Severity.MEDIUM
    return Severity.LOW


AlertListener = Callable[[AlertNotification], None]


class AlertStreamManager:
    """
    Deduplicated, acknowledgeable alert list.

    Usage:
        alerts = AlertStreamManager()
        alerts.add_listener(lambda a: print(a.event.event_type))

        new = alerts.ingest(events)         # only new alerts returned
        alerts.acknowledge(new[0].id)
        pending = alerts.list_unacknowledged()
        alerts.clear_all()

    Thread Safety:
        All list operations hold an internal lock. Listeners run outside
        the lock in the ingesting thread.
    """

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        """
        Args:
            clock: Returns the current time (default: UTC now). Injectable
                for tests.
        """
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._alerts: List[AlertNotification] = []
        self._index: Dict[str, AlertNotification] = {}
        self._listeners: List[AlertListener] = []
        self._last_event_time: Optional[datetime] = None
        self._lock = threading.Lock()

    def add_listener(self, listener: AlertListener) -> None:
        """Register a callback invoked once per newly ingested alert."""
        self._listeners.append(listener)

    def ingest(self, events: Iterable[GeofenceEvent]) -> List[AlertNotification]:
        """
        Wrap events as alerts and prepend them (newest first).

        Events whose id is already present, including repeats within the
        same batch, are ignored.

        Returns:
            Newly created alerts, in the order they were placed in the list
        """
        events = list(events)
        if not events:
            return []

        received_at = self._clock()
        created: List[AlertNotification] = []

        with self._lock:
            for event in events:
                if event.event_id in self._index:
                    continue
                alert = AlertNotification(
                    id=event.event_id,
                    event=event,
                    received_at=received_at,
                )
                self._index[alert.id] = alert
                created.append(alert)

            if created:
                # Batch is prepended as a block, keeping its internal order
                self._alerts[:0] = created
                newest = max(a.event.timestamp for a in created)
                if self._last_event_time is None or newest > self._last_event_time:
                    self._last_event_time = newest

        for alert in created:
            self._notify(alert)

        return created

    def _notify(self, alert: AlertNotification) -> None:
        for listener in list(self._listeners):
            try:
                listener(alert)
            except Exception as e:
                logger.error(f"Alert listener failed for {alert.id}: {e}", exc_info=True)

    def acknowledge(self, alert_id: str) -> bool:
        """
        Mark one alert acknowledged.

        Returns:
            True if the alert exists, False (no-op) for unknown ids
        """
        with self._lock:
            alert = self._index.get(alert_id)
            if alert is None:
                return False
            alert.acknowledged = True
            return True

    def clear_all(self) -> None:
        """Remove every alert."""
        with self._lock:
            self._alerts = []
            self._index = {}

    @property
    def alerts(self) -> List[AlertNotification]:
        """All alerts, newest first (list copy)."""
        with self._lock:
            return list(self._alerts)

    def list_unacknowledged(self) -> List[AlertNotification]:
        with self._lock:
            return [a for a in self._alerts if not a.acknowledged]

    def alerts_by_severity(self, severity: Severity) -> List[AlertNotification]:
        severity = Severity(severity)
        with self._lock:
            return [a for a in self._alerts if classify_severity(a) == severity]

    def get(self, alert_id: str) -> Optional[AlertNotification]:
        with self._lock:
            return self._index.get(alert_id)

    @property
    def last_event_time(self) -> Optional[datetime]:
        """Latest event timestamp ever ingested; never moves backwards, survives clear_all."""
        with self._lock:
            return self._last_event_time

    def get_stats(self) -> Dict[str, Any]:
        """
        Alert counts.

        Returns:
            Dictionary with total, unacknowledged and per-severity counts
        """
        with self._lock:
            by_severity = {s.value: 0 for s in Severity}
            for alert in self._alerts:
                by_severity[classify_severity(alert).value] += 1
            return {
                'total': len(self._alerts),
                'unacknowledged': sum(1 for a in self._alerts if not a.acknowledged),
                'by_severity': by_severity,
                'last_event_time': (
                    self._last_event_time.isoformat() if self._last_event_time else None
                ),
            }

    def __len__(self) -> int:
        with self._lock:
            return len(self._alerts)
