"""
Test AlertStreamManager
=======================

Idempotent ingestion, ordering, severity and acknowledgement.
"""

from datetime import datetime, timedelta, timezone

from armada_geofence import (
    AlertNotification,
    AlertStreamManager,
    EventType,
    GeofenceEvent,
    RuleType,
    Severity,
    classify_severity,
)
from armada_geofence.events import make_event_id

T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)
RECEIVED_AT = datetime(2024, 6, 1, tzinfo=timezone.utc)


def make_event(
    seconds=0,
    event_type=EventType.ENTER,
    rule_type=RuleType.STANDARD,
    vehicle_id="v1",
    geofence_id="g1",
):
    timestamp = T0 + timedelta(seconds=seconds)
    return GeofenceEvent(
        event_id=make_event_id(vehicle_id, geofence_id, event_type, timestamp),
        vehicle_id=vehicle_id,
        vehicle_name=f"Vehicle {vehicle_id}",
        geofence_id=geofence_id,
        geofence_name="Depot",
        event_type=event_type,
        rule_triggered=rule_type,
        position=(106.8456, -6.2088),
        timestamp=timestamp,
    )


def make_manager():
    return AlertStreamManager(clock=lambda: RECEIVED_AT)


def test_ingest_creates_alerts_newest_first():
    alerts = make_manager()
    first = make_event(0)
    second = make_event(10, event_type=EventType.EXIT)
    third = make_event(10, geofence_id="g2")

    alerts.ingest([first])
    alerts.ingest([second, third])

    # Later batch goes on top, keeping its own order
    assert [a.id for a in alerts.alerts] == [second.event_id, third.event_id, first.event_id]
    assert all(a.received_at == RECEIVED_AT for a in alerts.alerts)
    assert not any(a.acknowledged for a in alerts.alerts)


def test_ingest_is_idempotent():
    alerts = make_manager()
    event = make_event(0)

    assert len(alerts.ingest([event])) == 1
    assert alerts.ingest([event]) == []
    assert len(alerts) == 1


def test_ingest_deduplicates_within_a_batch():
    alerts = make_manager()
    event = make_event(0)

    created = alerts.ingest([event, event])

    assert len(created) == 1
    assert len(alerts) == 1


def test_ingest_empty_batch():
    alerts = make_manager()

    assert alerts.ingest([]) == []
    assert alerts.last_event_time is None


def test_severity_classification():
    def severity(event_type, rule_type):
        alert = AlertNotification(
            id="a",
            event=make_event(event_type=event_type, rule_type=rule_type),
            received_at=RECEIVED_AT,
        )
        return classify_severity(alert)

    assert severity(EventType.VIOLATION_ENTER, RuleType.FORBIDDEN) == Severity.CRITICAL
    assert severity(EventType.VIOLATION_EXIT, RuleType.STAY_IN) == Severity.HIGH
    assert severity(EventType.ENTER, RuleType.STANDARD) == Severity.MEDIUM
    assert severity(EventType.EXIT, RuleType.FORBIDDEN) == Severity.MEDIUM


def test_acknowledge():
    alerts = make_manager()
    event = make_event(0)
    other = make_event(5, geofence_id="g2")
    alerts.ingest([event, other])

    assert alerts.acknowledge(event.event_id) is True
    assert alerts.get(event.event_id).acknowledged is True
    assert [a.id for a in alerts.list_unacknowledged()] == [other.event_id]

    # Unknown ids are a no-op
    assert alerts.acknowledge("no-such-alert") is False
    assert len(alerts) == 2


def test_acknowledged_alert_is_not_reset_by_redelivery():
    alerts = make_manager()
    event = make_event(0)
    alerts.ingest([event])
    alerts.acknowledge(event.event_id)

    alerts.ingest([event])

    assert alerts.get(event.event_id).acknowledged is True


def test_alerts_by_severity():
    alerts = make_manager()
    alerts.ingest([
        make_event(0, EventType.VIOLATION_ENTER, RuleType.FORBIDDEN),
        make_event(1, EventType.ENTER, RuleType.STANDARD, geofence_id="g2"),
        make_event(2, EventType.EXIT, RuleType.STANDARD, geofence_id="g2"),
    ])

    assert len(alerts.alerts_by_severity(Severity.CRITICAL)) == 1
    assert len(alerts.alerts_by_severity("medium")) == 2
    assert alerts.alerts_by_severity(Severity.HIGH) == []


def test_listener_called_once_per_new_alert():
    alerts = make_manager()
    seen = []
    alerts.add_listener(seen.append)
    event = make_event(0)

    alerts.ingest([event])
    alerts.ingest([event])

    assert [a.id for a in seen] == [event.event_id]


def test_failing_listener_does_not_break_ingest():
    alerts = make_manager()
    seen = []

    def broken(alert):
        raise RuntimeError("listener down")

    alerts.add_listener(broken)
    alerts.add_listener(seen.append)

    created = alerts.ingest([make_event(0)])

    assert len(created) == 1
    assert len(seen) == 1


def test_clear_all_keeps_last_event_time():
    alerts = make_manager()
    alerts.ingest([make_event(30), make_event(10, geofence_id="g2")])

    assert alerts.last_event_time == T0 + timedelta(seconds=30)

    alerts.clear_all()

    assert len(alerts) == 0
    assert alerts.alerts == []
    assert alerts.last_event_time == T0 + timedelta(seconds=30)


def test_last_event_time_ignores_older_batches():
    alerts = make_manager()
    alerts.ingest([make_event(3600)])
    alerts.ingest([make_event(0, geofence_id="g2")])

    assert alerts.last_event_time == T0 + timedelta(hours=1)
    assert alerts.get_stats()["last_event_time"] == (T0 + timedelta(hours=1)).isoformat()


def test_cleared_event_can_be_ingested_again():
    alerts = make_manager()
    event = make_event(0)
    alerts.ingest([event])
    alerts.clear_all()

    assert len(alerts.ingest([event])) == 1


def test_get_stats():
    alerts = make_manager()
    critical = make_event(0, EventType.VIOLATION_ENTER, RuleType.FORBIDDEN)
    alerts.ingest([critical, make_event(5, geofence_id="g2")])
    alerts.acknowledge(critical.event_id)

    stats = alerts.get_stats()

    assert stats['total'] == 2
    assert stats['unacknowledged'] == 1
    assert stats['by_severity'] == {'low': 0, 'medium': 1, 'high': 0, 'critical': 1}
    assert stats['last_event_time'] == (T0 + timedelta(seconds=5)).isoformat()


def test_alert_to_dict():
    alerts = make_manager()
    alerts.ingest([make_event(0, EventType.VIOLATION_EXIT, RuleType.STAY_IN)])

    data = alerts.alerts[0].to_dict()

    assert data['severity'] == 'high'
    assert data['acknowledged'] is False
    assert data['event']['event_type'] == 'violation_exit'
    assert data['received_at'] == RECEIVED_AT.isoformat()
