"""
Test Control Plane (Without Real Broker)
========================================

CommandRegistry behaviour and MQTTControlPlane command dispatch. Status
publication is captured instead of being sent to a broker.
"""

import json
from types import SimpleNamespace

import pytest

from armada_control import CommandNotAvailableError, CommandRegistry, MQTTControlPlane


@pytest.fixture
def published():
    return []


@pytest.fixture
def control_plane(monkeypatch, published):
    plane = MQTTControlPlane(
        broker_host="localhost",
        broker_port=1883,
        command_topic="armada/control/test/commands",
        status_topic="armada/control/test/status",
        client_id="test_control",
    )

    def capture(status, data=None, retain=True):
        published.append((status, data, retain))

    monkeypatch.setattr(plane, "publish_status", capture)
    return plane


# ============================================================================
# CommandRegistry
# ============================================================================

def test_register_and_execute():
    registry = CommandRegistry()
    registry.register("echo", lambda data: data.get("value"), "Echo a value")

    assert registry.is_available("echo")
    assert registry.execute("echo", {"value": 42}) == 42
    assert registry.execute("echo") is None
    assert registry.available_commands == {"echo"}
    assert registry.get_help() == {"echo": "Echo a value"}
    assert registry.count() == 1


def test_double_registration_fails():
    registry = CommandRegistry()
    registry.register("status", lambda data: {}, "Status")

    with pytest.raises(ValueError, match="already registered"):
        registry.register("status", lambda data: {}, "Status again")


def test_unknown_command_lists_available():
    registry = CommandRegistry()
    registry.register("status", lambda data: {}, "Status")
    registry.register("clear_alerts", lambda data: {}, "Clear")

    with pytest.raises(CommandNotAvailableError, match="clear_alerts, status"):
        registry.execute("reboot")


# ============================================================================
# MQTTControlPlane
# ============================================================================

def test_handle_command_success(control_plane, published):
    control_plane.command_registry.register(
        "ping", lambda data: {"pong": data.get("n")}, "Ping"
    )

    response = control_plane.handle_command({"command": "PING", "n": 3})

    assert response["status"] == "ok"
    assert response["command"] == "ping"
    assert response["result"] == {"pong": 3}
    assert response["client_id"] == "test_control"

    # Results are not retained on the status topic
    assert published == [("ok", {"command": "ping", "result": {"pong": 3}}, False)]


def test_handle_unknown_command(control_plane, published):
    control_plane.command_registry.register("status", lambda data: {}, "Status")

    response = control_plane.handle_command({"command": "reboot"})

    assert response["status"] == "error"
    assert response["available_commands"] == ["status"]
    assert published[0][0] == "error"


def test_handle_failing_command(control_plane, published):
    def fails(data):
        raise ValueError("Command 'remove_geofence' requires 'geofence_id'")

    control_plane.command_registry.register("remove_geofence", fails, "Remove")

    response = control_plane.handle_command({"command": "remove_geofence"})

    assert response["status"] == "error"
    assert "geofence_id" in response["error"]


def test_empty_command_is_ignored(control_plane, published):
    assert control_plane.handle_command({}) is None
    assert control_plane.handle_command({"command": ""}) is None
    assert published == []


def test_on_message_decodes_payload(control_plane, published):
    seen = []
    control_plane.command_registry.register("status", lambda data: seen.append(data) or {}, "Status")

    msg = SimpleNamespace(payload=json.dumps({"command": "status"}).encode("utf-8"))
    control_plane._on_message(None, None, msg)

    assert seen == [{"command": "status"}]
    assert published[0][0] == "ok"


@pytest.mark.parametrize("payload", [b"{not json", b'["status"]', b"\xff\xfe"])
def test_on_message_ignores_bad_payloads(control_plane, published, payload):
    control_plane._on_message(None, None, SimpleNamespace(payload=payload))

    assert published == []
