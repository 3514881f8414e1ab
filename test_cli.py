"""
Test Armada CLI argument handling (no broker).
"""

import pytest

from armada_cli.cli import build_command, build_parser, command_topic, status_topic


def parse(*argv):
    return build_command(build_parser().parse_args(list(argv)))


def test_topics():
    assert command_topic("monitor_1") == "armada/control/monitor_1/commands"
    assert status_topic("monitor_1") == "armada/control/monitor_1/status"


def test_simple_commands():
    assert parse("status") == {"command": "status"}
    assert parse("clear-alerts") == {"command": "clear_alerts"}


def test_commands_with_ids():
    assert parse("remove-geofence", "3") == {"command": "remove_geofence", "geofence_id": "3"}
    assert parse("acknowledge", "v1-1-enter-0") == {
        "command": "acknowledge_alert",
        "alert_id": "v1-1-enter-0",
    }
    assert parse("reset-vehicle", "v1") == {"command": "reset_vehicle", "vehicle_id": "v1"}
    assert parse("vehicle-status", "v1") == {"command": "vehicle_status", "vehicle_id": "v1"}


def test_list_alerts_filters():
    assert parse("list-alerts") == {"command": "list_alerts", "unacknowledged_only": False}
    assert parse("list-alerts", "--unacknowledged", "--severity", "critical") == {
        "command": "list_alerts",
        "unacknowledged_only": True,
        "severity": "critical",
    }


def test_set_geofences_reads_yaml(tmp_path):
    path = tmp_path / "geofences.yaml"
    path.write_text(
        "geofences:\n"
        "  - geofence_id: 9\n"
        "    type: circle\n"
        "    definition: {center: [0, 0], radius: 10}\n"
    )

    command = parse("set-geofences", str(path))

    assert command["command"] == "set_geofences"
    assert command["geofences"][0]["geofence_id"] == 9


def test_set_geofences_requires_list_key(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("service_id: m1\n")

    with pytest.raises(ValueError, match="geofences"):
        parse("set-geofences", str(path))


def test_set_geofences_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        parse("set-geofences", str(tmp_path / "missing.yaml"))


def test_global_options():
    args = build_parser().parse_args(["--service-id", "m2", "--timeout", "1.5", "status"])

    assert args.service_id == "m2"
    assert args.timeout == 1.5
    assert args.broker == "localhost"
