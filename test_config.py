"""
Test Monitor Configuration
==========================

YAML loading, defaults, topic resolution and validation errors.
"""

from pathlib import Path

import pytest

from armada_monitor import GeoBounds, MonitorConfig, MQTTConfig, SimulationConfig

CONFIG_DIR = Path(__file__).parent / "config"


def write_yaml(tmp_path, text):
    path = tmp_path / "monitor_config.yaml"
    path.write_text(text)
    return path


def test_minimal_config_uses_defaults(tmp_path):
    config = MonitorConfig.from_yaml(write_yaml(tmp_path, 'service_id: "m1"\n'))

    assert config.service_id == "m1"
    assert config.geofences == []
    assert config.vehicles == []
    assert config.mqtt_config == MQTTConfig()
    assert config.simulation.enabled is False
    assert config.simulation.bounds == GeoBounds()
    assert config.log_file is None


def test_topics_are_resolved_per_service(tmp_path):
    config = MonitorConfig.from_yaml(write_yaml(tmp_path, 'service_id: "m1"\n'))

    assert config.telemetry_topic == "armada/data/telemetry/m1"
    assert config.event_topic == "armada/data/geofence_events/m1"
    assert config.command_topic == "armada/control/m1/commands"
    assert config.status_topic == "armada/control/m1/status"


def test_full_config(tmp_path):
    path = write_yaml(tmp_path, """
service_id: "monitor_1"
geofences:
  - geofence_id: 1
    name: "Depot"
    type: "circle"
    rule_type: "FORBIDDEN"
    definition: {center: [106.8456, -6.2088], radius: 500}
vehicles:
  - vehicle_id: "v1"
    name: "Truck 1"
    gps_id: "gps-001"
mqtt_config:
  broker: "mqtt.internal"
  port: 8883
  qos: 2
  event_topic: "fleet/{service_id}/events"
simulation:
  enabled: true
  interval_s: 0.5
  seed: 7
  bounds: {north: 1, south: -1, east: 1, west: -1}
log_file: "logs/monitor.log"
""")

    config = MonitorConfig.from_yaml(path)

    assert len(config.geofences) == 1
    assert config.vehicles[0]["gps_id"] == "gps-001"
    assert config.mqtt_config.broker == "mqtt.internal"
    assert config.mqtt_config.qos == 2
    assert config.event_topic == "fleet/monitor_1/events"
    assert config.simulation.enabled is True
    assert config.simulation.seed == 7
    assert config.simulation.bounds == GeoBounds(north=1, south=-1, east=1, west=-1)
    assert config.log_file == Path("logs/monitor.log")


def test_shipped_config_loads():
    config = MonitorConfig.from_yaml(CONFIG_DIR / "armada_monitor" / "monitor_config.yaml")

    assert config.service_id
    assert config.geofences
    assert config.vehicles


def test_missing_service_id(tmp_path):
    with pytest.raises(ValueError, match="service_id"):
        MonitorConfig.from_yaml(write_yaml(tmp_path, "geofences: []\n"))


def test_non_mapping_config():
    with pytest.raises(ValueError):
        MonitorConfig.from_dict(["service_id", "m1"])


def test_records_must_be_mappings():
    with pytest.raises(ValueError, match="geofences"):
        MonitorConfig(service_id="m1", geofences=["depot"])


@pytest.mark.parametrize(
    "kwargs",
    [
        {"broker": ""},
        {"port": 0},
        {"port": 70000},
        {"qos": 3},
    ],
)
def test_invalid_mqtt_config(kwargs):
    with pytest.raises(ValueError):
        MQTTConfig(**kwargs)


@pytest.mark.parametrize(
    "kwargs",
    [
        {"interval_s": 0},
        {"near_geofence_ratio": 1.5},
        {"near_geofence_ratio": -0.1},
    ],
)
def test_invalid_simulation_config(kwargs):
    with pytest.raises(ValueError):
        SimulationConfig(**kwargs)


@pytest.mark.parametrize(
    "kwargs",
    [
        {"north": -20.0},
        {"east": 90.0},
        {"north": float("inf")},
        {"south": -91.0},
    ],
)
def test_invalid_bounds(kwargs):
    with pytest.raises(ValueError):
        GeoBounds(**kwargs)
