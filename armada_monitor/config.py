"""
Configuration schema for the geofence monitor service.

This module defines the configuration structure for the monitor: service
identity, initial geofences and vehicle roster (backend-style records),
MQTT settings, and the movement simulator.
"""

import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml


@dataclass(frozen=True)
class GeoBounds:
    """Lat/lng bounding box in degrees (default: Indonesia)."""

    north: float = 6.0
    south: float = -11.0
    east: float = 141.0
    west: float = 95.0

    def __post_init__(self):
        """Validate bounds."""
        for name in ("north", "south", "east", "west"):
            if not math.isfinite(getattr(self, name)):
                raise ValueError(f"bounds.{name} must be finite")

        if not -90.0 <= self.south < self.north <= 90.0:
            raise ValueError(
                f"bounds must satisfy -90 <= south < north <= 90, "
                f"got south={self.south}, north={self.north}"
            )
        if not -180.0 <= self.west < self.east <= 180.0:
            raise ValueError(
                f"bounds must satisfy -180 <= west < east <= 180, "
                f"got west={self.west}, east={self.east}"
            )


@dataclass(frozen=True)
class SimulationConfig:
    """Movement simulator configuration."""

    enabled: bool = False
    interval_s: float = 5.0
    near_geofence_ratio: float = 0.4
    bounds: GeoBounds = field(default_factory=GeoBounds)
    seed: Optional[int] = None

    def __post_init__(self):
        """Validate simulation configuration."""
        if not self.interval_s > 0:
            raise ValueError(f"interval_s must be > 0, got {self.interval_s}")

        if not 0.0 <= self.near_geofence_ratio <= 1.0:
            raise ValueError(
                f"near_geofence_ratio must be in [0.0, 1.0], got {self.near_geofence_ratio}"
            )


@dataclass(frozen=True)
class MQTTConfig:
    """MQTT broker configuration."""

    broker: str = "localhost"
    port: int = 1883
    username: Optional[str] = None
    password: Optional[str] = None
    qos: int = 1  # Geofence events must not be lost; consumers dedup by event_id

    telemetry_topic: str = "armada/data/telemetry/{service_id}"
    event_topic: str = "armada/data/geofence_events/{service_id}"

    def __post_init__(self):
        """Validate MQTT configuration."""
        if not self.broker:
            raise ValueError("MQTT broker cannot be empty")

        if not 1 <= self.port <= 65535:
            raise ValueError(
                f"MQTT port must be in [1, 65535], got {self.port}"
            )

        if self.qos not in {0, 1, 2}:
            raise ValueError(
                f"MQTT QoS must be 0, 1, or 2, got {self.qos}"
            )


@dataclass(frozen=True)
class MonitorConfig:
    """
    Main configuration for the geofence monitor service.

    Loaded from YAML and validated at startup.
    Immutable after construction (frozen dataclass).
    """

    service_id: str

    # Backend-style records, translated by armada_monitor.adapters
    geofences: List[Dict[str, Any]] = field(default_factory=list)
    vehicles: List[Dict[str, Any]] = field(default_factory=list)

    mqtt_config: MQTTConfig = field(default_factory=MQTTConfig)
    simulation: SimulationConfig = field(default_factory=SimulationConfig)

    log_file: Optional[Path] = None

    def __post_init__(self):
        """Validate monitor configuration."""
        if not self.service_id:
            raise ValueError("service_id cannot be empty")

        for name in ("geofences", "vehicles"):
            records = getattr(self, name)
            if not isinstance(records, list):
                raise ValueError(f"{name} must be a list, got {type(records).__name__}")
            for record in records:
                if not isinstance(record, dict):
                    raise ValueError(
                        f"{name} entries must be mappings, got {type(record).__name__}"
                    )

    # Resolved topics

    @property
    def telemetry_topic(self) -> str:
        return self.mqtt_config.telemetry_topic.format(service_id=self.service_id)

    @property
    def event_topic(self) -> str:
        return self.mqtt_config.event_topic.format(service_id=self.service_id)

    @property
    def command_topic(self) -> str:
        return f"armada/control/{self.service_id}/commands"

    @property
    def status_topic(self) -> str:
        return f"armada/control/{self.service_id}/status"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MonitorConfig":
        """Build configuration from a parsed YAML mapping."""
        if not isinstance(data, dict):
            raise ValueError("Configuration must be a mapping")
        if "service_id" not in data:
            raise ValueError("Missing required config field: service_id")

        mqtt_config = MQTTConfig(**(data.get("mqtt_config") or {}))

        simulation_data = dict(data.get("simulation") or {})
        bounds = GeoBounds(**(simulation_data.pop("bounds", None) or {}))
        simulation = SimulationConfig(bounds=bounds, **simulation_data)

        log_file = data.get("log_file")

        return cls(
            service_id=str(data["service_id"]),
            geofences=list(data.get("geofences") or []),
            vehicles=list(data.get("vehicles") or []),
            mqtt_config=mqtt_config,
            simulation=simulation,
            log_file=Path(log_file) if log_file else None,
        )

    @classmethod
    def from_yaml(cls, yaml_path: Path) -> "MonitorConfig":
        """
        Load configuration from YAML file.

        Example YAML:
            service_id: "monitor_1"

            geofences:
              - geofence_id: 1
                name: "Depot"
                type: "circle"
                rule_type: "FORBIDDEN"
                status: "active"
                definition:
                  type: "Circle"
                  center: [106.8456, -6.2088]
                  radius: 500

            vehicles:
              - vehicle_id: "v1"
                name: "Truck 1"
                license_plate: "B 1234 XYZ"
                gps_id: "gps-001"

            mqtt_config:
              broker: "localhost"
              port: 1883

            simulation:
              enabled: true
              interval_s: 5
              near_geofence_ratio: 0.4
              bounds: {north: 6, south: -11, east: 141, west: 95}

            log_file: "logs/monitor.log"
        """
        with open(yaml_path) as f:
            data = yaml.safe_load(f)

        return cls.from_dict(data or {})
