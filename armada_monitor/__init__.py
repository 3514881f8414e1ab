"""
armada_monitor - Geofence monitor service

Bounded Context: Service wiring
Responsibilities:
  - YAML configuration (MonitorConfig)
  - Backend record adapters (geofence, vehicle, vehicle_datas)
  - GeofenceMonitorService (telemetry -> detector -> alerts -> MQTT)
  - MovementSimulator (synthetic telemetry)
"""

from .config import GeoBounds, MonitorConfig, MQTTConfig, SimulationConfig
from .service import GeofenceMonitorService
from .simulation import MovementSimulator

__all__ = [
    "GeoBounds",
    "MonitorConfig",
    "MQTTConfig",
    "SimulationConfig",
    "GeofenceMonitorService",
    "MovementSimulator",
]
