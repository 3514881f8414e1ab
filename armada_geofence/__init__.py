"""
Armada Geofence Monitor
=======================

Bounded Context: Geofence monitoring for fleet telemetry.

Design Philosophy:
- Separation of Concerns: Geometry, Detection, Analytics separated
- Immutable inputs: geofences and samples are frozen value objects
- Explicit state: the detector owns its containment memory, nothing global
- Fail fast: malformed geofences are rejected at registration, malformed
  samples raise InvalidPositionError

Architecture:

    armada_geofence/
    ├── geometry/          # Pure geometry (immutable, stateless)
    │   ├── shapes.py      # CircleShape, PolygonShape
    │   └── containment.py # Ray casting, haversine
    │
    ├── analytics/         # Stateful memory
    │   ├── state.py       # ContainmentState (per-vehicle locks)
    │   └── alerts.py      # AlertStreamManager, Severity
    │
    ├── models.py          # Geofence, Vehicle, VehiclePosition
    ├── events.py          # EventType, GeofenceEvent, transition table
    ├── registry.py        # GeofenceRegistry (thread-safe working set)
    └── detector.py        # GeofenceEventDetector (orchestration)

Usage:

    from armada_geofence import (
        AlertStreamManager, CircleShape, Geofence,
        GeofenceEventDetector, RuleType,
    )

    detector = GeofenceEventDetector()
    detector.set_geofences([
        Geofence(
            geofence_id="g1",
            name="Depot",
            shape=CircleShape(center=(106.8456, -6.2088), radius_m=500),
            rule_type=RuleType.FORBIDDEN,
        )
    ])

    alerts = AlertStreamManager()
    alerts.ingest(detector.detect_vehicle_events("v1", (106.90, -6.30)))
    alerts.ingest(detector.detect_vehicle_events("v1", (106.8456, -6.2088)))
    alerts.list_unacknowledged()   # one critical violation_enter alert
"""

from armada_geofence.errors import (
    ArmadaGeofenceError,
    InvalidGeofenceError,
    InvalidPositionError,
)

# Geometry Layer (immutable, stateless)
from armada_geofence.geometry import (
    CircleShape,
    PolygonShape,
    haversine_m,
    point_in_circle,
    point_in_polygon,
    is_inside_geofence,
)

# Domain
from armada_geofence.models import (
    Geofence,
    GeofenceStatus,
    RuleType,
    Vehicle,
    VehiclePosition,
)
from armada_geofence.events import EventType, GeofenceEvent, classify_transition
from armada_geofence.registry import GeofenceRegistry, GeofenceRejection, RegistrySnapshot

# Analytics Layer (stateful)
from armada_geofence.analytics import (
    AlertNotification,
    AlertStreamManager,
    ContainmentState,
    Severity,
    classify_severity,
)

# Orchestration
from armada_geofence.detector import GeofenceEventDetector

__all__ = [
    # Errors
    "ArmadaGeofenceError",
    "InvalidGeofenceError",
    "InvalidPositionError",
    # Geometry
    "CircleShape",
    "PolygonShape",
    "haversine_m",
    "point_in_circle",
    "point_in_polygon",
    "is_inside_geofence",
    # Domain
    "Geofence",
    "GeofenceStatus",
    "RuleType",
    "Vehicle",
    "VehiclePosition",
    "EventType",
    "GeofenceEvent",
    "classify_transition",
    # Registry
    "GeofenceRegistry",
    "GeofenceRejection",
    "RegistrySnapshot",
    # Analytics
    "AlertNotification",
    "AlertStreamManager",
    "ContainmentState",
    "Severity",
    "classify_severity",
    # Detection
    "GeofenceEventDetector",
]

__version__ = "1.0.0"
