"""
Armada MQTT Communication Package
=================================

Bounded Context: Communication Protocol for Geofence Monitoring

MQTT-based messaging between GPS telemetry sources, the geofence monitor
service and downstream alert consumers.

Architecture:
- schemas/: Immutable data structures with type safety
- publishers/: Message producers (GeofenceEventPublisher)
- subscriber.py: Telemetry consumer (TelemetrySubscriber)
- logging/: Structured JSON logging for observability

Public API
----------
Schemas:
    Timestamp, VehiclePositionMessage, GeofenceEventMessage

Publishers:
    GeofenceEventPublisher
    BasePublisher (for custom publishers)

Subscriber:
    TelemetrySubscriber

Logging:
    LogEvent, StructuredLogger, create_logger
"""

__version__ = "1.0.0"

from .schemas import (
    Timestamp,
    VehiclePositionMessage,
    GeofenceEventMessage,
)

from .publishers import (
    BasePublisher,
    GeofenceEventPublisher,
)

from .subscriber import TelemetrySubscriber

from .logging import (
    LogEvent,
    StructuredLogger,
    create_logger,
)

__all__ = [
    '__version__',
    # Schemas
    'Timestamp',
    'VehiclePositionMessage',
    'GeofenceEventMessage',
    # Publishers
    'BasePublisher',
    'GeofenceEventPublisher',
    # Subscriber
    'TelemetrySubscriber',
    # Logging
    'LogEvent',
    'StructuredLogger',
    'create_logger',
]
