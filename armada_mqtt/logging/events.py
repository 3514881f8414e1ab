"""
Structured Log Event Types
==========================

Bounded Context: Observability Event Taxonomy

Typed event names for structured logging.

Event Naming Convention:
    <component>.<category>.<action>

    component: mqtt, telemetry, geofence, alert, error

Example Log Query (CloudWatch Insights):
    fields @timestamp, event, message, metadata.vehicle_id
    | filter event = "geofence.violation"
    | stats count() by metadata.geofence_id
"""

from enum import Enum


class LogEvent(str, Enum):
    """
    Typed log event names for structured logging.

    Categories:
    - mqtt.*: MQTT broker interactions
    - telemetry.*: Incoming vehicle positions
    - geofence.*: Geofence set changes and transitions
    - alert.*: Alert stream changes
    - error.*: Error conditions
    """

    # ========== MQTT Events ==========
    MQTT_CONNECTED = "mqtt.connected"
    """MQTT broker connection established."""

    MQTT_DISCONNECTED = "mqtt.disconnected"
    """MQTT broker connection lost."""

    MQTT_PUBLISH_SUCCESS = "mqtt.publish.success"
    """Message successfully published to broker."""

    MQTT_PUBLISH_FAILED = "mqtt.publish.failed"
    """Message publication failed."""

    # ========== Telemetry Events ==========
    TELEMETRY_RECEIVED = "telemetry.received"
    """Vehicle position received by subscriber."""

    TELEMETRY_REJECTED = "telemetry.rejected"
    """Malformed vehicle position dropped."""

    # ========== Geofence Events ==========
    GEOFENCE_SET_UPDATED = "geofence.set_updated"
    """Geofence working set replaced."""

    GEOFENCE_REJECTED = "geofence.rejected"
    """Geofence failed validation at registration."""

    GEOFENCE_TRANSITION = "geofence.transition"
    """Vehicle entered or exited a geofence."""

    GEOFENCE_VIOLATION = "geofence.violation"
    """Vehicle broke a geofence rule."""

    GEOFENCE_EVENT_SERIALIZED = "geofence.event.serialized"
    """Geofence event message serialized to JSON."""

    # ========== Alert Events ==========
    ALERT_CREATED = "alert.created"
    """New alert added to the stream."""

    ALERT_ACKNOWLEDGED = "alert.acknowledged"
    """Alert acknowledged by an operator."""

    ALERT_CLEARED = "alert.cleared"
    """Alert stream cleared."""

    # ========== Error Events ==========
    SERIALIZATION_ERROR = "error.serialization"
    """Failed to serialize message to JSON."""

    DESERIALIZATION_ERROR = "error.deserialization"
    """Failed to deserialize message from JSON."""

    SCHEMA_VALIDATION_ERROR = "error.schema_validation"
    """Message failed schema validation."""

    MQTT_CONNECTION_ERROR = "error.mqtt_connection"
    """Failed to connect to MQTT broker."""

    MQTT_PUBLISH_ERROR = "error.mqtt_publish"
    """Error during message publication."""


# Event categories for filtering
MQTT_EVENTS = {
    LogEvent.MQTT_CONNECTED,
    LogEvent.MQTT_DISCONNECTED,
    LogEvent.MQTT_PUBLISH_SUCCESS,
    LogEvent.MQTT_PUBLISH_FAILED,
}

TELEMETRY_EVENTS = {
    LogEvent.TELEMETRY_RECEIVED,
    LogEvent.TELEMETRY_REJECTED,
}

GEOFENCE_EVENTS = {
    LogEvent.GEOFENCE_SET_UPDATED,
    LogEvent.GEOFENCE_REJECTED,
    LogEvent.GEOFENCE_TRANSITION,
    LogEvent.GEOFENCE_VIOLATION,
    LogEvent.GEOFENCE_EVENT_SERIALIZED,
}

ALERT_EVENTS = {
    LogEvent.ALERT_CREATED,
    LogEvent.ALERT_ACKNOWLEDGED,
    LogEvent.ALERT_CLEARED,
}

ERROR_EVENTS = {
    LogEvent.SERIALIZATION_ERROR,
    LogEvent.DESERIALIZATION_ERROR,
    LogEvent.SCHEMA_VALIDATION_ERROR,
    LogEvent.MQTT_CONNECTION_ERROR,
    LogEvent.MQTT_PUBLISH_ERROR,
}
