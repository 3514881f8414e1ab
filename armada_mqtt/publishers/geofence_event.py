"""
Geofence Event Publisher
========================

Bounded Context: Geofence Event Message Production

Message Flow:
    Detector -> GeofenceEvent list -> GeofenceEventPublisher -> MQTT Broker

Example:
    >>> from armada_mqtt.publishers import GeofenceEventPublisher
    >>> from armada_mqtt.logging import create_logger
    >>>
    >>> publisher = GeofenceEventPublisher(
    ...     broker_host="localhost",
    ...     topic="armada/data/geofence_events/monitor_1",
    ...     source_id="monitor_1",
    ...     logger=create_logger("monitor")
    ... )
    >>> publisher.connect()
    >>> publisher.publish_events(detector.detect_vehicle_events("v1", (106.8456, -6.2088)))
"""

from typing import Any, Dict, List, Optional

from armada_geofence.events import GeofenceEvent

from .base import BasePublisher
from ..logging import LogEvent, StructuredLogger
from ..schemas import GeofenceEventMessage, Timestamp


class GeofenceEventPublisher(BasePublisher):
    """
    Publisher for geofence event messages.

    Attributes:
        Same as BasePublisher, plus:
        source_id: Monitor service identifier stamped on every message
        schema_version: Current schema version for messages
    """

    def __init__(
        self,
        broker_host: str,
        topic: str,
        source_id: str,
        logger: StructuredLogger,
        broker_port: int = 1883,
        client_id: str = "armada_geofence_event_publisher",
        username: Optional[str] = None,
        password: Optional[str] = None,
        qos: int = 1
    ):
        super().__init__(
            broker_host=broker_host,
            broker_port=broker_port,
            topic=topic,
            client_id=client_id,
            logger=logger,
            username=username,
            password=password,
            qos=qos
        )
        self.source_id = source_id
        self.schema_version = "1.0"

    def build_message(self, events: List[GeofenceEvent]) -> GeofenceEventMessage:
        """Wrap events in a GeofenceEventMessage stamped now."""
        return GeofenceEventMessage(
            schema_version=self.schema_version,
            timestamp=Timestamp.now(),
            source_id=self.source_id,
            events=list(events),
        )

    def format_message(self, event_msg: GeofenceEventMessage) -> Dict[str, Any]:
        """
        Format GeofenceEventMessage to JSON-compatible dict.

        Raises:
            ValueError: If event_msg cannot be serialized
        """
        try:
            formatted = event_msg.to_dict()

            self.logger.debug(
                event=LogEvent.GEOFENCE_EVENT_SERIALIZED,
                message="Serialized geofence event message",
                metadata={
                    'event_count': event_msg.event_count,
                    'violation_count': event_msg.violation_count,
                    'source_id': event_msg.source_id
                }
            )
            return formatted

        except Exception as e:
            self.logger.error(
                event=LogEvent.SERIALIZATION_ERROR,
                message="Failed to serialize geofence event message",
                exc_info=e,
                metadata={'source_id': getattr(event_msg, 'source_id', None)}
            )
            raise ValueError(f"Failed to format geofence event message: {e}")

    def publish_events(self, events: List[GeofenceEvent]) -> bool:
        """
        Publish the events of one sample as a single message.

        Returns:
            True if published (or nothing to publish), False otherwise
        """
        if not events:
            return True

        try:
            return self.publish(self.format_message(self.build_message(events)))
        except Exception as e:
            self.logger.error(
                event=LogEvent.MQTT_PUBLISH_ERROR,
                message="Error publishing geofence event message",
                exc_info=e,
                metadata={
                    'event_ids': [event.event_id for event in events],
                    'topic': self.topic
                }
            )
            return False
