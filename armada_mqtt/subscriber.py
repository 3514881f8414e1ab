"""
Telemetry Subscriber
====================

Bounded Context: Message Consumption

Receives vehicle positions from the broker and hands them to the monitor.

Design:
- Callback-based (callbacks run in the paho-mqtt network thread)
- Automatic deserialization with error handling: a bad message is logged
  and dropped, the subscriber keeps listening
- Two payload shapes on the telemetry topic:
    * VehiclePositionMessage {vehicle_id, longitude, latitude, timestamp}
    * raw backend `vehicle_datas` row keyed by gps_id (forwarded as dict)

Example:
    >>> subscriber = TelemetrySubscriber(
    ...     broker_host="localhost",
    ...     telemetry_topic="armada/data/telemetry/monitor_1",
    ...     on_position=lambda msg: print(msg.vehicle_id, msg.coordinates),
    ...     logger=create_logger("subscriber")
    ... )
    >>> subscriber.connect()
    >>> subscriber.start()
    >>> # ...
    >>> subscriber.stop()
"""

import json
import threading
from typing import Any, Callable, Dict, Optional

import paho.mqtt.client as mqtt

from .logging import LogEvent, StructuredLogger
from .schemas import VehiclePositionMessage


class TelemetrySubscriber:
    """
    MQTT subscriber for vehicle telemetry.

    Attributes:
        broker_host: MQTT broker hostname
        broker_port: MQTT broker port
        telemetry_topic: Topic (or wildcard) carrying vehicle positions
        on_position: Callback for VehiclePositionMessage
        on_vehicle_data: Callback for raw gps_id-keyed rows (optional)

    Thread Safety:
        Thread-safe via paho-mqtt's loop_start() and threading.Event
    """

    def __init__(
        self,
        broker_host: str,
        telemetry_topic: str,
        on_position: Callable[[VehiclePositionMessage], None],
        logger: StructuredLogger,
        on_vehicle_data: Optional[Callable[[Dict[str, Any]], None]] = None,
        broker_port: int = 1883,
        client_id: str = "armada_telemetry_subscriber",
        username: Optional[str] = None,
        password: Optional[str] = None,
        qos: int = 0
    ):
        """
        Initialize telemetry subscriber.

        Design Note:
            Callbacks are invoked in MQTT thread. Keep them fast or dispatch
            to worker threads if processing is heavy.
        """
        self.broker_host = broker_host
        self.broker_port = broker_port
        self.telemetry_topic = telemetry_topic
        self.client_id = client_id
        self.logger = logger
        self.qos = qos

        self.on_position = on_position
        self.on_vehicle_data = on_vehicle_data

        self.client = mqtt.Client(mqtt.CallbackAPIVersion.VERSION2, client_id=client_id)
        if username and password:
            self.client.username_pw_set(username, password)

        self.client.on_connect = self._on_connect
        self.client.on_disconnect = self._on_disconnect
        self.client.on_message = self._on_message

        self._connected = threading.Event()
        self._running = False
        self._stats_lock = threading.Lock()
        self._message_count = {'received': 0, 'rejected': 0}

    @property
    def broker(self) -> str:
        return f"{self.broker_host}:{self.broker_port}"

    def _on_connect(self, client, userdata, flags, reason_code, properties) -> None:
        """Subscribe on every (re)connect so subscriptions survive reconnects."""
        if not reason_code.is_failure:
            self._connected.set()
            client.subscribe(self.telemetry_topic, qos=self.qos)
            self.logger.info(
                event=LogEvent.MQTT_CONNECTED,
                message="Connected to MQTT broker and subscribed to telemetry",
                metadata={
                    'broker': self.broker,
                    'telemetry_topic': self.telemetry_topic
                }
            )
        else:
            self.logger.error(
                event=LogEvent.MQTT_CONNECTION_ERROR,
                message=f"Failed to connect to broker ({reason_code})",
                metadata={'broker': self.broker}
            )

    def _on_disconnect(self, client, userdata, flags, reason_code, properties) -> None:
        self._connected.clear()
        self.logger.warning(
            event=LogEvent.MQTT_DISCONNECTED,
            message="Disconnected from MQTT broker",
            metadata={
                'broker': self.broker,
                'reason_code': str(reason_code)
            }
        )

    def _on_message(self, client, userdata, msg: mqtt.MQTTMessage) -> None:
        """Decode JSON and dispatch to the telemetry handler."""
        try:
            data = json.loads(msg.payload.decode('utf-8'))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            self._count('rejected')
            self.logger.error(
                event=LogEvent.DESERIALIZATION_ERROR,
                message="Failed to decode JSON message",
                exc_info=e,
                metadata={'topic': msg.topic}
            )
            return

        self._handle_telemetry_message(data)

    def _count(self, key: str) -> None:
        with self._stats_lock:
            self._message_count[key] += 1

    def _handle_telemetry_message(self, data: Any) -> None:
        """
        Handle one decoded telemetry payload.

        Args:
            data: JSON data (dict expected)
        """
        if not isinstance(data, dict):
            self._count('rejected')
            self.logger.error(
                event=LogEvent.SCHEMA_VALIDATION_ERROR,
                message="Telemetry payload must be a JSON object",
                metadata={'payload_type': type(data).__name__}
            )
            return

        # Raw backend rows identify the device, not the vehicle
        if 'vehicle_id' not in data and 'gps_id' in data and self.on_vehicle_data:
            self._count('received')
            self._invoke(self.on_vehicle_data, data)
            return

        try:
            position_msg = VehiclePositionMessage.from_dict(data)
        except ValueError as e:
            self._count('rejected')
            self.logger.error(
                event=LogEvent.SCHEMA_VALIDATION_ERROR,
                message="Telemetry message failed schema validation",
                exc_info=e,
                metadata={'data': data}
            )
            return

        self._count('received')
        self.logger.debug(
            event=LogEvent.TELEMETRY_RECEIVED,
            message="Received vehicle position",
            metadata={
                'vehicle_id': position_msg.vehicle_id,
                'coordinates': list(position_msg.coordinates)
            }
        )
        self._invoke(self.on_position, position_msg)

    def _invoke(self, callback: Callable[[Any], None], payload: Any) -> None:
        try:
            callback(payload)
        except Exception as e:
            self.logger.error(
                event=LogEvent.DESERIALIZATION_ERROR,
                message="Error handling telemetry message",
                exc_info=e
            )

    def connect(self, timeout: float = 10.0) -> bool:
        """
        Connect to MQTT broker and start the network loop.

        Returns:
            True if connected successfully, False otherwise
        """
        try:
            self.client.connect(self.broker_host, self.broker_port)
            self.client.loop_start()

            if self._connected.wait(timeout=timeout):
                return True

            self.logger.error(
                event=LogEvent.MQTT_CONNECTION_ERROR,
                message="Connection timeout",
                metadata={'timeout': timeout}
            )
            return False

        except Exception as e:
            self.logger.error(
                event=LogEvent.MQTT_CONNECTION_ERROR,
                message="Failed to connect to broker",
                exc_info=e,
                metadata={'broker': self.broker}
            )
            return False

    def start(self) -> None:
        """Mark the subscriber as listening (network loop started by connect)."""
        if not self._connected.is_set():
            self.logger.warning(
                event=LogEvent.MQTT_CONNECTION_ERROR,
                message="Cannot start: not connected to broker"
            )
            return

        self._running = True
        self.logger.info(
            event=LogEvent.MQTT_CONNECTED,
            message="Subscriber started (listening for telemetry)",
            metadata={'telemetry_topic': self.telemetry_topic}
        )

    def stop(self) -> None:
        """Stop network loop and disconnect."""
        self._running = False
        self.client.loop_stop()
        self.client.disconnect()

        self.logger.info(
            event=LogEvent.MQTT_DISCONNECTED,
            message="Subscriber stopped",
            metadata=self.get_stats()
        )

    def is_connected(self) -> bool:
        return self._connected.is_set()

    def is_running(self) -> bool:
        return self._running

    def get_stats(self) -> Dict[str, Any]:
        """
        Get subscriber statistics.

        Returns:
            Dictionary with message counts and connection status
        """
        with self._stats_lock:
            return {
                'telemetry_received': self._message_count['received'],
                'telemetry_rejected': self._message_count['rejected'],
                'connected': self._connected.is_set(),
                'running': self._running,
                'telemetry_topic': self.telemetry_topic,
                'broker': self.broker
            }
