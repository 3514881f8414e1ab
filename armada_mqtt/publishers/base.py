"""
Base MQTT Publisher
===================

Owns the paho-mqtt client for one outbound topic (geofence events today).
Subclasses only decide what a message looks like; connection state,
JSON encoding and delivery counting live here.

Events go out at QoS 1 by default. Consumers deduplicate redeliveries on
event_id.
"""

import json
import threading
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import paho.mqtt.client as mqtt

from ..logging import LogEvent, StructuredLogger


class BasePublisher(ABC):
    """
    One paho client bound to one topic.

    publish() refuses to queue messages while disconnected; paho would
    otherwise buffer them silently until a reconnect.
    """

    def __init__(
        self,
        broker_host: str,
        broker_port: int,
        topic: str,
        client_id: str,
        logger: StructuredLogger,
        username: Optional[str] = None,
        password: Optional[str] = None,
        qos: int = 1
    ):
        self.broker_host = broker_host
        self.broker_port = broker_port
        self.topic = topic
        self.client_id = client_id
        self.logger = logger
        self.qos = qos

        self.client = mqtt.Client(mqtt.CallbackAPIVersion.VERSION2, client_id=client_id)
        if username and password:
            self.client.username_pw_set(username, password)
        self.client.on_connect = self._on_connect
        self.client.on_disconnect = self._on_disconnect

        self._connected = threading.Event()
        self._message_count = 0
        self._stats_lock = threading.Lock()

    @property
    def broker(self) -> str:
        return f"{self.broker_host}:{self.broker_port}"

    def _on_connect(self, client, userdata, flags, reason_code, properties) -> None:
        if reason_code.is_failure:
            self.logger.error(
                event=LogEvent.MQTT_CONNECTION_ERROR,
                message=f"Broker refused connection ({reason_code})",
                metadata={'broker': self.broker}
            )
            return

        self._connected.set()
        self.logger.info(
            event=LogEvent.MQTT_CONNECTED,
            message=f"Publishing to {self.topic}",
            metadata={'broker': self.broker, 'client_id': self.client_id}
        )

    def _on_disconnect(self, client, userdata, flags, reason_code, properties) -> None:
        self._connected.clear()
        self.logger.warning(
            event=LogEvent.MQTT_DISCONNECTED,
            message="Publisher lost broker connection",
            metadata={'broker': self.broker, 'reason_code': str(reason_code)}
        )

    def connect(self, timeout: float = 10.0) -> bool:
        """
        Connect and start paho's network thread.

        Returns:
            False if the broker is unreachable or CONNACK does not arrive
            within timeout seconds
        """
        try:
            self.client.connect(self.broker_host, self.broker_port)
            self.client.loop_start()
        except Exception as e:
            self.logger.error(
                event=LogEvent.MQTT_CONNECTION_ERROR,
                message=f"Cannot reach broker {self.broker}",
                exc_info=e,
                metadata={'broker': self.broker}
            )
            return False

        if self._connected.wait(timeout=timeout):
            return True

        self.logger.error(
            event=LogEvent.MQTT_CONNECTION_ERROR,
            message=f"No CONNACK from {self.broker} after {timeout}s",
            metadata={'timeout': timeout}
        )
        return False

    def disconnect(self) -> None:
        try:
            self.client.loop_stop()
            self.client.disconnect()
        except Exception as e:
            self.logger.error(
                event=LogEvent.MQTT_CONNECTION_ERROR,
                message="Error while closing publisher",
                exc_info=e
            )
            return

        self.logger.info(
            event=LogEvent.MQTT_DISCONNECTED,
            message="Publisher closed",
            metadata={'message_count': self._message_count}
        )

    def is_connected(self) -> bool:
        return self._connected.is_set()

    @abstractmethod
    def format_message(self, *args, **kwargs) -> Dict[str, Any]:
        """Turn a domain message into a JSON-ready dict."""

    def publish(self, message_data: Dict[str, Any], retain: bool = False) -> bool:
        """
        Send an already formatted message.

        Returns:
            True once paho has accepted the message
        """
        if not self._connected.is_set():
            self.logger.warning(
                event=LogEvent.MQTT_PUBLISH_FAILED,
                message=f"Dropped message for {self.topic}: not connected",
                metadata={'topic': self.topic}
            )
            return False

        try:
            result = self.client.publish(
                topic=self.topic,
                payload=json.dumps(message_data),
                qos=self.qos,
                retain=retain
            )
        except Exception as e:
            self.logger.error(
                event=LogEvent.MQTT_PUBLISH_ERROR,
                message=f"Error publishing to {self.topic}",
                exc_info=e,
                metadata={'topic': self.topic}
            )
            return False

        if result.rc != mqtt.MQTT_ERR_SUCCESS:
            self.logger.warning(
                event=LogEvent.MQTT_PUBLISH_FAILED,
                message=f"paho rejected publish (rc={result.rc})",
                metadata={'topic': self.topic}
            )
            return False

        with self._stats_lock:
            self._message_count += 1
            count = self._message_count
        self.logger.debug(
            event=LogEvent.MQTT_PUBLISH_SUCCESS,
            message=f"Published to {self.topic}",
            metadata={'message_count': count, 'qos': self.qos}
        )
        return True

    def get_stats(self) -> Dict[str, Any]:
        with self._stats_lock:
            return {
                'message_count': self._message_count,
                'connected': self._connected.is_set(),
                'topic': self.topic,
                'broker': self.broker
            }
