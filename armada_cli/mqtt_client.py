"""
MQTT client wrapper for sending commands to the geofence monitor.

Handles MQTT connection, publishing, response wait, and disconnection.
"""

import json
import threading
from typing import Any, Dict, Optional

import paho.mqtt.client as mqtt


class MQTTCommandClient:
    """
    MQTT client for sending commands to the geofence monitor.

    Publishes commands to the control plane topic with QoS 1 and can wait
    for the command result the monitor publishes on its status topic.
    """

    def __init__(
        self,
        broker: str = "localhost",
        port: int = 1883,
        username: Optional[str] = None,
        password: Optional[str] = None
    ):
        self.broker = broker
        self.port = port

        self.client = mqtt.Client(mqtt.CallbackAPIVersion.VERSION2)

        if username and password:
            self.client.username_pw_set(username, password)

        self._response: Optional[Dict[str, Any]] = None
        self._response_event = threading.Event()
        self._expected_command: Optional[str] = None

    def _on_message(self, client, userdata, msg) -> None:
        # Retained messages are the last service status, not our result
        if msg.retain:
            return
        try:
            data = json.loads(msg.payload.decode('utf-8'))
        except (UnicodeDecodeError, json.JSONDecodeError):
            return
        if isinstance(data, dict) and data.get('command') == self._expected_command:
            self._response = data
            self._response_event.set()

    def send_command(
        self,
        topic: str,
        command: Dict[str, Any],
        qos: int = 1,
        response_topic: Optional[str] = None,
        timeout: float = 5.0
    ) -> Optional[Dict[str, Any]]:
        """
        Send command to MQTT topic.

        Args:
            topic: Command topic (e.g., "armada/control/monitor_1/commands")
            command: Command dictionary (will be JSON serialized)
            qos: Quality of Service (default: 1 for control commands)
            response_topic: Status topic to wait on for the result (optional)
            timeout: Seconds to wait for publish and response

        Returns:
            Response payload, or None if not waiting / timed out

        Raises:
            ConnectionError: If unable to connect to MQTT broker
            ValueError: If command serialization fails
        """
        try:
            payload = json.dumps(command)
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid command data: {e}")

        try:
            self.client.connect(self.broker, self.port, keepalive=60)
        except (ConnectionRefusedError, OSError):
            raise ConnectionError(
                f"Unable to connect to MQTT broker at {self.broker}:{self.port}. "
                "Is mosquitto running?"
            )

        self.client.loop_start()
        try:
            if response_topic:
                self._expected_command = command.get('command')
                self._response = None
                self._response_event.clear()
                self.client.on_message = self._on_message
                self.client.subscribe(response_topic, qos=1)

            result = self.client.publish(topic, payload, qos=qos)
            result.wait_for_publish(timeout=timeout)
            print(f"✅ Command sent: {command.get('command', 'unknown')}")

            if response_topic and self._response_event.wait(timeout=timeout):
                return self._response
            return None

        finally:
            self.client.loop_stop()
            self.client.disconnect()
