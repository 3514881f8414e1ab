"""
Geofence Monitor Service - telemetry to geofence alerts orchestrator.

This module provides the GeofenceMonitorService class which wires the
complete flow: telemetry intake (MQTT subscriber or simulator), geofence
transition detection, the alert stream, and MQTT publishing of events.

Architecture:
- GeofenceEventDetector owns registry + containment state
- AlertStreamManager accumulates alerts (idempotent on event id)
- MQTT publishing in dedicated thread fed by a bounded queue
- Control plane commands manage geofences, alerts and vehicle state

Threading Model:
- paho-mqtt subscriber thread (calls on_position_message)
- Movement simulator thread (optional, calls process_position)
- MQTT Publisher Thread (our thread)
- Control Plane Thread (paho-mqtt internal, command handlers)
"""

import logging
import queue
import threading
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from armada_geofence.analytics.alerts import AlertNotification, AlertStreamManager, Severity
from armada_geofence.detector import GeofenceEventDetector
from armada_geofence.errors import InvalidPositionError
from armada_geofence.events import GeofenceEvent
from armada_geofence.models import VehiclePosition
from armada_monitor import adapters
from armada_monitor.config import MonitorConfig
from armada_monitor.simulation import MovementSimulator
from armada_mqtt.logging import LogEvent, StructuredLogger
from armada_mqtt.schemas import VehiclePositionMessage

logger = logging.getLogger(__name__)


class GeofenceMonitorService:
    """
    Main geofence monitoring service.

    Thread Safety:
    - detector: registry lock + per-vehicle containment locks
    - alerts: internal lock
    - publish_queue: Thread-safe queue.Queue
    - roster (_gps_index): replaced atomically under _roster_lock

    Usage:
        config = MonitorConfig.from_yaml("monitor_config.yaml")
        service = GeofenceMonitorService(
            config=config,
            control_plane=MQTTControlPlane(...),
            event_publisher=GeofenceEventPublisher(...),
            subscriber=TelemetrySubscriber(..., on_position=service.on_position_message),
        )

        service.setup()
        service.start()
        service.wait()   # Blocks until stopped
    """

    def __init__(
        self,
        config: MonitorConfig,
        control_plane=None,  # MQTTControlPlane
        event_publisher=None,  # GeofenceEventPublisher
        subscriber=None,  # TelemetrySubscriber
        detector: Optional[GeofenceEventDetector] = None,
        alerts: Optional[AlertStreamManager] = None,
        event_logger: Optional[StructuredLogger] = None,
    ):
        """
        Initialize monitor service.

        Any of control_plane, event_publisher and subscriber may be None
        (offline mode: samples are fed through process_position()).
        """
        self.config = config
        self.control_plane = control_plane
        self.event_publisher = event_publisher
        self.subscriber = subscriber

        self.detector = detector or GeofenceEventDetector()
        self.alerts = alerts or AlertStreamManager()
        self.event_logger = event_logger or StructuredLogger(component="monitor")
        self.alerts.add_listener(self._on_new_alert)

        self._gps_index: Dict[str, str] = {}
        self._vehicle_ids: List[str] = []
        self._roster_lock = threading.Lock()

        self.simulator: Optional[MovementSimulator] = None
        if config.simulation.enabled:
            self.simulator = self._create_simulator()

        # MQTT publishing
        self.publish_queue: "queue.Queue[List[GeofenceEvent]]" = queue.Queue(maxsize=512)
        self.publisher_thread: Optional[threading.Thread] = None
        self.stop_event = threading.Event()

        self._running = False
        self._rejected_samples = 0
        self._stats_lock = threading.Lock()

        logger.info(
            f"GeofenceMonitorService initialized for service_id={config.service_id}"
        )

    def _create_simulator(self) -> MovementSimulator:
        return MovementSimulator(
            vehicle_ids=self.vehicle_ids,
            geofences=lambda: self.detector.registry.snapshot().geofences,
            sink=self.process_position,
            config=self.config.simulation,
        )

    # ─────────────────────────────────────────────────────────────────────
    # Setup
    # ─────────────────────────────────────────────────────────────────────

    def setup(self) -> None:
        """
        Load initial geofences and roster from config and register command
        handlers. Must be called before start().
        """
        self.load_vehicle_records(self.config.vehicles)
        self.load_geofence_records(self.config.geofences)

        if self.control_plane is not None:
            self._setup_control_handlers()

        logger.info("Monitor setup complete")

    def load_geofence_records(self, records: Sequence[Dict[str, Any]]) -> Dict[str, Any]:
        """
        Replace the geofence working set from backend records.

        Returns:
            Summary with registered ids and rejections
        """
        geofences, rejections = adapters.geofences_from_records(records)
        rejections = rejections + self.detector.set_geofences(geofences)

        for rejection in rejections:
            self.event_logger.warning(
                event=LogEvent.GEOFENCE_REJECTED,
                message=f"Geofence {rejection.geofence_id} rejected",
                metadata={'geofence_id': rejection.geofence_id, 'reason': rejection.reason}
            )

        registered = sorted(self.detector.registry.list_geofences().keys())
        self.event_logger.info(
            event=LogEvent.GEOFENCE_SET_UPDATED,
            message=f"Geofence set updated: {len(registered)} registered",
            metadata={'registered': registered, 'rejected': len(rejections)}
        )

        return {
            'registered': registered,
            'rejected': [
                {'geofence_id': r.geofence_id, 'reason': r.reason} for r in rejections
            ],
        }

    def load_vehicle_records(self, records: Sequence[Dict[str, Any]]) -> int:
        """Replace the vehicle roster. Returns the number of vehicles loaded."""
        vehicles = adapters.vehicles_from_records(records)
        self.detector.set_vehicles(vehicles)

        with self._roster_lock:
            self._gps_index = adapters.build_gps_index(vehicles)
            self._vehicle_ids = [v.vehicle_id for v in vehicles]

        logger.info(f"Vehicle roster loaded: {len(vehicles)} vehicles")
        return len(vehicles)

    def vehicle_ids(self) -> List[str]:
        with self._roster_lock:
            return list(self._vehicle_ids)

    def _setup_control_handlers(self) -> None:
        registry = self.control_plane.command_registry

        registry.register("set_geofences", self._handle_set_geofences, "Replace the geofence set")
        registry.register("remove_geofence", self._handle_remove_geofence, "Remove one geofence")
        registry.register("acknowledge_alert", self._handle_acknowledge_alert, "Acknowledge an alert")
        registry.register("clear_alerts", self._handle_clear_alerts, "Remove every alert")
        registry.register("list_alerts", self._handle_list_alerts, "List alerts")
        registry.register("reset_vehicle", self._handle_reset_vehicle, "Forget a vehicle's containment state")
        registry.register("vehicle_status", self._handle_vehicle_status, "Containment state of a vehicle")
        registry.register("status", self._handle_status, "Service status")

        logger.info("Control handlers registered")

    # ─────────────────────────────────────────────────────────────────────
    # Telemetry intake
    # ─────────────────────────────────────────────────────────────────────

    def process_position(self, position: VehiclePosition) -> List[GeofenceEvent]:
        """
        Run one validated sample through detector, alert stream and publisher.

        Returns:
            Events detected for the sample
        """
        events = self.detector.detect_position(position)
        if not events:
            return events

        for event in events:
            self._log_event(event)

        self.alerts.ingest(events)
        self._enqueue(events)
        return events

    def handle_sample(
        self,
        vehicle_id: str,
        coordinates: Sequence[float],
        timestamp: Optional[datetime] = None
    ) -> List[GeofenceEvent]:
        """Validate a raw sample and process it; malformed samples are dropped."""
        try:
            position = VehiclePosition.create(vehicle_id, coordinates, timestamp)
        except InvalidPositionError as e:
            self._reject_sample(e)
            return []
        return self.process_position(position)

    def on_position_message(self, msg: VehiclePositionMessage) -> None:
        """TelemetrySubscriber callback (MQTT thread)."""
        try:
            position = adapters.position_from_message(msg)
        except InvalidPositionError as e:
            self._reject_sample(e)
            return
        self.process_position(position)

    def on_vehicle_data(self, row: Dict[str, Any]) -> None:
        """TelemetrySubscriber callback for raw gps_id-keyed rows (MQTT thread)."""
        with self._roster_lock:
            gps_index = self._gps_index
        try:
            position = adapters.position_from_vehicle_data(row, gps_index)
        except InvalidPositionError as e:
            self._reject_sample(e)
            return
        self.process_position(position)

    def _reject_sample(self, error: InvalidPositionError) -> None:
        with self._stats_lock:
            self._rejected_samples += 1
        self.event_logger.warning(
            event=LogEvent.TELEMETRY_REJECTED,
            message="Dropped malformed telemetry sample",
            metadata={'vehicle_id': error.vehicle_id, 'reason': error.reason}
        )

    def _log_event(self, event: GeofenceEvent) -> None:
        metadata = {
            'event_id': event.event_id,
            'vehicle_id': event.vehicle_id,
            'geofence_id': event.geofence_id,
            'event_type': event.event_type.value,
            'rule': event.rule_triggered.value,
            'position': list(event.position),
        }
        message = f"{event.vehicle_name} {event.event_type.value} {event.geofence_name}"

        if event.is_violation:
            self.event_logger.warning(
                event=LogEvent.GEOFENCE_VIOLATION, message=message, metadata=metadata
            )
        else:
            self.event_logger.info(
                event=LogEvent.GEOFENCE_TRANSITION, message=message, metadata=metadata
            )

    def _on_new_alert(self, alert: AlertNotification) -> None:
        self.event_logger.info(
            event=LogEvent.ALERT_CREATED,
            message=f"Alert created: {alert.id}",
            metadata={'alert_id': alert.id, 'severity': alert.to_dict()['severity']}
        )

    # ─────────────────────────────────────────────────────────────────────
    # Publishing
    # ─────────────────────────────────────────────────────────────────────

    def _enqueue(self, events: List[GeofenceEvent]) -> None:
        if self.event_publisher is None:
            return
        try:
            self.publish_queue.put_nowait(events)
        except queue.Full:
            logger.warning(f"Publish queue full, dropping {len(events)} event(s)")

    def _publish_loop(self) -> None:
        """
        MQTT publisher thread loop.

        Batches still queued when stop_event is set are flushed before the
        loop returns, so events detected just before shutdown still go out.
        """
        logger.info("MQTT publisher loop started")

        while not self.stop_event.is_set():
            try:
                events = self.publish_queue.get(timeout=0.1)
            except queue.Empty:
                continue

            self._publish_batch(events)

        flushed = 0
        while True:
            try:
                events = self.publish_queue.get_nowait()
            except queue.Empty:
                break
            self._publish_batch(events)
            flushed += 1
        if flushed:
            logger.info(f"Flushed {flushed} queued event batches on shutdown")

        logger.info("MQTT publisher loop stopped")

    def _publish_batch(self, events) -> None:
        try:
            self.event_publisher.publish_events(events)
        except Exception as e:
            logger.error(f"Error publishing geofence events: {e}", exc_info=True)

    # ─────────────────────────────────────────────────────────────────────
    # Lifecycle
    # ─────────────────────────────────────────────────────────────────────

    def start(self) -> None:
        """
        Start the service (non-blocking).

        Lifecycle:
        1. Connect control plane
        2. Connect event publisher, start publisher thread
        3. Connect telemetry subscriber
        4. Start simulator (if enabled)
        """
        if self._running:
            logger.warning("Service already running")
            return

        logger.info("Starting geofence monitor service")
        self.stop_event.clear()

        if self.control_plane is not None:
            if not self.control_plane.connect(timeout=5.0):
                raise RuntimeError("Failed to connect to MQTT broker (control plane)")

        if self.event_publisher is not None:
            self.event_publisher.connect()
            self.publisher_thread = threading.Thread(
                target=self._publish_loop,
                name="MQTTPublisherThread",
                daemon=True
            )
            self.publisher_thread.start()
            logger.info("MQTT publisher thread started")

        if self.subscriber is not None:
            if self.subscriber.connect():
                self.subscriber.start()
            else:
                logger.error("Telemetry subscriber failed to connect")

        if self.simulator is not None:
            self.simulator.start()

        self._running = True

        if self.control_plane is not None:
            self.control_plane.publish_status("running")
        logger.info("✅ Geofence monitor service started")

    def wait(self) -> None:
        """Block until stop() is called (or KeyboardInterrupt)."""
        if not self._running:
            logger.warning("Service not running")
            return

        try:
            while not self.stop_event.wait(timeout=1.0):
                pass
        except KeyboardInterrupt:
            logger.info("Received KeyboardInterrupt, stopping...")
            self.stop()

    def stop(self) -> None:
        """Stop all components gracefully (reverse start order)."""
        if not self._running:
            logger.warning("Service not running")
            return

        logger.info("Stopping geofence monitor service")

        if self.simulator is not None:
            self.simulator.stop()

        if self.subscriber is not None:
            try:
                self.subscriber.stop()
            except Exception as e:
                logger.error(f"Error stopping subscriber: {e}")

        self.stop_event.set()
        if self.publisher_thread is not None:
            self.publisher_thread.join(timeout=5.0)
            self.publisher_thread = None
            logger.info("MQTT publisher thread stopped")

        if self.event_publisher is not None:
            self.event_publisher.disconnect()

        if self.control_plane is not None:
            self.control_plane.publish_status("stopped")
            self.control_plane.disconnect()

        self._running = False
        logger.info("✅ Geofence monitor service stopped")

    def is_running(self) -> bool:
        return self._running

    def get_status(self) -> Dict[str, Any]:
        """Service status snapshot."""
        with self._stats_lock:
            rejected = self._rejected_samples
        return {
            'service_id': self.config.service_id,
            'running': self._running,
            'geofences': self.detector.registry.list_geofences(),
            'vehicles': len(self.vehicle_ids()),
            'tracked_vehicles': len(self.detector.state),
            'rejected_samples': rejected,
            'publish_queue_size': self.publish_queue.qsize(),
            'simulation': self.simulator is not None and self.simulator.is_running(),
            'alerts': self.alerts.get_stats(),
        }

    # ─────────────────────────────────────────────────────────────────────
    # Command Handlers (called by Control Plane Thread)
    # ─────────────────────────────────────────────────────────────────────

    @staticmethod
    def _require(command: Dict[str, Any], key: str) -> Any:
        value = command.get(key)
        if value is None or value == "":
            raise ValueError(f"Command '{command.get('command')}' requires '{key}'")
        return value

    def _handle_set_geofences(self, command: Dict[str, Any]) -> Dict[str, Any]:
        records = self._require(command, "geofences")
        if not isinstance(records, list):
            raise ValueError("'geofences' must be a list of geofence records")
        summary = self.load_geofence_records(records)
        logger.info(f"Geofences replaced: {summary['registered']}")
        return summary

    def _handle_remove_geofence(self, command: Dict[str, Any]) -> Dict[str, Any]:
        geofence_id = str(self._require(command, "geofence_id"))
        removed = self.detector.remove_geofence(geofence_id)
        logger.info(f"Geofence removed: {geofence_id} (found={removed})")
        return {'geofence_id': geofence_id, 'removed': removed}

    def _handle_acknowledge_alert(self, command: Dict[str, Any]) -> Dict[str, Any]:
        alert_id = str(self._require(command, "alert_id"))
        acknowledged = self.alerts.acknowledge(alert_id)
        if acknowledged:
            self.event_logger.info(
                event=LogEvent.ALERT_ACKNOWLEDGED,
                message=f"Alert acknowledged: {alert_id}",
                metadata={'alert_id': alert_id}
            )
        return {'alert_id': alert_id, 'acknowledged': acknowledged}

    def _handle_clear_alerts(self, command: Dict[str, Any]) -> Dict[str, Any]:
        cleared = len(self.alerts)
        self.alerts.clear_all()
        self.event_logger.info(
            event=LogEvent.ALERT_CLEARED,
            message=f"Cleared {cleared} alerts",
            metadata={'cleared': cleared}
        )
        return {'cleared': cleared}

    def _handle_list_alerts(self, command: Dict[str, Any]) -> Dict[str, Any]:
        severity = command.get("severity")
        if severity:
            alerts = self.alerts.alerts_by_severity(Severity(severity))
        elif command.get("unacknowledged_only"):
            alerts = self.alerts.list_unacknowledged()
        else:
            alerts = self.alerts.alerts

        if severity and command.get("unacknowledged_only"):
            alerts = [a for a in alerts if not a.acknowledged]

        return {'alerts': [alert.to_dict() for alert in alerts]}

    def _handle_reset_vehicle(self, command: Dict[str, Any]) -> Dict[str, Any]:
        vehicle_id = str(self._require(command, "vehicle_id"))
        reset = self.detector.reset_vehicle(vehicle_id)
        logger.info(f"Vehicle state reset: {vehicle_id} (found={reset})")
        return {'vehicle_id': vehicle_id, 'reset': reset}

    def _handle_vehicle_status(self, command: Dict[str, Any]) -> Dict[str, Any]:
        vehicle_id = str(self._require(command, "vehicle_id"))
        return {'vehicle_id': vehicle_id, 'geofences': self.detector.vehicle_status(vehicle_id)}

    def _handle_status(self, command: Dict[str, Any]) -> Dict[str, Any]:
        return self.get_status()
