#!/usr/bin/env python3
"""
Geofence Monitor Service - Entry Point
======================================

This script starts the Armada geofence monitor, which:
- Consumes vehicle telemetry from MQTT (and/or the movement simulator)
- Detects geofence enter/exit transitions and rule violations
- Keeps an acknowledgeable alert stream
- Publishes geofence events to MQTT
- Responds to control commands via MQTT control plane

Usage:
    python run_monitor.py --config config/armada_monitor/monitor_config.yaml

Lifecycle:
    1. Load configuration from YAML
    2. Setup logging (console + file)
    3. Create control plane, publisher and subscriber
    4. Create GeofenceMonitorService and load geofences/roster
    5. Start service (non-blocking)
    6. Wait for stop signal (Ctrl+C or SIGTERM)
    7. Graceful shutdown
"""

import argparse
import logging
import signal
import sys
from dataclasses import replace
from pathlib import Path
from typing import Optional

from armada_control import MQTTControlPlane
from armada_monitor import GeofenceMonitorService, MonitorConfig
from armada_mqtt import GeofenceEventPublisher, TelemetrySubscriber, create_logger


# ─────────────────────────────────────────────────────────────────────────────
# Logging Setup
# ─────────────────────────────────────────────────────────────────────────────

def setup_logging(log_file: Optional[Path] = None, level: int = logging.INFO) -> logging.Logger:
    """
    Setup logging for the monitor service.

    Args:
        log_file: Optional path to log file
        level: Root logging level
    """
    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)

    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(sys.stdout),
            *(
                [logging.FileHandler(log_file)]
                if log_file
                else []
            )
        ]
    )

    return logging.getLogger(__name__)


# ─────────────────────────────────────────────────────────────────────────────
# Main Service
# ─────────────────────────────────────────────────────────────────────────────

class MonitorApp:
    """
    Main application wrapper for GeofenceMonitorService.

    Handles:
    - Configuration loading
    - Component initialization (control plane, publisher, subscriber)
    - Signal handling (SIGTERM, SIGINT)
    - Graceful shutdown
    """

    def __init__(
        self,
        config_path: Path,
        log_file: Optional[Path] = None,
        file_logging: bool = True,
        simulate: bool = False
    ):
        self.config_path = config_path
        self.simulate = simulate

        self.config: Optional[MonitorConfig] = MonitorConfig.from_yaml(config_path)
        if file_logging:
            log_file = log_file or self.config.log_file
        else:
            log_file = None
        self.logger = setup_logging(log_file)

        self.control_plane: Optional[MQTTControlPlane] = None
        self.service: Optional[GeofenceMonitorService] = None

        self._shutdown_requested = False

    def setup(self):
        """Create MQTT components and the monitor service."""
        self.logger.info("=" * 80)
        self.logger.info("🚀 Armada Geofence Monitor - Starting")
        self.logger.info("=" * 80)

        config = self.config
        if self.simulate and not config.simulation.enabled:
            config = replace(config, simulation=replace(config.simulation, enabled=True))
            self.config = config

        mqtt = config.mqtt_config
        self.logger.info(f"✅ Configuration loaded (service_id={config.service_id})")

        self.control_plane = MQTTControlPlane(
            broker_host=mqtt.broker,
            broker_port=mqtt.port,
            command_topic=config.command_topic,
            status_topic=config.status_topic,
            client_id=f"monitor_{config.service_id}",
            username=mqtt.username,
            password=mqtt.password,
        )

        event_publisher = GeofenceEventPublisher(
            broker_host=mqtt.broker,
            broker_port=mqtt.port,
            topic=config.event_topic,
            source_id=config.service_id,
            logger=create_logger(component="event_publisher"),
            client_id=f"publisher_events_{config.service_id}",
            username=mqtt.username,
            password=mqtt.password,
            qos=mqtt.qos,
        )

        self.service = GeofenceMonitorService(
            config=config,
            control_plane=self.control_plane,
            event_publisher=event_publisher,
        )

        self.service.subscriber = TelemetrySubscriber(
            broker_host=mqtt.broker,
            broker_port=mqtt.port,
            telemetry_topic=config.telemetry_topic,
            on_position=self.service.on_position_message,
            on_vehicle_data=self.service.on_vehicle_data,
            logger=create_logger(component="telemetry_subscriber"),
            client_id=f"subscriber_telemetry_{config.service_id}",
            username=mqtt.username,
            password=mqtt.password,
            qos=mqtt.qos,
        )

        self.logger.info(f"  - Telemetry topic: {config.telemetry_topic}")
        self.logger.info(f"  - Event topic: {config.event_topic}")
        self.logger.info(f"  - Command topic: {config.command_topic}")

        self.service.setup()
        self.logger.info("=" * 80)

    def run(self):
        """Run the monitor service. Blocks until shutdown is requested."""
        if not self.service:
            raise RuntimeError("Service not initialized. Call setup() first.")

        signal.signal(signal.SIGTERM, self._signal_handler)
        signal.signal(signal.SIGINT, self._signal_handler)

        try:
            self.service.start()
            self.logger.info("✅ Service started successfully")
            self.logger.info("Press Ctrl+C to stop")
            self.service.wait()

        except KeyboardInterrupt:
            self.logger.info("⚠️  KeyboardInterrupt received")
            self.shutdown()

        except Exception as e:
            self.logger.error(f"❌ Service error: {e}", exc_info=True)
            self.shutdown()
            sys.exit(1)

    def shutdown(self):
        """Graceful shutdown of all components."""
        if self._shutdown_requested:
            self.logger.warning("⚠️  Shutdown already in progress")
            return

        self._shutdown_requested = True
        self.logger.info("🛑 Shutting down geofence monitor")

        if self.service and self.service.is_running():
            try:
                self.service.stop()
            except Exception as e:
                self.logger.error(f"❌ Error stopping service: {e}")

        self.logger.info("✅ Shutdown complete")

    def _signal_handler(self, signum, frame):
        signal_name = signal.Signals(signum).name
        self.logger.info(f"⚠️  Received signal {signal_name} ({signum})")
        self.shutdown()
        sys.exit(0)


# ─────────────────────────────────────────────────────────────────────────────
# CLI
# ─────────────────────────────────────────────────────────────────────────────

def parse_args():
    parser = argparse.ArgumentParser(
        description="Armada Geofence Monitor - Telemetry + Geofences + MQTT",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python run_monitor.py --config config/armada_monitor/monitor_config.yaml
  python run_monitor.py --config config/armada_monitor/monitor_config.yaml --simulate
  python run_monitor.py --config config/armada_monitor/monitor_config.yaml --no-log-file
        """
    )

    parser.add_argument(
        '--config',
        type=Path,
        required=True,
        help='Path to monitor configuration YAML file'
    )
    parser.add_argument(
        '--log-file',
        type=Path,
        default=None,
        help='Path to log file (default: log_file from config)'
    )
    parser.add_argument(
        '--no-log-file',
        action='store_true',
        help='Disable file logging (console only)'
    )
    parser.add_argument(
        '--simulate',
        action='store_true',
        help='Force-enable the movement simulator'
    )

    return parser.parse_args()


def main():
    args = parse_args()

    if not args.config.exists():
        print(f"❌ Error: Configuration file not found: {args.config}", file=sys.stderr)
        sys.exit(1)

    try:
        app = MonitorApp(
            config_path=args.config,
            log_file=args.log_file,
            file_logging=not args.no_log_file,
            simulate=args.simulate,
        )
        app.setup()
        app.run()
    except Exception as e:
        print(f"❌ Fatal error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == '__main__':
    main()
