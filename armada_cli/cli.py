"""
Armada CLI - Main entry point.

Provides command-line interface for sending MQTT commands to the geofence
monitor service.
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .mqtt_client import MQTTCommandClient


def load_yaml_config(config_path: str) -> Dict[str, Any]:
    """
    Load YAML configuration file.

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If YAML is invalid
    """
    path = Path(config_path)

    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    try:
        with open(path) as f:
            return yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in {config_path}: {e}")


def command_topic(service_id: str) -> str:
    return f"armada/control/{service_id}/commands"


def status_topic(service_id: str) -> str:
    return f"armada/control/{service_id}/status"


def send_command(
    command: Dict[str, Any],
    service_id: str = "monitor_1",
    broker: str = "localhost",
    port: int = 1883,
    timeout: float = 5.0
) -> Optional[Dict[str, Any]]:
    """Send command to the monitor via MQTT and wait for its result."""
    client = MQTTCommandClient(broker=broker, port=port)
    return client.send_command(
        command_topic(service_id),
        command,
        qos=1,
        response_topic=status_topic(service_id),
        timeout=timeout,
    )


def build_command(args: argparse.Namespace) -> Dict[str, Any]:
    """
    Translate parsed arguments into a command payload.

    Raises:
        ValueError: If a YAML command file is malformed
    """
    if args.command == 'set-geofences':
        config = load_yaml_config(args.config)
        if not isinstance(config, dict) or 'geofences' not in config:
            raise ValueError(f"{args.config} must contain a 'geofences' list")
        return {'command': 'set_geofences', 'geofences': config['geofences']}

    if args.command == 'remove-geofence':
        return {'command': 'remove_geofence', 'geofence_id': args.geofence_id}

    if args.command == 'acknowledge':
        return {'command': 'acknowledge_alert', 'alert_id': args.alert_id}

    if args.command == 'list-alerts':
        command = {'command': 'list_alerts', 'unacknowledged_only': args.unacknowledged}
        if args.severity:
            command['severity'] = args.severity
        return command

    if args.command == 'reset-vehicle':
        return {'command': 'reset_vehicle', 'vehicle_id': args.vehicle_id}

    if args.command == 'vehicle-status':
        return {'command': 'vehicle_status', 'vehicle_id': args.vehicle_id}

    # Simple commands (no arguments)
    return {'command': args.command.replace('-', '_')}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Armada CLI - Send MQTT commands to the geofence monitor",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Replace geofences from YAML
  armada-cli set-geofences config/commands/set_geofences.yaml

  # Remove geofence by ID
  armada-cli remove-geofence 3

  # Alerts
  armada-cli list-alerts --unacknowledged
  armada-cli list-alerts --severity critical
  armada-cli acknowledge v1-1-violation_enter-1717200000000
  armada-cli clear-alerts

  # Vehicle containment state
  armada-cli vehicle-status v1
  armada-cli reset-vehicle v1

  # Service status
  armada-cli status
"""
    )

    parser.add_argument(
        "--service-id",
        default="monitor_1",
        help="Target service ID (default: monitor_1)"
    )
    parser.add_argument(
        "--broker",
        default="localhost",
        help="MQTT broker host (default: localhost)"
    )
    parser.add_argument(
        "--port",
        type=int,
        default=1883,
        help="MQTT broker port (default: 1883)"
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=5.0,
        help="Seconds to wait for the command result (default: 5)"
    )

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    set_geofences = subparsers.add_parser('set-geofences', help='Replace geofences from YAML')
    set_geofences.add_argument('config', help='Path to geofence list YAML')

    remove_geofence = subparsers.add_parser('remove-geofence', help='Remove geofence by ID')
    remove_geofence.add_argument('geofence_id', help='Geofence ID to remove')

    acknowledge = subparsers.add_parser('acknowledge', help='Acknowledge alert by ID')
    acknowledge.add_argument('alert_id', help='Alert ID')

    list_alerts = subparsers.add_parser('list-alerts', help='List alerts')
    list_alerts.add_argument(
        '--unacknowledged', action='store_true', help='Only unacknowledged alerts'
    )
    list_alerts.add_argument(
        '--severity', choices=['low', 'medium', 'high', 'critical'], help='Filter by severity'
    )

    reset_vehicle = subparsers.add_parser('reset-vehicle', help="Forget a vehicle's state")
    reset_vehicle.add_argument('vehicle_id', help='Vehicle ID')

    vehicle_status = subparsers.add_parser('vehicle-status', help="Show a vehicle's state")
    vehicle_status.add_argument('vehicle_id', help='Vehicle ID')

    subparsers.add_parser('clear-alerts', help='Remove every alert')
    subparsers.add_parser('status', help='Query service status')

    return parser


def main(argv=None):
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    try:
        command = build_command(args)
        response = send_command(
            command, args.service_id, args.broker, args.port, timeout=args.timeout
        )
    except Exception as e:
        print(f"❌ Error: {e}", file=sys.stderr)
        sys.exit(1)

    if response is None:
        print("⚠️ No response from monitor (is it running?)", file=sys.stderr)
        sys.exit(2)

    print(json.dumps(response, indent=2, default=str))
    if response.get('status') == 'error':
        sys.exit(1)


if __name__ == '__main__':
    main()
