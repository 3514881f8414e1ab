"""
Armada CLI - Command-line interface for geofence monitor control.

Sends control commands over MQTT without manually writing JSON.

Usage:
    armada-cli set-geofences config/commands/set_geofences.yaml
    armada-cli list-alerts --unacknowledged
    armada-cli acknowledge <alert_id>
    armada-cli vehicle-status v1
    armada-cli status
"""

__version__ = "1.0.0"
