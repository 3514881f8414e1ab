#!/usr/bin/env python3
"""
Geofence Simulation Demo
========================

Runs the geofence monitor offline (no MQTT broker): the movement simulator
feeds random vehicle positions into the detector and the resulting alerts
are printed.

Usage:
    python run_simulation.py --config config/armada_monitor/monitor_config.yaml --steps 200
"""

import argparse
import logging
import sys
from dataclasses import replace
from pathlib import Path

from armada_geofence import Severity
from armada_monitor import GeofenceMonitorService, MonitorConfig, MovementSimulator


def main():
    parser = argparse.ArgumentParser(description="Offline geofence simulation")
    parser.add_argument('--config', type=Path, required=True, help='Monitor config YAML')
    parser.add_argument('--steps', type=int, default=100, help='Number of samples (default: 100)')
    parser.add_argument('--seed', type=int, default=None, help='Override simulation seed')
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.WARNING,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[logging.StreamHandler(sys.stdout)]
    )

    config = MonitorConfig.from_yaml(args.config)

    # 1. Service without MQTT components (offline mode)
    service = GeofenceMonitorService(config=config)
    service.setup()

    # 2. Simulator driven synchronously
    simulation = config.simulation
    if args.seed is not None:
        simulation = replace(simulation, seed=args.seed)

    simulator = MovementSimulator(
        vehicle_ids=service.vehicle_ids,
        geofences=lambda: service.detector.registry.snapshot().geofences,
        sink=service.process_position,
        config=simulation,
    )

    for _ in range(args.steps):
        simulator.step()

    # 3. Report
    stats = service.alerts.get_stats()
    print(f"\nSamples: {simulator.steps}")
    print(f"Alerts:  {stats['total']} ({stats['unacknowledged']} unacknowledged)")
    for severity in Severity:
        print(f"  {severity.value:<9} {stats['by_severity'][severity.value]}")

    print("\nLatest alerts:")
    for alert in service.alerts.alerts[:10]:
        event = alert.event
        print(
            f"  [{alert.to_dict()['severity']:<8}] {event.timestamp.isoformat()} "
            f"{event.vehicle_name} {event.event_type.value} {event.geofence_name}"
        )


if __name__ == "__main__":
    main()
