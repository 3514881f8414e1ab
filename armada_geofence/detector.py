"""
Geofence Event Detector
=======================

Per-sample transition detection for (vehicle, geofence) pairs.

State machine per pair: OUTSIDE <-> INSIDE.

    first sample      -> baseline recorded, no event
    OUTSIDE -> INSIDE -> enter / violation_enter (FORBIDDEN)
    INSIDE -> OUTSIDE -> exit / violation_exit (STAY_IN)

A vehicle whose first fix is already inside a FORBIDDEN zone produces no
violation until it is seen outside and then inside again.

Design:
- Explicit object owned by the caller (no module-level singleton), so
  tests and services can run independent detectors side by side
- Geofences come from a GeofenceRegistry; one snapshot per sample
- Containment memory comes from ContainmentState (locked per vehicle)
- Malformed samples raise InvalidPositionError and touch no state; a
  corrupt fix is never interpreted as leaving every zone
"""

import logging
import threading
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence

from armada_geofence.analytics.state import ContainmentState
from armada_geofence.events import GeofenceEvent, classify_transition, make_event_id
from armada_geofence.models import Geofence, Vehicle, VehiclePosition
from armada_geofence.registry import GeofenceRegistry, GeofenceRejection

logger = logging.getLogger(__name__)


class GeofenceEventDetector:
    """
    Detects geofence enter/exit events and rule violations.

    Usage:
        detector = GeofenceEventDetector()
        detector.set_geofences([depot, no_go_zone])
        detector.set_vehicles([Vehicle(vehicle_id="v1", name="Truck 1")])

        events = detector.detect_vehicle_events("v1", (106.90, -6.30), ts1)  # []
        events = detector.detect_vehicle_events("v1", (106.8456, -6.2088), ts2)
        # [GeofenceEvent(event_type=EventType.VIOLATION_ENTER, ...)]
    """

    def __init__(
        self,
        registry: Optional[GeofenceRegistry] = None,
        state: Optional[ContainmentState] = None,
        vehicles: Optional[Iterable[Vehicle]] = None
    ):
        """
        Args:
            registry: Geofence working set (new empty registry if None)
            state: Containment memory (new empty state if None)
            vehicles: Optional initial roster for event display names
        """
        self.registry = registry if registry is not None else GeofenceRegistry()
        self.state = state if state is not None else ContainmentState()

        self._vehicle_names: Dict[str, str] = {}
        self._roster_lock = threading.Lock()
        if vehicles is not None:
            self.set_vehicles(vehicles)

    # ─────────────────────────────────────────────────────────────────────
    # Inputs
    # ─────────────────────────────────────────────────────────────────────

    def set_geofences(self, geofences: Iterable[Geofence]) -> List[GeofenceRejection]:
        """Replace the geofence working set (see GeofenceRegistry.set_geofences)."""
        return self.registry.set_geofences(geofences)

    def remove_geofence(self, geofence_id: str) -> bool:
        """
        Remove one geofence and forget it for every vehicle.

        No exit events are emitted for vehicles that were inside.
        """
        removed = self.registry.remove_geofence(geofence_id)
        self.state.forget_geofence(geofence_id)
        return removed

    def set_vehicles(self, vehicles: Iterable[Vehicle]) -> None:
        """Replace the roster used to fill vehicle_name on events."""
        names = {str(v.vehicle_id): v.display_name for v in vehicles}
        with self._roster_lock:
            self._vehicle_names = names

    def vehicle_name(self, vehicle_id: str) -> str:
        with self._roster_lock:
            name = self._vehicle_names.get(vehicle_id)
        return name if name else f"Vehicle {vehicle_id}"

    # ─────────────────────────────────────────────────────────────────────
    # Detection
    # ─────────────────────────────────────────────────────────────────────

    def detect_vehicle_events(
        self,
        vehicle_id: str,
        coordinates: Sequence[float],
        timestamp: Optional[datetime] = None
    ) -> List[GeofenceEvent]:
        """
        Process one telemetry sample.

        Args:
            vehicle_id: Vehicle identifier
            coordinates: (lng, lat)
            timestamp: Sample time (now if None; naive means UTC)

        Returns:
            Events for every transition in this sample (possibly empty)

        Raises:
            InvalidPositionError: If the sample is malformed. No state changes.
        """
        position = VehiclePosition.create(vehicle_id, coordinates, timestamp)
        return self.detect_position(position)

    def detect_position(self, position: VehiclePosition) -> List[GeofenceEvent]:
        """
        Process one validated VehiclePosition.

        Returns:
            Events for every transition in this sample (possibly empty)
        """
        snapshot = self.registry.snapshot()
        inside_ids = {g.geofence_id for g in snapshot.containing(position.coordinates)}
        vehicle_name = self.vehicle_name(position.vehicle_id)

        events: List[GeofenceEvent] = []

        with self.state.locked(position.vehicle_id) as memberships:
            for geofence in snapshot.geofences:
                now_inside = geofence.geofence_id in inside_ids
                was_inside = memberships.get(geofence.geofence_id)

                # was_inside None: first observation of this pair (baseline)
                if was_inside is not None and was_inside != now_inside:
                    events.append(
                        self._build_event(position, vehicle_name, geofence, entered=now_inside)
                    )

                memberships[geofence.geofence_id] = now_inside

            # Deleted or deactivated since the last sample: forget silently
            current_ids = set(snapshot.ids)
            for stale_id in [gid for gid in memberships if gid not in current_ids]:
                del memberships[stale_id]

        if events:
            logger.debug(
                f"Vehicle {position.vehicle_id}: {len(events)} geofence event(s) "
                f"{[e.event_type.value for e in events]}"
            )
        return events

    @staticmethod
    def _build_event(
        position: VehiclePosition,
        vehicle_name: str,
        geofence: Geofence,
        entered: bool
    ) -> GeofenceEvent:
        event_type = classify_transition(geofence.rule_type, entered)
        return GeofenceEvent(
            event_id=make_event_id(
                position.vehicle_id, geofence.geofence_id, event_type, position.timestamp
            ),
            vehicle_id=position.vehicle_id,
            vehicle_name=vehicle_name,
            geofence_id=geofence.geofence_id,
            geofence_name=geofence.name,
            event_type=event_type,
            rule_triggered=geofence.rule_type,
            position=position.coordinates,
            timestamp=position.timestamp,
        )

    # ─────────────────────────────────────────────────────────────────────
    # State inspection / maintenance
    # ─────────────────────────────────────────────────────────────────────

    def vehicle_status(self, vehicle_id: str) -> Dict[str, bool]:
        """Last known {geofence_id: inside} for a vehicle (copy)."""
        return self.state.get(str(vehicle_id))

    def reset_vehicle(self, vehicle_id: str) -> bool:
        """Forget a vehicle; its next sample is a new baseline."""
        return self.state.reset(str(vehicle_id))

    def clear_vehicle_states(self) -> None:
        """Forget every vehicle."""
        self.state.clear()
