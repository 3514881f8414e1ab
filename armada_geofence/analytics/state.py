"""
Containment State Module
========================

Stateful per-vehicle containment memory for transition detection.

Design:
- {vehicle_id: {geofence_id: inside}} mapping
- Created lazily on a vehicle's first sample, grows for the process lifetime
- Partitioned per vehicle: each vehicle has its own lock, so samples for
  different vehicles never contend and samples for one vehicle are
  serialized (no lost updates)
"""
import threading
from contextlib import contextmanager
from typing import Dict, Iterator, List


class ContainmentState:
    """
    Tracks the last known containment of each vehicle in each geofence.

    State:
        {vehicle_id: {geofence_id: inside}}

    A vehicle's lock is created once and kept for the life of the state,
    so reset() and clear() serialize with in-flight samples instead of
    handing later callers a fresh lock.

    Usage:
        state = ContainmentState()

        with state.locked(vehicle_id) as memberships:
            was_inside = memberships.get(geofence_id)   # None = baseline
            memberships[geofence_id] = now_inside
    """

    def __init__(self):
        """Initialize empty state."""
        self._vehicles: Dict[str, Dict[str, bool]] = {}
        self._locks: Dict[str, threading.Lock] = {}
        self._guard = threading.Lock()

    def _lock_for(self, vehicle_id: str) -> threading.Lock:
        with self._guard:
            return self._locks.setdefault(vehicle_id, threading.Lock())

    @contextmanager
    def locked(self, vehicle_id: str) -> Iterator[Dict[str, bool]]:
        """
        Hold the vehicle's lock and yield its mutable membership map.

        The map is created on first use; changes made inside the block are
        the vehicle's new state.
        """
        with self._lock_for(vehicle_id):
            with self._guard:
                memberships = self._vehicles.setdefault(vehicle_id, {})
            yield memberships

    def get(self, vehicle_id: str) -> Dict[str, bool]:
        """
        Copy of a vehicle's memberships.

        Returns:
            {geofence_id: inside}, empty if the vehicle was never seen
        """
        with self._guard:
            lock = self._locks.get(vehicle_id)
        if lock is None:
            return {}
        with lock:
            with self._guard:
                return dict(self._vehicles.get(vehicle_id, {}))

    def reset(self, vehicle_id: str) -> bool:
        """
        Forget one vehicle; its next sample becomes a fresh baseline.

        Waits for any sample the vehicle is processing to finish first.

        Returns:
            True if the vehicle had state
        """
        with self._guard:
            lock = self._locks.get(vehicle_id)
        if lock is None:
            return False
        with lock:
            with self._guard:
                return self._vehicles.pop(vehicle_id, None) is not None

    def forget_geofence(self, geofence_id: str) -> None:
        """Drop one geofence from every vehicle's memberships."""
        for vehicle_id in self.vehicle_ids():
            with self.locked(vehicle_id) as memberships:
                memberships.pop(geofence_id, None)

    def clear(self) -> None:
        """Forget every vehicle, one vehicle lock at a time."""
        with self._guard:
            locks = list(self._locks.items())
        for vehicle_id, lock in locks:
            with lock:
                with self._guard:
                    self._vehicles.pop(vehicle_id, None)

    def vehicle_ids(self) -> List[str]:
        with self._guard:
            return list(self._vehicles.keys())

    def __len__(self) -> int:
        """Return number of tracked vehicles."""
        with self._guard:
            return len(self._vehicles)

    def __repr__(self) -> str:
        return f"ContainmentState(tracked={len(self)})"
