"""
Geofence Registry - Thread-safe geofence working set.

This module provides the GeofenceRegistry class which holds the current set
of geofences and answers "which geofences contain point P" queries.

Design:
- set_geofences() replaces the working set wholesale (mirrors a periodic
  re-fetch of the full geofence list from the backend)
- Every entry is validated at registration; invalid entries are rejected
  per item and reported, never silently included or corrected
- Readers work on an immutable RegistrySnapshot so one detection call sees
  one consistent set of geofences

Thread Safety:
- Uses threading.Lock for protecting the geofence dict
- Snapshot pattern for queries to minimize lock holding time
"""

import logging
import threading
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from armada_geofence.errors import InvalidGeofenceError
from armada_geofence.geometry.containment import is_inside_geofence
from armada_geofence.models import Geofence, GeofenceStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GeofenceRejection:
    """A geofence dropped at registration, with the reason."""

    geofence_id: Optional[str]
    reason: str


@dataclass(frozen=True)
class RegistrySnapshot:
    """
    Immutable view of the active geofences at one point in time.

    Order is registration order.
    """

    geofences: Tuple[Geofence, ...] = ()

    @property
    def ids(self) -> Tuple[str, ...]:
        return tuple(g.geofence_id for g in self.geofences)

    def get(self, geofence_id: str) -> Optional[Geofence]:
        for geofence in self.geofences:
            if geofence.geofence_id == geofence_id:
                return geofence
        return None

    def containing(self, point: Sequence[float]) -> List[Geofence]:
        """Every geofence in this snapshot that contains point."""
        return [g for g in self.geofences if is_inside_geofence(point, g)]

    def __len__(self) -> int:
        return len(self.geofences)


class GeofenceRegistry:
    """
    Thread-safe registry for geofences.

    Thread Safety Guarantees:
    - set_geofences(), upsert_geofence(), remove_geofence(), clear():
      write operations (acquire lock)
    - snapshot(), geofences_containing(), list_geofences(), get():
      read operations (acquire lock briefly, then work on a copy)

    Usage:
        registry = GeofenceRegistry()
        rejected = registry.set_geofences([depot, harbour, broken])
        # rejected == [GeofenceRejection("broken", "circle radius must be > 0, got 0")]

        inside = registry.geofences_containing((106.8456, -6.2088))
    """

    def __init__(self):
        """Initialize empty registry."""
        self._geofences: Dict[str, Geofence] = {}
        self._lock = threading.Lock()

    @staticmethod
    def _check(geofence: Geofence) -> Optional[GeofenceRejection]:
        """Validate one geofence, returning a rejection instead of raising."""
        if not isinstance(geofence, Geofence):
            return GeofenceRejection(
                geofence_id=None,
                reason=f"expected Geofence, got {type(geofence).__name__}"
            )
        try:
            geofence.validate()
        except InvalidGeofenceError as e:
            return GeofenceRejection(geofence_id=geofence.geofence_id, reason=e.reason)
        return None

    def set_geofences(self, geofences: Iterable[Geofence]) -> List[GeofenceRejection]:
        """
        Replace the working set wholesale.

        Args:
            geofences: New full list of geofences (active and inactive)

        Returns:
            Rejections for entries that failed validation or reused an id.
            The remaining entries are registered regardless.

        Thread-safe: Acquires lock for write operation.
        """
        accepted: Dict[str, Geofence] = {}
        rejections: List[GeofenceRejection] = []

        for geofence in geofences:
            rejection = self._check(geofence)
            if rejection is None and geofence.geofence_id in accepted:
                rejection = GeofenceRejection(
                    geofence_id=geofence.geofence_id,
                    reason="duplicate geofence_id"
                )

            if rejection is not None:
                rejections.append(rejection)
                logger.warning(
                    f"Rejected geofence {rejection.geofence_id!r}: {rejection.reason}"
                )
                continue

            accepted[geofence.geofence_id] = geofence

        with self._lock:
            self._geofences = accepted

        logger.info(
            f"Geofence set replaced: {len(accepted)} registered, {len(rejections)} rejected"
        )
        return rejections

    def upsert_geofence(self, geofence: Geofence) -> None:
        """
        Add or replace a single geofence.

        Raises:
            InvalidGeofenceError: If the geofence fails validation

        Thread-safe: Acquires lock for write operation.
        """
        rejection = self._check(geofence)
        if rejection is not None:
            raise InvalidGeofenceError(rejection.geofence_id, rejection.reason)

        with self._lock:
            self._geofences[geofence.geofence_id] = geofence

    def remove_geofence(self, geofence_id: str) -> bool:
        """
        Remove a geofence.

        Returns:
            True if it was registered, False otherwise

        Thread-safe: Acquires lock for write operation.
        """
        with self._lock:
            return self._geofences.pop(geofence_id, None) is not None

    def clear(self) -> None:
        """Remove all geofences."""
        with self._lock:
            self._geofences = {}

    def snapshot(self) -> RegistrySnapshot:
        """
        Immutable view of the active geofences.

        Thread-safe: Acquires lock briefly to copy references.
        """
        with self._lock:
            active = tuple(
                g for g in self._geofences.values()
                if g.status == GeofenceStatus.ACTIVE
            )
        return RegistrySnapshot(geofences=active)

    def geofences_containing(self, point: Sequence[float]) -> List[Geofence]:
        """
        Every active, valid geofence whose shape contains point.

        Args:
            point: (lng, lat)

        Returns:
            Geofences in registration order
        """
        return self.snapshot().containing(point)

    def get(self, geofence_id: str) -> Optional[Geofence]:
        """Registered geofence by id (active or not), or None."""
        with self._lock:
            return self._geofences.get(geofence_id)

    def list_geofences(self) -> Dict[str, bool]:
        """
        List all registered geofences and whether they are active.

        Returns:
            Dictionary mapping geofence_id to active flag.
        """
        with self._lock:
            return {
                geofence_id: geofence.is_active
                for geofence_id, geofence in self._geofences.items()
            }

    def count(self) -> int:
        """Number of registered geofences (active + inactive)."""
        with self._lock:
            return len(self._geofences)
