"""
Movement Simulator - synthetic telemetry for demos and soak tests.

Every tick one random vehicle from the roster gets a new position:
- with probability ``near_geofence_ratio`` close to a random active
  geofence, so enter/exit transitions actually happen. Circles get a
  point in the square of half-side radius around the center, so about a
  fifth of them land just outside the circle near its corners. Polygons
  get a point within +/- 0.005 degrees of the vertex centroid.
- otherwise uniformly inside the configured bounds

The simulator is an external driver: it only calls the sink it is given,
and stopping/restarting it never touches detector state.

Threading: start() runs step() on a daemon thread until stop().
"""

import logging
import math
import threading
from datetime import datetime, timezone
from typing import Callable, Optional, Sequence

import numpy as np

from armada_geofence.geometry.shapes import CircleShape, Coordinate, PolygonShape
from armada_geofence.models import Geofence, VehiclePosition
from armada_monitor.config import SimulationConfig

logger = logging.getLogger(__name__)

METERS_PER_DEGREE = 111_320.0
POLYGON_JITTER_DEG = 0.005


class MovementSimulator:
    """
    Random vehicle movement generator.

    Usage:
        simulator = MovementSimulator(
            vehicle_ids=lambda: ["v1", "v2"],
            geofences=lambda: registry.snapshot().geofences,
            sink=service.process_position,
            config=SimulationConfig(interval_s=5.0, seed=42),
        )
        simulator.step()      # one sample, synchronously
        simulator.start()     # background thread
        simulator.stop()
    """

    def __init__(
        self,
        vehicle_ids: Callable[[], Sequence[str]],
        geofences: Callable[[], Sequence[Geofence]],
        sink: Callable[[VehiclePosition], None],
        config: Optional[SimulationConfig] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Args:
            vehicle_ids: Returns the current roster ids
            geofences: Returns the current active geofences
            sink: Receives every generated sample
            config: Simulation settings (defaults if None)
            clock: Sample timestamp source (default: UTC now)
        """
        self.config = config or SimulationConfig()
        self._vehicle_ids = vehicle_ids
        self._geofences = geofences
        self._sink = sink
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._rng = np.random.default_rng(self.config.seed)

        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._steps = 0

    # ─────────────────────────────────────────────────────────────────────
    # Position generation
    # ─────────────────────────────────────────────────────────────────────

    def random_point_in_bounds(self) -> Coordinate:
        bounds = self.config.bounds
        lat = bounds.south + self._rng.random() * (bounds.north - bounds.south)
        lng = bounds.west + self._rng.random() * (bounds.east - bounds.west)
        return (float(lng), float(lat))

    def point_near(self, geofence: Geofence) -> Optional[Coordinate]:
        """Random point close to a geofence, or None if its shape is unusable."""
        shape = geofence.shape

        if isinstance(shape, CircleShape):
            center_lng, center_lat = shape.center
            cos_lat = max(math.cos(math.radians(center_lat)), 1e-6)
            offset_lat = (self._rng.random() - 0.5) * (shape.radius_m / METERS_PER_DEGREE) * 2
            offset_lng = (
                (self._rng.random() - 0.5) * (shape.radius_m / (METERS_PER_DEGREE * cos_lat)) * 2
            )
            return _clamp(center_lng + offset_lng, center_lat + offset_lat)

        if isinstance(shape, PolygonShape):
            ring = shape.outer_ring
            if ring.ndim != 2 or ring.shape[0] == 0:
                return None
            center_lng, center_lat = ring.mean(axis=0)
            offset_lat = (self._rng.random() - 0.5) * 2 * POLYGON_JITTER_DEG
            offset_lng = (self._rng.random() - 0.5) * 2 * POLYGON_JITTER_DEG
            return _clamp(center_lng + offset_lng, center_lat + offset_lat)

        return None

    def step(self) -> Optional[VehiclePosition]:
        """
        Generate and emit one sample.

        Returns:
            The emitted VehiclePosition, or None if the roster is empty
        """
        vehicle_ids = list(self._vehicle_ids())
        if not vehicle_ids:
            logger.debug("Simulation tick skipped: no vehicles")
            return None

        vehicle_id = vehicle_ids[int(self._rng.integers(len(vehicle_ids)))]
        geofences = list(self._geofences())

        point = None
        if geofences and self._rng.random() < self.config.near_geofence_ratio:
            target = geofences[int(self._rng.integers(len(geofences)))]
            point = self.point_near(target)
        if point is None:
            point = self.random_point_in_bounds()

        position = VehiclePosition.create(vehicle_id, point, self._clock())
        self._steps += 1
        self._sink(position)
        return position

    # ─────────────────────────────────────────────────────────────────────
    # Lifecycle
    # ─────────────────────────────────────────────────────────────────────

    def start(self) -> None:
        """Run step() every interval_s on a daemon thread."""
        if self.is_running():
            logger.warning("Simulator already running")
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run,
            name="MovementSimulatorThread",
            daemon=True
        )
        self._thread.start()
        logger.info(f"Movement simulator started (interval={self.config.interval_s}s)")

    def _run(self) -> None:
        while not self._stop_event.is_set():
            try:
                self.step()
            except Exception as e:
                logger.error(f"Simulation step failed: {e}", exc_info=True)
            self._stop_event.wait(self.config.interval_s)

    def stop(self, timeout: float = 5.0) -> None:
        """Stop the background thread (no-op if not running)."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None
            logger.info(f"Movement simulator stopped after {self._steps} steps")

    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def steps(self) -> int:
        return self._steps


def _clamp(lng: float, lat: float) -> Coordinate:
    return (float(min(max(lng, -180.0), 180.0)), float(min(max(lat, -90.0), 90.0)))
