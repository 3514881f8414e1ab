"""
Test MovementSimulator
======================

Seeded, synchronous step() calls only; the background thread is exercised
with a short interval.
"""

import math
import time
from datetime import datetime, timezone

from armada_geofence import CircleShape, Geofence, PolygonShape
from armada_geofence.geometry.containment import haversine_m
from armada_monitor import GeoBounds, MovementSimulator, SimulationConfig
from armada_monitor.simulation import METERS_PER_DEGREE, POLYGON_JITTER_DEG

T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)

DEPOT = Geofence(
    geofence_id="g1",
    name="Depot",
    shape=CircleShape(center=(106.8456, -6.2088), radius_m=500),
)
YARD = Geofence(
    geofence_id="g2",
    name="Yard",
    shape=PolygonShape.from_outer_ring([(10.0, 10.0), (10.2, 10.0), (10.2, 10.2), (10.0, 10.2)]),
)


def make_simulator(sink, vehicle_ids=("v1", "v2"), geofences=(), **config):
    config.setdefault("seed", 42)
    return MovementSimulator(
        vehicle_ids=lambda: list(vehicle_ids),
        geofences=lambda: list(geofences),
        sink=sink,
        config=SimulationConfig(**config),
        clock=lambda: T0,
    )


def test_step_emits_to_sink():
    received = []
    simulator = make_simulator(received.append)

    position = simulator.step()

    assert received == [position]
    assert position.vehicle_id in ("v1", "v2")
    assert position.timestamp == T0
    assert simulator.steps == 1


def test_same_seed_same_positions():
    first, second = [], []
    a = make_simulator(first.append, geofences=[DEPOT, YARD])
    b = make_simulator(second.append, geofences=[DEPOT, YARD])

    for _ in range(20):
        a.step()
        b.step()

    assert first == second


def test_empty_roster_emits_nothing():
    received = []
    simulator = make_simulator(received.append, vehicle_ids=())

    assert simulator.step() is None
    assert received == []
    assert simulator.steps == 0


def test_random_points_stay_in_bounds():
    bounds = GeoBounds(north=1.0, south=-1.0, east=2.0, west=-2.0)
    simulator = make_simulator(lambda p: None, near_geofence_ratio=0.0, bounds=bounds)

    for _ in range(200):
        position = simulator.step()
        lng, lat = position.coordinates
        assert bounds.west <= lng <= bounds.east
        assert bounds.south <= lat <= bounds.north


def test_points_near_circle():
    simulator = make_simulator(lambda p: None)
    center_lng, center_lat = DEPOT.shape.center
    max_dlat = DEPOT.shape.radius_m / METERS_PER_DEGREE

    for _ in range(200):
        lng, lat = simulator.point_near(DEPOT)
        assert abs(lat - center_lat) <= max_dlat
        # Longitude offset is widened by 1/cos(lat); still well under 2x here
        assert abs(lng - center_lng) <= 2 * max_dlat


def test_circle_targets_cover_the_bounding_square():
    simulator = make_simulator(lambda p: None)
    radius = DEPOT.shape.radius_m

    distances = [haversine_m(simulator.point_near(DEPOT), DEPOT.shape.center) for _ in range(200)]

    assert max(distances) <= radius * math.sqrt(2) * 1.01
    # Corners of the square lie outside the circle
    assert any(d > radius for d in distances)
    assert any(d <= radius for d in distances)


def test_points_near_polygon():
    simulator = make_simulator(lambda p: None)

    for _ in range(200):
        lng, lat = simulator.point_near(YARD)
        assert abs(lng - 10.1) <= POLYGON_JITTER_DEG + 1e-9
        assert abs(lat - 10.1) <= POLYGON_JITTER_DEG + 1e-9


def test_near_ratio_one_always_targets_geofences():
    simulator = make_simulator(lambda p: None, near_geofence_ratio=1.0, geofences=[YARD])

    for _ in range(50):
        lng, lat = simulator.step().coordinates
        assert 10.0 <= lng <= 10.2
        assert 10.0 <= lat <= 10.2


def test_unusable_shape_falls_back_to_bounds():
    broken = Geofence(geofence_id="x", name="Broken", shape=None)
    simulator = make_simulator(lambda p: None, near_geofence_ratio=1.0, geofences=[broken])

    assert simulator.point_near(broken) is None
    assert simulator.step() is not None


def test_background_thread_start_stop():
    received = []
    simulator = make_simulator(received.append, interval_s=0.01)

    simulator.start()
    deadline = time.time() + 2.0
    while not received and time.time() < deadline:
        time.sleep(0.01)
    simulator.stop()

    assert received
    assert not simulator.is_running()
