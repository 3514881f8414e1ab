"""
Test Backend Record Adapters
============================

Geofence/vehicle records and telemetry rows into domain objects.
"""

import json
from datetime import datetime, timezone

import pytest

from armada_geofence import (
    CircleShape,
    GeofenceStatus,
    InvalidGeofenceError,
    InvalidPositionError,
    PolygonShape,
    RuleType,
    Vehicle,
)
from armada_monitor import adapters
from armada_mqtt import Timestamp, VehiclePositionMessage

POLYGON_RING = [
    [106.80, -6.22], [106.82, -6.22], [106.82, -6.20], [106.80, -6.20], [106.80, -6.22]
]


def circle_record(**overrides):
    record = {
        "geofence_id": 1,
        "name": "Depot",
        "type": "circle",
        "rule_type": "forbidden",
        "status": "ACTIVE",
        "definition": {"type": "Circle", "center": [106.8456, -6.2088], "radius": 500},
    }
    record.update(overrides)
    return record


def test_circle_record():
    geofence = adapters.geofence_from_record(circle_record())

    assert geofence.geofence_id == "1"
    assert geofence.name == "Depot"
    assert geofence.rule_type == RuleType.FORBIDDEN
    assert geofence.status == GeofenceStatus.ACTIVE
    assert geofence.shape == CircleShape(center=(106.8456, -6.2088), radius_m=500.0)


def test_polygon_record_with_json_definition():
    record = {
        "geofence_id": "yard",
        "name": "Yard",
        "type": "polygon",
        "rule_type": "STAY_IN",
        "status": "inactive",
        "definition": json.dumps({"type": "Polygon", "coordinates": [POLYGON_RING]}),
    }

    geofence = adapters.geofence_from_record(record)

    assert isinstance(geofence.shape, PolygonShape)
    assert geofence.shape.outer_ring.shape == (5, 2)
    assert geofence.rule_type == RuleType.STAY_IN
    assert geofence.status == GeofenceStatus.INACTIVE


def test_shape_type_falls_back_to_definition():
    record = circle_record(type=None)
    record["definition"] = {"type": "Circle", "center": [106.8456, -6.2088], "radius": 500}

    assert isinstance(adapters.geofence_from_record(record).shape, CircleShape)


def test_defaults_for_rule_and_status():
    record = circle_record()
    del record["rule_type"]
    del record["status"]

    geofence = adapters.geofence_from_record(record)

    assert geofence.rule_type == RuleType.STANDARD
    assert geofence.status == GeofenceStatus.ACTIVE


@pytest.mark.parametrize(
    "overrides, reason",
    [
        ({"geofence_id": None}, "geofence_id"),
        ({"rule_type": "SOMETIMES"}, "rule_type"),
        ({"status": "archived"}, "status"),
        ({"type": "hexagon"}, "type"),
        ({"definition": None}, "definition"),
        ({"definition": "{not json"}, "JSON"),
        ({"definition": {"center": [106.8, -6.2]}}, "radius"),
        ({"definition": {"center": ["x", "y"], "radius": 5}}, "numeric"),
    ],
)
def test_bad_geofence_records(overrides, reason):
    with pytest.raises(InvalidGeofenceError, match=reason):
        adapters.geofence_from_record(circle_record(**overrides))


def test_polygon_without_coordinates():
    record = {"geofence_id": 2, "type": "polygon", "definition": {"coordinates": []}}

    with pytest.raises(InvalidGeofenceError, match="coordinates"):
        adapters.geofence_from_record(record)


def test_geofences_from_records_collects_rejections():
    geofences, rejections = adapters.geofences_from_records([
        circle_record(),
        circle_record(geofence_id=2, type="hexagon"),
    ])

    assert [g.geofence_id for g in geofences] == ["1"]
    assert [r.geofence_id for r in rejections] == ["2"]


def test_vehicle_records():
    vehicles = adapters.vehicles_from_records([
        {"vehicle_id": 7, "name": "Truck 7", "license_plate": "B 1", "gps_id": "gps-007"},
        {"vehicle_id": "v8", "name": ""},
        {"name": "No id"},
    ])

    assert vehicles == [
        Vehicle(vehicle_id="7", name="Truck 7", license_plate="B 1", gps_id="gps-007"),
        Vehicle(vehicle_id="v8", name="", license_plate="", gps_id=None),
    ]
    assert vehicles[1].display_name == "Vehicle v8"
    assert adapters.build_gps_index(vehicles) == {"gps-007": "7"}


def test_position_from_vehicle_data_resolves_gps_id():
    row = {
        "gps_id": "gps-007",
        "latitude": "-6.2088",
        "longitude": "106.8456",
        "timestamp": "2024-01-01T08:30:00Z",
    }

    position = adapters.position_from_vehicle_data(row, {"gps-007": "7"})

    assert position.vehicle_id == "7"
    assert position.coordinates == (106.8456, -6.2088)
    assert position.timestamp == datetime(2024, 1, 1, 8, 30, tzinfo=timezone.utc)


def test_position_from_vehicle_data_prefers_vehicle_id():
    row = {"vehicle_id": "v1", "gps_id": "gps-007", "latitude": 0, "longitude": 0}

    assert adapters.position_from_vehicle_data(row, {"gps-007": "7"}).vehicle_id == "v1"


@pytest.mark.parametrize(
    "row",
    [
        {"gps_id": "gps-unknown", "latitude": "0", "longitude": "0"},
        {"gps_id": "gps-007", "latitude": "0"},
        {"gps_id": "gps-007", "latitude": "north", "longitude": "0"},
        {"gps_id": "gps-007", "latitude": "0", "longitude": "0", "timestamp": "noon"},
        {"gps_id": "gps-007", "latitude": "91", "longitude": "0"},
    ],
)
def test_bad_vehicle_data_rows(row):
    with pytest.raises(InvalidPositionError):
        adapters.position_from_vehicle_data(row, {"gps-007": "7"})


def test_position_from_message():
    msg = VehiclePositionMessage(
        vehicle_id="v1",
        longitude=106.8456,
        latitude=-6.2088,
        timestamp=Timestamp(value="2024-01-01T08:30:00+00:00"),
    )

    position = adapters.position_from_message(msg)

    assert position.vehicle_id == "v1"
    assert position.coordinates == (106.8456, -6.2088)
    assert position.timestamp.tzinfo is not None


def test_position_from_message_bad_timestamp():
    msg = VehiclePositionMessage(
        vehicle_id="v1",
        longitude=106.8456,
        latitude=-6.2088,
        timestamp=Timestamp(value="not a time"),
    )

    with pytest.raises(InvalidPositionError):
        adapters.position_from_message(msg)
