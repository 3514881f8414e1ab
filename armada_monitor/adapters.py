"""
Backend record adapters.

Translate backend-style records (``geofence``, ``vehicle`` and
``vehicle_datas`` collections) into armada_geofence domain objects.

Structural problems (missing fields, unparseable definitions) raise
InvalidGeofenceError / InvalidPositionError here; geometric invariants are
checked later by GeofenceRegistry at registration.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from armada_geofence.errors import InvalidGeofenceError, InvalidPositionError
from armada_geofence.geometry.shapes import CircleShape, PolygonShape
from armada_geofence.models import (
    Geofence,
    GeofenceStatus,
    RuleType,
    Vehicle,
    VehiclePosition,
)
from armada_geofence.registry import GeofenceRejection
from armada_mqtt.schemas import VehiclePositionMessage

logger = logging.getLogger(__name__)


def _definition(record: Mapping[str, Any], geofence_id: str) -> Dict[str, Any]:
    definition = record.get("definition")
    # Some backends store the definition as a JSON string
    if isinstance(definition, str):
        try:
            definition = json.loads(definition)
        except json.JSONDecodeError as e:
            raise InvalidGeofenceError(geofence_id, f"definition is not valid JSON: {e}")

    if not isinstance(definition, dict):
        raise InvalidGeofenceError(geofence_id, "definition missing")
    return definition


def geofence_from_record(record: Mapping[str, Any]) -> Geofence:
    """
    Build a Geofence from a backend ``geofence`` record.

    Args:
        record: Mapping with geofence_id, name, type (circle|polygon),
            rule_type, status and definition

    Returns:
        Geofence (not yet validated; see GeofenceRegistry)

    Raises:
        InvalidGeofenceError: On missing or unparseable fields
    """
    if not isinstance(record, Mapping):
        raise InvalidGeofenceError(None, f"record must be a mapping, got {type(record).__name__}")

    raw_id = record.get("geofence_id")
    if raw_id is None or str(raw_id) == "":
        raise InvalidGeofenceError(None, "geofence_id missing")
    geofence_id = str(raw_id)

    try:
        rule_type = RuleType(str(record.get("rule_type", RuleType.STANDARD.value)).upper())
    except ValueError:
        raise InvalidGeofenceError(geofence_id, f"unknown rule_type {record.get('rule_type')!r}")

    try:
        status = GeofenceStatus(str(record.get("status", GeofenceStatus.ACTIVE.value)).lower())
    except ValueError:
        raise InvalidGeofenceError(geofence_id, f"unknown status {record.get('status')!r}")

    definition = _definition(record, geofence_id)
    shape_type = str(record.get("type") or definition.get("type") or "").lower()

    if shape_type == "circle":
        center = definition.get("center")
        radius = definition.get("radius")
        if center is None or radius is None:
            raise InvalidGeofenceError(geofence_id, "circle requires center and radius")
        try:
            shape = CircleShape(
                center=(float(center[0]), float(center[1])),
                radius_m=float(radius),
            )
        except (TypeError, ValueError, IndexError) as e:
            raise InvalidGeofenceError(geofence_id, f"circle definition not numeric: {e}")

    elif shape_type == "polygon":
        coordinates = definition.get("coordinates")
        if not coordinates:
            raise InvalidGeofenceError(geofence_id, "polygon requires coordinates")
        try:
            shape = PolygonShape(rings=tuple(coordinates))
        except InvalidGeofenceError as e:
            raise InvalidGeofenceError(geofence_id, e.reason)

    else:
        raise InvalidGeofenceError(geofence_id, f"unknown geofence type {shape_type!r}")

    return Geofence(
        geofence_id=geofence_id,
        name=str(record.get("name") or geofence_id),
        shape=shape,
        rule_type=rule_type,
        status=status,
    )


def geofences_from_records(
    records: Iterable[Mapping[str, Any]]
) -> Tuple[List[Geofence], List[GeofenceRejection]]:
    """
    Translate a batch of records; unparseable ones become rejections.

    Returns:
        (geofences, rejections)
    """
    geofences: List[Geofence] = []
    rejections: List[GeofenceRejection] = []

    for record in records:
        try:
            geofences.append(geofence_from_record(record))
        except InvalidGeofenceError as e:
            logger.warning(f"Skipping geofence record {e.geofence_id!r}: {e.reason}")
            rejections.append(GeofenceRejection(geofence_id=e.geofence_id, reason=e.reason))

    return geofences, rejections


def vehicle_from_record(record: Mapping[str, Any]) -> Vehicle:
    """
    Build a Vehicle from a backend ``vehicle`` record.

    Raises:
        ValueError: If vehicle_id is missing
    """
    raw_id = record.get("vehicle_id")
    if raw_id is None or str(raw_id) == "":
        raise ValueError("vehicle record missing vehicle_id")

    gps_id = record.get("gps_id")
    return Vehicle(
        vehicle_id=str(raw_id),
        name=str(record.get("name") or ""),
        license_plate=str(record.get("license_plate") or ""),
        gps_id=str(gps_id) if gps_id not in (None, "") else None,
    )


def vehicles_from_records(records: Iterable[Mapping[str, Any]]) -> List[Vehicle]:
    """Translate a roster; records without vehicle_id are logged and skipped."""
    vehicles = []
    for record in records:
        try:
            vehicles.append(vehicle_from_record(record))
        except ValueError as e:
            logger.warning(f"Skipping vehicle record: {e}")
    return vehicles


def build_gps_index(vehicles: Iterable[Vehicle]) -> Dict[str, str]:
    """{gps_id: vehicle_id} for vehicles with a GPS device."""
    return {v.gps_id: v.vehicle_id for v in vehicles if v.gps_id}


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse an ISO 8601 timestamp (trailing 'Z' accepted); None passes through.

    Raises:
        ValueError: If the value is not a valid timestamp
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    dt = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def position_from_vehicle_data(
    row: Mapping[str, Any],
    gps_index: Mapping[str, str]
) -> VehiclePosition:
    """
    Build a VehiclePosition from a ``vehicle_datas`` row.

    Rows carry latitude/longitude as strings, an ISO timestamp, and either
    vehicle_id or gps_id (resolved through gps_index).

    Raises:
        InvalidPositionError: If the vehicle cannot be resolved or the
            position/timestamp is malformed
    """
    gps_id = row.get("gps_id")
    vehicle_id = row.get("vehicle_id")
    if vehicle_id in (None, ""):
        vehicle_id = gps_index.get(str(gps_id)) if gps_id not in (None, "") else None
    if vehicle_id in (None, ""):
        raise InvalidPositionError(gps_id, f"no vehicle registered for gps_id {gps_id!r}")

    try:
        coordinates = (float(row["longitude"]), float(row["latitude"]))
    except KeyError as e:
        raise InvalidPositionError(vehicle_id, f"missing field {e}")
    except (TypeError, ValueError) as e:
        raise InvalidPositionError(vehicle_id, f"coordinates not numeric: {e}")

    try:
        timestamp = parse_timestamp(row.get("timestamp"))
    except ValueError as e:
        raise InvalidPositionError(vehicle_id, f"invalid timestamp: {e}")

    return VehiclePosition.create(vehicle_id, coordinates, timestamp)


def position_from_message(msg: VehiclePositionMessage) -> VehiclePosition:
    """
    Build a VehiclePosition from a telemetry wire message.

    Raises:
        InvalidPositionError: If the message timestamp is malformed
    """
    try:
        timestamp = msg.timestamp.to_datetime()
    except ValueError as e:
        raise InvalidPositionError(msg.vehicle_id, str(e))

    return VehiclePosition.create(msg.vehicle_id, msg.coordinates, timestamp)
