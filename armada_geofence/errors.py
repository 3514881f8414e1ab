"""
Geofence Domain Errors
======================

Errors raised by the geofence core. Both concrete errors subclass ValueError
so callers that already guard input parsing with ``except ValueError`` keep
working.
"""


class ArmadaGeofenceError(Exception):
    """Base class for geofence core errors."""
    pass


class InvalidGeofenceError(ArmadaGeofenceError, ValueError):
    """Raised when a geofence definition violates a shape invariant."""

    def __init__(self, geofence_id, reason: str):
        self.geofence_id = geofence_id
        self.reason = reason
        super().__init__(f"Invalid geofence '{geofence_id}': {reason}")


class InvalidPositionError(ArmadaGeofenceError, ValueError):
    """Raised when a telemetry sample cannot be trusted as a position fix."""

    def __init__(self, vehicle_id, reason: str):
        self.vehicle_id = vehicle_id
        self.reason = reason
        super().__init__(f"Invalid position for vehicle '{vehicle_id}': {reason}")
