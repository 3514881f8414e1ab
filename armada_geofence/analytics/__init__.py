"""
Analytics Layer
===============

Bounded Context: Stateful memory derived from geofence events.

Responsibilities:
- ContainmentState: last known inside/outside per (vehicle, geofence)
- AlertStreamManager: deduplicated, acknowledgeable alert list
- Severity classification (pure)
"""

from armada_geofence.analytics.state import ContainmentState
from armada_geofence.analytics.alerts import (
    AlertNotification,
    AlertStreamManager,
    Severity,
    classify_severity,
)

__all__ = [
    "ContainmentState",
    "AlertNotification",
    "AlertStreamManager",
    "Severity",
    "classify_severity",
]
