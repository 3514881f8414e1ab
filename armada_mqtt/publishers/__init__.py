"""
MQTT Publishers
==============

Bounded Context: Message Production

Public API
----------
    BasePublisher: Abstract publisher (for custom publishers)
    GeofenceEventPublisher: Geofence event message publisher
"""

from .base import BasePublisher
from .geofence_event import GeofenceEventPublisher

__all__ = [
    'BasePublisher',
    'GeofenceEventPublisher',
]
