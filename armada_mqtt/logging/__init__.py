"""
Structured Logging for Armada MQTT
==================================

Bounded Context: Observability

JSON-structured logging (parseable by ELK, CloudWatch, Loki) with typed
event names.

Public API
----------
    LogEvent: Typed event names (enum)
    StructuredLogger: JSON logger implementation
    create_logger: Factory function
"""

from .events import LogEvent
from .structured import StructuredLogger, create_logger

__all__ = [
    'LogEvent',
    'StructuredLogger',
    'create_logger',
]
