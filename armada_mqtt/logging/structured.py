"""
Structured JSON Logger
======================

Every monitor log line is a single JSON object so alert pipelines can
filter on `event`, `vehicle_id` or `geofence_id` without regexes:

    {"timestamp": "2024-01-01T00:01:00+00:00", "level": "WARNING",
     "component": "monitor", "event": "geofence.violation",
     "message": "Truck 1 violation_enter Depot",
     "metadata": {"vehicle_id": "v1", "geofence_id": "1"}}

Metadata values that JSON cannot encode (sets, datetimes, enums) are
written with str().
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from .events import LogEvent

Metadata = Optional[Dict[str, Any]]


class StructuredLogger:
    """
    Emits LogEvent-tagged JSON lines on the `armada_mqtt.<component>` logger.

    A StreamHandler is attached the first time a component logger is
    created; later instances for the same component reuse it.
    """

    def __init__(
        self,
        component: str,
        level: int = logging.INFO,
        logger_name: Optional[str] = None
    ):
        self.component = component
        self.logger_name = logger_name or f"armada_mqtt.{component}"
        self.logger = logging.getLogger(self.logger_name)
        self.logger.setLevel(level)

        if not self.logger.handlers:
            handler = logging.StreamHandler()
            handler.setFormatter(JSONFormatter())
            self.logger.addHandler(handler)

    def _entry(
        self,
        level: int,
        event: LogEvent,
        message: str,
        metadata: Metadata,
        error: Optional[BaseException],
    ) -> Dict[str, Any]:
        entry: Dict[str, Any] = {
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'level': logging.getLevelName(level),
            'component': self.component,
            'event': event.value,
            'message': message,
        }
        if metadata:
            entry['metadata'] = metadata
        if error is not None:
            entry['exception'] = {
                'type': type(error).__name__,
                'message': str(error),
            }
        return entry

    def _emit(
        self,
        level: int,
        event: LogEvent,
        message: str,
        metadata: Metadata = None,
        error: Optional[BaseException] = None,
    ) -> None:
        if not self.logger.isEnabledFor(level):
            return
        line = json.dumps(self._entry(level, event, message, metadata, error), default=str)
        self.logger.log(level, line, exc_info=error)

    def debug(self, event: LogEvent, message: str, metadata: Metadata = None) -> None:
        self._emit(logging.DEBUG, event, message, metadata)

    def info(self, event: LogEvent, message: str, metadata: Metadata = None) -> None:
        self._emit(logging.INFO, event, message, metadata)

    def warning(self, event: LogEvent, message: str, metadata: Metadata = None) -> None:
        self._emit(logging.WARNING, event, message, metadata)

    def error(
        self,
        event: LogEvent,
        message: str,
        metadata: Metadata = None,
        exc_info: Optional[BaseException] = None
    ) -> None:
        """
        Log at ERROR.

        Args:
            exc_info: Exception that caused the failure; its type and message
                are copied into the entry's `exception` field
        """
        self._emit(logging.ERROR, event, message, metadata, exc_info)

    def set_level(self, level: int) -> None:
        self.logger.setLevel(level)


class JSONFormatter(logging.Formatter):
    """Writes the record's message as-is; StructuredLogger already encoded it."""

    def format(self, record: logging.LogRecord) -> str:
        return record.getMessage()


def create_logger(component: str, level: int = logging.INFO) -> StructuredLogger:
    """Logger for one monitor component, e.g. create_logger("event_publisher")."""
    return StructuredLogger(component=component, level=level)
