"""
Common Schema Types
==================

Bounded Context: Shared Data Structures

Types shared by telemetry and geofence event messages.

Design Principles:
- Immutability: frozen=True prevents accidental mutation
- Serialization: to_dict() for JSON export
- Timezone-aware: every Timestamp carries an explicit UTC offset
"""

from dataclasses import dataclass
from datetime import datetime, timezone


@dataclass(frozen=True)
class Timestamp:
    """
    Immutable ISO 8601 timestamp wrapper.

    Attributes:
        value: ISO 8601 formatted timestamp string

    Example:
        >>> ts = Timestamp.now()
        >>> ts.value
        '2025-10-24T15:30:45.123456+00:00'
    """
    value: str

    @classmethod
    def now(cls) -> 'Timestamp':
        """Create timestamp from current UTC time."""
        return cls(value=datetime.now(timezone.utc).isoformat())

    @classmethod
    def from_datetime(cls, dt: datetime) -> 'Timestamp':
        """Create timestamp from datetime object (naive means UTC)."""
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return cls(value=dt.isoformat())

    def to_datetime(self) -> datetime:
        """Parse to timezone-aware datetime.

        Raises:
            ValueError: If timestamp format invalid
        """
        try:
            dt = datetime.fromisoformat(self.value.replace('Z', '+00:00'))
        except (AttributeError, ValueError) as e:
            raise ValueError(f"Invalid ISO timestamp: {self.value}") from e
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt

    def to_dict(self) -> str:
        """Serialize to JSON (as string)."""
        return self.value
