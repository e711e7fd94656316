"""
Datetime utility functions for timestamps stored in the graph and documents
"""
from datetime import date, datetime, time, timezone
from typing import Optional, Union
import logging

logger = logging.getLogger(__name__)

DateLike = Union[datetime, date, str]


def to_datetime(value, end_of_day: bool = False) -> Optional[datetime]:
    """
    Normalize a timestamp to a timezone-aware Python datetime.

    Handles:
    - None -> None
    - Neo4j DateTime (to_native) -> Python datetime
    - Python datetime -> as-is (naive values are taken as UTC)
    - Python date / 'YYYY-MM-DD' -> start of day, or end of day when
      end_of_day is set (used for inclusive upper bounds)
    - ISO 8601 string (with 'Z' or an offset)

    Raises:
        ValueError: If the value cannot be read as a timestamp
    """
    if value is None:
        return None

    # Neo4j DateTime with to_native() method
    if hasattr(value, 'to_native'):
        value = value.to_native()

    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        dt = datetime.combine(value, time.max if end_of_day else time.min)
    elif isinstance(value, str):
        text = value.strip()
        if len(text) == 10:
            parsed = date.fromisoformat(text)
            dt = datetime.combine(parsed, time.max if end_of_day else time.min)
        else:
            dt = datetime.fromisoformat(text.replace('Z', '+00:00'))
    else:
        raise ValueError(f"Cannot convert {type(value)} to datetime: {value!r}")

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def to_iso(value) -> Optional[str]:
    """Serialize a timestamp as ISO 8601 keeping its UTC offset."""
    dt = to_datetime(value)
    return dt.isoformat() if dt else None


def parse_stored_datetime(value) -> Optional[datetime]:
    """
    Lenient variant for values read back from a store.

    Unreadable values are logged and dropped instead of failing the read.
    """
    try:
        return to_datetime(value)
    except ValueError as e:
        logger.warning(f"Failed to parse stored datetime {value!r}: {e}")
        return None
