"""
Timestamp and identifier utilities for consistent node properties.
"""

import uuid
from datetime import datetime, timezone
from typing import Optional


def now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def to_iso_str(timestamp: Optional[datetime] = None) -> str:
    """Convert a datetime to the stored ISO-8601 string format.

    Microseconds are always rendered and naive datetimes are taken as UTC, so
    stored strings sort lexicographically in chronological order.

    Args:
        timestamp: datetime to convert (optional, uses current time if None)

    Returns:
        ISO-8601 UTC timestamp string
    """
    if timestamp is None:
        timestamp = now()
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    return timestamp.astimezone(timezone.utc).isoformat(timespec='microseconds')


def new_id() -> str:
    """Generate a new node identifier."""
    return str(uuid.uuid4())
