"""
Date/time helpers, framework-agnostic.

Services never call ``datetime.now`` directly; they take a ``Clock`` so tests
can pin the current time.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable, Optional

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Return the current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Return *value* as a timezone-aware UTC datetime.

    MongoDB hands back naive datetimes unless the client is created with
    ``tz_aware=True``; naive values are assumed to already be UTC.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_timestamp(value: datetime) -> int:
    """Return *value* as integer Unix epoch seconds."""
    return int(ensure_utc(value).timestamp())


def from_timestamp(value: int | float) -> datetime:
    """Return epoch seconds as a UTC datetime."""
    return datetime.fromtimestamp(int(value), tz=timezone.utc)
