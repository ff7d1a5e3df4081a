# backend/travel_itinerary/utils/time_utils.py

from datetime import date, datetime, timezone
from typing import Any, Optional


def utcnow() -> datetime:
    """Naive UTC timestamp, millisecond precision (what the document store keeps)."""
    now = datetime.now(timezone.utc).replace(tzinfo=None)
    return now.replace(microsecond=now.microsecond // 1000 * 1000)


def parse_date(value: Any) -> Optional[datetime]:
    """
    Accepts formats like:
    - 2024-06-01
    - 2024-06-01T09:30:00
    - 2024-06-01T09:30:00.000Z
    - datetime / date objects

    Returns a naive UTC datetime, or None when the value cannot be read as a date.
    """
    if value is None:
        return None

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def to_iso(value: Optional[datetime]) -> Optional[str]:
    """ISO-8601 with a trailing ``Z``, e.g. ``2024-06-01T00:00:00.000Z``."""
    if value is None:
        return None
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"
