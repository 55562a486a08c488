"""
Date and time helpers.

Instants are timezone-aware UTC datetimes, serialized the way a browser's
Date.toISOString() does ("2024-03-01T10:00:00.000Z"). Due dates are plain
calendar dates ("2024-03-15").
"""

from datetime import date, datetime, timezone


def utcnow() -> datetime:
    """Current instant as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def to_iso(value: datetime | None) -> str | None:
    """Serialize an instant as ISO-8601 UTC with millisecond precision."""
    if value is None:
        return None
    value = ensure_aware(value)
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def ensure_aware(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def parse_datetime(value) -> datetime | None:
    """Parse an ISO-8601 string (or pass through a datetime) into an aware UTC instant."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return ensure_aware(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    return ensure_aware(datetime.fromisoformat(str(value).replace("Z", "+00:00")))


def parse_date(value) -> date | None:
    """Parse a calendar date; full timestamps are truncated to their date part."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])
