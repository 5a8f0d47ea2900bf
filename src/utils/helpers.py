"""Time and response formatting helpers."""

from datetime import UTC, datetime


def utcnow() -> datetime:
    """Current UTC time as a naive datetime.

    Timestamps are stored naive-in-UTC (same as the ``datetime.utcnow``
    column defaults), so comparisons must use naive values too.
    """
    return datetime.now(UTC).replace(tzinfo=None)


def format_utc_datetime(dt: datetime | None) -> str | None:
    """Format datetime to ISO string with Z suffix for UTC.

    Stored timestamps carry no tzinfo; the Z suffix lets clients parse
    them as UTC.

    Args:
        dt: datetime object (assumed UTC) or None

    Returns:
        ISO format string with Z suffix (e.g., "2026-01-10T10:30:00Z") or None
    """
    if dt is None:
        return None
    return f"{dt.isoformat()}Z"
