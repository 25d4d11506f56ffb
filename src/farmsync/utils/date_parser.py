"""Timestamp parsing and conversion utilities."""

from datetime import datetime, time, timedelta, UTC
from typing import Any
from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta


def ensure_aware(value: datetime) -> datetime:
    """Return ``value`` as a timezone-aware datetime, assuming UTC when naive."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def parse_timestamp(value: str) -> datetime:
    """Parse a timestamp string into an aware datetime.

    Supports various formats including relative dates:
    - ISO timestamps: "2024-01-15T10:30:00Z", "2024-01-15"
    - Free-form dates: "January 15, 2024"
    - Relative: "now", "today", "yesterday", "tomorrow",
      "last/this/next week|month|year"

    Relative days resolve to midnight UTC. Naive input is taken as UTC.

    Raises:
        ValueError: If the string cannot be parsed
    """
    text = value.strip().lower()
    now = datetime.now(UTC)
    today = now.date()

    if text == "now":
        return now

    relative_days = {
        "today": today,
        "yesterday": today - timedelta(days=1),
        "tomorrow": today + timedelta(days=1),
    }
    day = relative_days.get(text)

    if day is None:
        for prefix, months, weeks, years in (
            ("last ", -1, -1, -1),
            ("this ", 0, 0, 0),
            ("next ", 1, 1, 1),
        ):
            if not text.startswith(prefix):
                continue
            period = text[len(prefix):]
            if period == "week":
                day = today - timedelta(days=today.weekday()) + timedelta(weeks=weeks)
            elif period == "month":
                day = (today + relativedelta(months=months)).replace(day=1)
            elif period == "year":
                day = today.replace(month=1, day=1) + relativedelta(years=years)
            break

    if day is not None:
        return datetime.combine(day, time.min, tzinfo=UTC)

    try:
        return ensure_aware(date_parser.parse(value.strip()))
    except (ValueError, OverflowError) as e:
        raise ValueError(f"Could not parse timestamp '{value}': {e}")


def from_iso(value: str) -> datetime:
    """Parse an ISO-8601 string as written by ``to_iso`` or a browser."""
    return ensure_aware(date_parser.isoparse(value))


def to_iso(value: datetime) -> str:
    """Format an aware datetime as ISO-8601."""
    return ensure_aware(value).isoformat()


def to_epoch_ms(value: datetime) -> int:
    """Convert a datetime to integer milliseconds since the epoch."""
    return int(ensure_aware(value).timestamp() * 1000)


def from_epoch_ms(value: int | float) -> datetime:
    """Convert milliseconds since the epoch to an aware UTC datetime."""
    return datetime.fromtimestamp(value / 1000, tz=UTC)


def coerce_timestamp(value: Any) -> datetime:
    """Convert a datetime, ISO string or epoch-milliseconds number to a datetime."""
    if isinstance(value, datetime):
        return ensure_aware(value)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return from_epoch_ms(value)
    if isinstance(value, str):
        return from_iso(value)
    raise ValueError(f"Unsupported timestamp value: {value!r}")
