"""Tests for timestamp parsing with relative dates."""

import pytest
from datetime import date, datetime, timedelta, UTC
from dateutil.relativedelta import relativedelta
from farmsync.utils.date_parser import (
    coerce_timestamp,
    from_epoch_ms,
    parse_timestamp,
    to_epoch_ms,
    to_iso,
)


def midnight(day: date) -> datetime:
    return datetime(day.year, day.month, day.day, tzinfo=UTC)


def test_parse_iso_timestamp():
    """Test parsing ISO timestamps."""
    assert parse_timestamp("2024-01-15T10:30:00Z") == datetime(2024, 1, 15, 10, 30, tzinfo=UTC)


def test_parse_naive_is_utc():
    """Test that naive input is taken as UTC."""
    result = parse_timestamp("2024-01-15")
    assert result == datetime(2024, 1, 15, tzinfo=UTC)
    assert result.tzinfo is not None


def test_parse_now():
    """Test parsing 'now'."""
    before = datetime.now(UTC)
    result = parse_timestamp("now")
    assert before <= result <= datetime.now(UTC)


def test_parse_today():
    """Test parsing 'today'."""
    assert parse_timestamp("today") == midnight(datetime.now(UTC).date())


def test_parse_yesterday():
    """Test parsing 'yesterday'."""
    assert parse_timestamp("Yesterday") == midnight(datetime.now(UTC).date() - timedelta(days=1))


def test_parse_tomorrow():
    """Test parsing 'tomorrow'."""
    assert parse_timestamp("tomorrow") == midnight(datetime.now(UTC).date() + timedelta(days=1))


def test_parse_last_month():
    """Test parsing 'last month'."""
    today = datetime.now(UTC).date()
    expected = (today - relativedelta(months=1)).replace(day=1)
    assert parse_timestamp("last month") == midnight(expected)


def test_parse_last_week():
    """Test parsing 'last week'."""
    result = parse_timestamp("last week")
    today = datetime.now(UTC).date()
    expected = today - timedelta(days=today.weekday() + 7)
    assert result == midnight(expected)
    # Verify it's a Monday (weekday 0)
    assert result.weekday() == 0


def test_parse_this_year():
    """Test parsing 'this year'."""
    today = datetime.now(UTC).date()
    assert parse_timestamp("this year") == midnight(date(today.year, 1, 1))


def test_parse_next_year():
    """Test parsing 'next year'."""
    today = datetime.now(UTC).date()
    assert parse_timestamp("next year") == midnight(date(today.year + 1, 1, 1))


def test_parse_invalid():
    """Test parsing invalid input."""
    with pytest.raises(ValueError, match="Could not parse timestamp"):
        parse_timestamp("last invalid")


def test_parse_standard_formats():
    """Test parsing various standard date formats."""
    # These should all work via dateutil parser
    assert parse_timestamp("January 15, 2024") == datetime(2024, 1, 15, tzinfo=UTC)
    assert parse_timestamp("15/01/2024") == datetime(2024, 1, 15, tzinfo=UTC)


def test_epoch_ms_conversion():
    """Test conversion to and from epoch milliseconds."""
    when = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)
    assert to_epoch_ms(when) == 1714564800000
    assert from_epoch_ms(1714564800000) == when


def test_to_iso():
    """Test ISO formatting of naive and aware values."""
    assert to_iso(datetime(2024, 5, 1, 12, 0)) == "2024-05-01T12:00:00+00:00"


def test_coerce_timestamp():
    """Test accepting the encodings found in stored data."""
    when = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)
    assert coerce_timestamp(when) == when
    assert coerce_timestamp(1714564800000) == when
    assert coerce_timestamp("2024-05-01T12:00:00.000Z") == when
    with pytest.raises(ValueError):
        coerce_timestamp(None)
