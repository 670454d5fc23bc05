"""Tests for time utilities."""

from datetime import UTC, date, datetime

import pytest

from gym_rewards.timeutils import (
    calendar_day,
    day_difference,
    dt_from_epoch_ms,
    epoch_ms_from_dt,
    format_hhmmss,
    tzinfo_from_name,
    week_year_label,
)


def test_invalid_timezone_raises() -> None:
    """Test unknown zone names fail fast."""
    with pytest.raises(ValueError):
        tzinfo_from_name("Mars/Olympus_Mons")


def test_calendar_day_uses_zone() -> None:
    """Test late-evening UTC falls on the next day further east."""
    dt = datetime(2025, 1, 6, 23, 30, tzinfo=UTC)
    assert calendar_day(dt, "UTC") == date(2025, 1, 6)
    assert calendar_day(dt, "Europe/Zurich") == date(2025, 1, 7)


def test_calendar_day_naive_is_utc() -> None:
    """Test naive datetimes are read as UTC."""
    assert calendar_day(datetime(2025, 1, 6, 23, 30), "Europe/Zurich") == date(2025, 1, 7)


def test_day_difference() -> None:
    """Test signed whole-day differences."""
    assert day_difference(date(2025, 1, 6), date(2025, 1, 7)) == 1
    assert day_difference(date(2025, 1, 6), date(2025, 1, 6)) == 0
    assert day_difference(date(2025, 1, 7), date(2025, 1, 6)) == -1
    assert day_difference(date(2024, 12, 31), date(2025, 1, 3)) == 3


def test_week_year_label() -> None:
    """Test ISO week labels, including the year boundary."""
    assert week_year_label(datetime(2025, 1, 6, 12, tzinfo=UTC), "UTC") == "2025-W02"
    assert week_year_label(datetime(2024, 12, 30, 12, tzinfo=UTC), "UTC") == "2025-W01"


def test_epoch_round_trip() -> None:
    """Test epoch milliseconds conversion."""
    dt = dt_from_epoch_ms(1_736_157_600_000, "UTC")
    assert dt == datetime(2025, 1, 6, 10, 0, tzinfo=UTC)
    assert epoch_ms_from_dt(dt) == 1_736_157_600_000


def test_format_hhmmss() -> None:
    """Test duration formatting."""
    assert format_hhmmss(5400) == "01:30:00"
    assert format_hhmmss(-5) == "00:00:00"
