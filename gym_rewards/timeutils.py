"""Time parsing, formatting and calendar-day utilities."""

from __future__ import annotations

from datetime import UTC, date, datetime, tzinfo

from zoneinfo import ZoneInfo


def tzinfo_from_name(tz_name: str) -> tzinfo:
    """Create tzinfo from an IANA timezone name.

    Args:
        tz_name: Timezone name like "Europe/Zurich".

    Returns:
        tzinfo instance.

    Raises:
        ValueError: If timezone name is invalid on this system.
    """

    try:
        return ZoneInfo(tz_name)
    except Exception as exc:  # ZoneInfo raises KeyError / ZoneInfoNotFoundError (platform dependent)
        raise ValueError(f"Invalid time zone: {tz_name!r}. Example: Europe/Zurich") from exc


def dt_from_epoch_ms(epoch_ms: int, tz_name: str) -> datetime:
    """Convert epoch milliseconds to timezone-aware datetime.

    Args:
        epoch_ms: Unix epoch milliseconds.
        tz_name: IANA timezone name.

    Returns:
        Timezone-aware datetime.
    """

    tz = tzinfo_from_name(tz_name)
    return datetime.fromtimestamp(epoch_ms / 1000.0, tz=tz)


def epoch_ms_from_dt(dt: datetime) -> int:
    """Convert a datetime to epoch milliseconds.

    Args:
        dt: Datetime. If naive, will be treated as UTC (discouraged).

    Returns:
        Epoch milliseconds.
    """

    return int(ensure_aware(dt).timestamp() * 1000)


def ensure_aware(dt: datetime) -> datetime:
    """Attach UTC to naive datetimes; aware ones are returned unchanged."""

    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


def utc_now() -> datetime:
    """Default clock: the current time in UTC."""

    return datetime.now(UTC)


def calendar_day(dt: datetime, tz_name: str) -> date:
    """Return the calendar date of ``dt`` as seen in ``tz_name``."""

    return ensure_aware(dt).astimezone(tzinfo_from_name(tz_name)).date()


def day_difference(earlier: date, later: date) -> int:
    """Whole calendar days from ``earlier`` to ``later`` (negative if reversed)."""

    return (later - earlier).days


def week_year_label(dt: datetime, tz_name: str) -> str:
    """ISO week label like "2025-W03" for ``dt`` in ``tz_name``."""

    year, week, _ = calendar_day(dt, tz_name).isocalendar()
    return f"{year}-W{week:02d}"


def format_hhmmss(seconds: float) -> str:
    s = int(round(max(0.0, seconds)))
    h = s // 3600
    m = (s % 3600) // 60
    sec = s % 60
    return f"{h:02d}:{m:02d}:{sec:02d}"
