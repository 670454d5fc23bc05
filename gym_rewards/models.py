"""Data models for gym sites, visit sessions and per-user stats."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Final


PROXIMITY_THRESHOLD_M: Final[float] = 100.0
MIN_VALID_SESSION_SECONDS: Final[int] = 30 * 60
FREE_MINUTES: Final[int] = 60
COINS_PER_MINUTE: Final[int] = 10
PRO_MULTIPLIER: Final[int] = 2
RECENT_SESSIONS_LIMIT: Final[int] = 10
HISTORY_SESSIONS_LIMIT: Final[int] = 50

DEFAULT_TZ: Final[str] = "UTC"
DEFAULT_WEEKLY_GOAL: Final[int] = 2


def _dt_to_str(dt: datetime | None) -> str | None:
    return dt.isoformat() if dt is not None else None


def _dt_from_str(text: Any) -> datetime | None:
    if not text:
        return None
    return datetime.fromisoformat(str(text))


@dataclass(frozen=True, slots=True)
class GeoPoint:
    """A WGS84 coordinate in decimal degrees."""

    latitude: float
    longitude: float

    def to_dict(self) -> dict[str, float]:
        return {"latitude": self.latitude, "longitude": self.longitude}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GeoPoint:
        return cls(latitude=float(data["latitude"]), longitude=float(data["longitude"]))


@dataclass(frozen=True, slots=True)
class GymSite:
    """A candidate gym supplied by the place directory."""

    id: str
    name: str
    location: GeoPoint


@dataclass(frozen=True, slots=True)
class Session:
    """One visit attempt at a gym.

    A session is open while ``end_time`` is None. Closing it (see ``closed``)
    stamps the end time and derives ``duration_seconds`` and ``is_valid``.

    Attributes:
        id: Store-assigned document id; None until first persisted.
        user_id: Owner of the record.
        gym_id: Id of the visited gym.
        gym_name: Display name of the visited gym.
        start_time: Timezone-aware entry time.
        end_time: Timezone-aware exit time, None while open.
        duration_seconds: Whole seconds between start and end (0 while open).
        user_location_at_start: Device coordinate at entry.
        gym_location: Gym coordinate at entry.
        is_valid: True when the visit lasted at least MIN_VALID_SESSION_SECONDS.
        week_year: ISO week label of the start time, e.g. "2025-W03".
        coins_earned: Coins credited for this visit by the reward engine.
    """

    user_id: str
    gym_id: str
    gym_name: str
    start_time: datetime
    user_location_at_start: GeoPoint
    gym_location: GeoPoint
    week_year: str = ""
    id: str | None = None
    end_time: datetime | None = None
    duration_seconds: int = 0
    is_valid: bool = False
    coins_earned: int = 0

    @property
    def is_open(self) -> bool:
        return self.end_time is None

    @property
    def duration_minutes(self) -> int:
        return self.duration_seconds // 60

    def closed(self, end_time: datetime) -> Session:
        """Return the closed copy of this session ending at ``end_time``.

        An end time earlier than the start time is clamped to the start time so
        that ``end_time >= start_time`` always holds.
        """

        end = max(end_time, self.start_time)
        duration = int((end - self.start_time).total_seconds())
        return replace(
            self,
            end_time=end,
            duration_seconds=duration,
            is_valid=duration >= MIN_VALID_SESSION_SECONDS,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "userId": self.user_id,
            "gymId": self.gym_id,
            "gymName": self.gym_name,
            "startTime": _dt_to_str(self.start_time),
            "endTime": _dt_to_str(self.end_time),
            "durationSeconds": self.duration_seconds,
            "userLocationAtStart": self.user_location_at_start.to_dict(),
            "gymLocation": self.gym_location.to_dict(),
            "isValid": self.is_valid,
            "weekYear": self.week_year,
            "coinsEarned": self.coins_earned,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Session:
        start = _dt_from_str(data["startTime"])
        if start is None:
            raise ValueError("session document has no startTime")
        return cls(
            id=data.get("id"),
            user_id=str(data["userId"]),
            gym_id=str(data["gymId"]),
            gym_name=str(data.get("gymName", "")),
            start_time=start,
            end_time=_dt_from_str(data.get("endTime")),
            duration_seconds=int(data.get("durationSeconds", 0) or 0),
            user_location_at_start=GeoPoint.from_dict(data["userLocationAtStart"]),
            gym_location=GeoPoint.from_dict(data["gymLocation"]),
            is_valid=bool(data.get("isValid", False)),
            week_year=str(data.get("weekYear", "") or ""),
            coins_earned=int(data.get("coinsEarned", 0) or 0),
        )


@dataclass(frozen=True, slots=True)
class Stats:
    """Per-user reward aggregate. All counters start at zero."""

    total_coins: int = 0
    current_streak: int = 0
    longest_streak: int = 0
    total_sessions: int = 0
    total_minutes: int = 0
    last_session_date: datetime | None = None
    last_streak_update: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalCoins": self.total_coins,
            "currentStreak": self.current_streak,
            "longestStreak": self.longest_streak,
            "totalSessions": self.total_sessions,
            "totalMinutes": self.total_minutes,
            "lastSessionDate": _dt_to_str(self.last_session_date),
            "lastStreakUpdate": _dt_to_str(self.last_streak_update),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Stats:
        return cls(
            total_coins=int(data.get("totalCoins", 0) or 0),
            current_streak=int(data.get("currentStreak", 0) or 0),
            longest_streak=int(data.get("longestStreak", 0) or 0),
            total_sessions=int(data.get("totalSessions", 0) or 0),
            total_minutes=int(data.get("totalMinutes", 0) or 0),
            last_session_date=_dt_from_str(data.get("lastSessionDate")),
            last_streak_update=_dt_from_str(data.get("lastStreakUpdate")),
        )


@dataclass(frozen=True, slots=True)
class UserSettings:
    """Per-user preferences consumed by the tracker."""

    weekly_goal: int = DEFAULT_WEEKLY_GOAL
    timezone: str = DEFAULT_TZ
    is_pro: bool = False
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "weeklyGoal": self.weekly_goal,
            "timezone": self.timezone,
            "isPro": self.is_pro,
            **self.extra,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> UserSettings:
        known = {"weeklyGoal", "timezone", "isPro"}
        return cls(
            weekly_goal=int(data.get("weeklyGoal", DEFAULT_WEEKLY_GOAL)),
            timezone=str(data.get("timezone", DEFAULT_TZ) or DEFAULT_TZ),
            is_pro=bool(data.get("isPro", False)),
            extra={k: v for k, v in data.items() if k not in known},
        )
