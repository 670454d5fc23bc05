"""Coin accrual, streak bookkeeping and goal progress."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Final, Iterable

from gym_rewards.models import (
    COINS_PER_MINUTE,
    DEFAULT_TZ,
    FREE_MINUTES,
    PRO_MULTIPLIER,
    Session,
    Stats,
)
from gym_rewards.timeutils import calendar_day, day_difference, tzinfo_from_name


def calculate_coins(minutes: int, is_pro: bool) -> int:
    """Coins for a visit of ``minutes``: only minutes beyond the free hour pay."""

    billable = max(0, minutes - FREE_MINUTES)
    base = billable * COINS_PER_MINUTE
    return base * PRO_MULTIPLIER if is_pro else base


class RewardEngine:
    """Apply a closed, valid session to a user's stats.

    The engine holds no state besides the time zone used to decide which
    calendar day a session belongs to.
    """

    def __init__(self, tz_name: str = DEFAULT_TZ) -> None:
        tzinfo_from_name(tz_name)
        self._tz_name = tz_name

    @property
    def tz_name(self) -> str:
        return self._tz_name

    def apply(self, session: Session, stats: Stats, is_pro: bool) -> Stats:
        """Return the stats after crediting ``session``.

        Args:
            session: A closed session with ``is_valid`` True.
            stats: Stats before the session.
            is_pro: Whether the Pro coin multiplier applies.

        Raises:
            ValueError: If the session is still open.
        """

        if session.end_time is None:
            raise ValueError("cannot reward an open session")

        minutes = session.duration_seconds // 60
        stats = replace(
            stats,
            total_coins=stats.total_coins + calculate_coins(minutes, is_pro),
            total_sessions=stats.total_sessions + 1,
            total_minutes=stats.total_minutes + minutes,
            last_session_date=session.end_time,
        )
        return self.update_streak(stats, session)

    def update_streak(self, stats: Stats, session: Session) -> Stats:
        """Advance the daily streak for a session ending on its calendar day.

        Same day keeps the streak, the next day extends it, a gap resets it to
        one. A session dated before the last streak update counts as same day.
        The streak day always moves to the session end.
        """

        if session.end_time is None:
            raise ValueError("cannot update streak from an open session")
        today = calendar_day(session.end_time, self._tz_name)
        current = stats.current_streak
        last_update = stats.last_streak_update

        if last_update is None:
            current = 1
        else:
            delta = day_difference(calendar_day(last_update, self._tz_name), today)
            if delta == 1:
                current += 1
            elif delta > 1:
                current = 1
            # delta <= 0: same day or out-of-order arrival, streak unchanged

        return replace(
            stats,
            current_streak=current,
            longest_streak=max(stats.longest_streak, current),
            last_streak_update=session.end_time,
        )


@dataclass(frozen=True, slots=True)
class Milestone:
    required_streak: int
    title: str
    description: str


MILESTONES: Final[tuple[Milestone, ...]] = (
    Milestone(5, "Grocery Voucher", "10 off your next grocery purchase"),
    Milestone(10, "Protein Voucher", "15% off protein products"),
    Milestone(15, "Coins Bonus", "200 coins added to your account"),
    Milestone(20, "Premium Upgrade", "One month of premium features"),
    Milestone(30, "Gym Subscription", "One month free extension"),
)


@dataclass(frozen=True, slots=True)
class MilestoneProgress:
    milestone: Milestone
    unlocked: bool
    progress: float


def milestone_progress(
    current_streak: int,
    milestones: Iterable[Milestone] = MILESTONES,
) -> list[MilestoneProgress]:
    """Progress towards each streak milestone, ordered by required streak."""

    out: list[MilestoneProgress] = []
    for m in sorted(milestones, key=lambda x: x.required_streak):
        out.append(
            MilestoneProgress(
                milestone=m,
                unlocked=current_streak >= m.required_streak,
                progress=min(max(current_streak, 0) / m.required_streak, 1.0),
            )
        )
    return out


@dataclass(frozen=True, slots=True)
class WeeklyProgress:
    week_year: str
    sessions: int
    goal: int

    @property
    def goal_met(self) -> bool:
        return self.sessions >= self.goal


def weekly_progress(sessions: Iterable[Session], week_year: str, goal: int) -> WeeklyProgress:
    """Count valid closed sessions that started in ``week_year``."""

    count = sum(1 for s in sessions if s.week_year == week_year and s.is_valid and not s.is_open)
    return WeeklyProgress(week_year=week_year, sessions=count, goal=goal)
