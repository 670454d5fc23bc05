"""Per-user pipeline: location sample -> presence -> session -> rewards."""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from typing import Callable, Sequence

from gym_rewards.ledger import SessionLedger
from gym_rewards.models import PROXIMITY_THRESHOLD_M, GeoPoint, GymSite, Session, Stats, UserSettings
from gym_rewards.proximity import ProximityMonitor, Transition, TransitionKind
from gym_rewards.rewards import RewardEngine, calculate_coins
from gym_rewards.store import SessionStore, StoreError
from gym_rewards.timeutils import utc_now

logger = logging.getLogger(__name__)


class GymTracker:
    """Drive one user's monitor, ledger and reward engine.

    One tracker per active user; calls must come from a single thread of
    control for that user. ``stats`` always holds the latest computed stats,
    even when writing them to the store failed.
    """

    def __init__(
        self,
        user_id: str,
        store: SessionStore,
        settings: UserSettings | None = None,
        *,
        clock: Callable[[], datetime] = utc_now,
        threshold_m: float = PROXIMITY_THRESHOLD_M,
    ) -> None:
        self.user_id = user_id
        self.settings = settings if settings is not None else UserSettings()
        self._store = store
        self.monitor = ProximityMonitor(threshold_m)
        self.ledger = SessionLedger(user_id, store, tz_name=self.settings.timezone, clock=clock)
        self.engine = RewardEngine(self.settings.timezone)
        self.stats: Stats = self._load_stats(Stats())
        self.closed_sessions: list[Session] = []

    def _load_stats(self, fallback: Stats) -> Stats:
        try:
            return self._store.get_stats(self.user_id)
        except StoreError as exc:
            logger.error("Could not load stats for user %s: %s", self.user_id, exc)
            return fallback

    def handle_location(
        self,
        location: GeoPoint,
        sites: Sequence[GymSite],
        *,
        at: datetime | None = None,
    ) -> list[Transition]:
        """Classify one sample and act on the transitions it causes."""

        events = self.monitor.update(location, sites)
        for ev in events:
            if ev.kind is TransitionKind.EXIT:
                self._close(at)
            else:
                self.ledger.on_enter(ev.site, ev.location, at=at)
        return events

    def stop(self, *, at: datetime | None = None) -> Session | None:
        """Close any open session, e.g. when the host shuts down."""

        if not self.ledger.in_session:
            return None
        self.monitor.reset()
        return self._close(at)

    def _close(self, at: datetime | None) -> Session | None:
        session = self.ledger.on_exit(at=at)
        if session is None:
            return None
        if session.is_valid:
            session = self._reward(session)
        self.closed_sessions.append(session)
        return session

    def _reward(self, session: Session) -> Session:
        is_pro = self.settings.is_pro

        def apply(current: Stats) -> Stats:
            return self.engine.apply(session, current, is_pro)

        try:
            self.stats = self._store.update_stats(self.user_id, apply)
        except StoreError as exc:
            logger.error("Could not persist stats for user %s: %s", self.user_id, exc)
            self.stats = apply(self.stats)

        coins = calculate_coins(session.duration_minutes, is_pro)
        logger.info(
            "User %s rewarded +%d coins, streak=%d",
            self.user_id,
            coins,
            self.stats.current_streak,
        )
        return self.ledger.save(replace(session, coins_earned=coins))
