"""Open/close lifecycle of a user's gym session."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable

from gym_rewards.models import DEFAULT_TZ, GeoPoint, GymSite, Session
from gym_rewards.store import SessionStore, StoreError
from gym_rewards.timeutils import ensure_aware, tzinfo_from_name, utc_now, week_year_label

logger = logging.getLogger(__name__)


class SessionLedger:
    """Owns the single open session of one user.

    The ledger is either idle (no open session) or in session (exactly one).
    Every transition is written to the store; a failed write is logged and the
    ledger still moves to its new state.
    """

    def __init__(
        self,
        user_id: str,
        store: SessionStore,
        *,
        tz_name: str = DEFAULT_TZ,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        tzinfo_from_name(tz_name)  # fail fast on a bad zone
        self._user_id = user_id
        self._store = store
        self._tz_name = tz_name
        self._clock = clock
        self._open: Session | None = None

    @property
    def user_id(self) -> str:
        return self._user_id

    @property
    def open_session(self) -> Session | None:
        return self._open

    @property
    def in_session(self) -> bool:
        return self._open is not None

    def _now(self, at: datetime | None) -> datetime:
        return ensure_aware(at if at is not None else self._clock())

    def on_enter(self, site: GymSite, user_location: GeoPoint, *, at: datetime | None = None) -> Session | None:
        """Open a session at ``site``.

        Returns:
            The open session, or None if a session was already open.
        """

        if self._open is not None:
            logger.warning(
                "User %s entered %s while session at %s is still open; ignoring",
                self._user_id,
                site.id,
                self._open.gym_id,
            )
            return None

        start = self._now(at)
        session = Session(
            user_id=self._user_id,
            gym_id=site.id,
            gym_name=site.name,
            start_time=start,
            user_location_at_start=user_location,
            gym_location=site.location,
            week_year=week_year_label(start, self._tz_name),
        )
        try:
            session = self._store.put_session(self._user_id, session)
        except StoreError as exc:
            logger.error("Could not save open session for user %s: %s", self._user_id, exc)
        self._open = session
        logger.info("User %s entered gym %s", self._user_id, site.name)
        return session

    def on_exit(self, *, at: datetime | None = None) -> Session | None:
        """Close the open session.

        Returns:
            The closed session, or None if no session was open.
        """

        if self._open is None:
            logger.warning("User %s exited with no open session; ignoring", self._user_id)
            return None

        closed = self._open.closed(self._now(at))
        self._open = None
        closed = self.save(closed)
        logger.info(
            "User %s exited gym %s after %d min (valid=%s)",
            self._user_id,
            closed.gym_name,
            closed.duration_minutes,
            closed.is_valid,
        )
        return closed

    def save(self, session: Session) -> Session:
        """Write a session record, logging and dropping store failures.

        Records that never got an id (because the opening write failed) are
        inserted instead of updated.
        """

        try:
            return self._store.put_session(self._user_id, session)
        except StoreError as exc:
            logger.error("Could not save session %s for user %s: %s", session.id, self._user_id, exc)
            return session
