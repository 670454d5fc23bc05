"""Per-user document persistence for sessions, stats and settings.

Two backends share one interface:
    - MemoryStore keeps documents in dicts (tests, embedding hosts).
    - JsonFileStore keeps one JSON file per document on disk:

        root/users/<user_id>/stats.json
        root/users/<user_id>/settings.json
        root/users/<user_id>/sessions/<session_id>.json

Stats updates for one user are serialized through ``update_stats`` so that a
read-modify-write never loses a concurrent update.
"""

from __future__ import annotations

import json
import logging
import threading
import uuid
from dataclasses import replace
from pathlib import Path
from typing import Any, Callable, Protocol

from gym_rewards.models import RECENT_SESSIONS_LIMIT, Session, Stats, UserSettings
from gym_rewards.timeutils import ensure_aware

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """Raised when a document cannot be read or written."""


class SessionStore(Protocol):
    def get_stats(self, user_id: str) -> Stats: ...

    def put_stats(self, user_id: str, stats: Stats) -> None: ...

    def update_stats(self, user_id: str, fn: Callable[[Stats], Stats]) -> Stats: ...

    def put_session(self, user_id: str, session: Session) -> Session: ...

    def get_session(self, user_id: str, session_id: str) -> Session | None: ...

    def list_recent_sessions(self, user_id: str, limit: int = RECENT_SESSIONS_LIMIT) -> list[Session]: ...

    def get_settings(self, user_id: str) -> UserSettings: ...

    def put_settings(self, user_id: str, settings: UserSettings) -> None: ...


def _new_session_id() -> str:
    return uuid.uuid4().hex


def _newest_first(sessions: list[Session], limit: int) -> list[Session]:
    ordered = sorted(sessions, key=lambda s: ensure_aware(s.start_time), reverse=True)
    return ordered[: max(0, limit)]


class _UserLocks:
    """Lazily created lock per user id."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}

    def lock_for(self, user_id: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(user_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[user_id] = lock
            return lock

    def update_stats(self, store: SessionStore, user_id: str, fn: Callable[[Stats], Stats]) -> Stats:
        with self.lock_for(user_id):
            new = fn(store.get_stats(user_id))
            store.put_stats(user_id, new)
            return new


class MemoryStore:
    """Dict-backed store. Documents are kept as their serialized dicts."""

    def __init__(self) -> None:
        self._stats: dict[str, dict[str, Any]] = {}
        self._settings: dict[str, dict[str, Any]] = {}
        self._sessions: dict[str, dict[str, dict[str, Any]]] = {}
        self._locks = _UserLocks()

    def get_stats(self, user_id: str) -> Stats:
        doc = self._stats.get(user_id)
        return Stats.from_dict(doc) if doc is not None else Stats()

    def put_stats(self, user_id: str, stats: Stats) -> None:
        self._stats[user_id] = stats.to_dict()

    def update_stats(self, user_id: str, fn: Callable[[Stats], Stats]) -> Stats:
        return self._locks.update_stats(self, user_id, fn)

    def put_session(self, user_id: str, session: Session) -> Session:
        stored = session if session.id is not None else replace(session, id=_new_session_id())
        self._sessions.setdefault(user_id, {})[stored.id] = stored.to_dict()
        return stored

    def get_session(self, user_id: str, session_id: str) -> Session | None:
        doc = self._sessions.get(user_id, {}).get(session_id)
        return Session.from_dict(doc) if doc is not None else None

    def list_recent_sessions(self, user_id: str, limit: int = RECENT_SESSIONS_LIMIT) -> list[Session]:
        docs = self._sessions.get(user_id, {}).values()
        return _newest_first([Session.from_dict(d) for d in docs], limit)

    def get_settings(self, user_id: str) -> UserSettings:
        doc = self._settings.get(user_id)
        return UserSettings.from_dict(doc) if doc is not None else UserSettings()

    def put_settings(self, user_id: str, settings: UserSettings) -> None:
        self._settings[user_id] = settings.to_dict()


class JsonFileStore:
    """Store documents as JSON files below ``root``."""

    def __init__(self, root: str | Path) -> None:
        self._root = Path(root)
        self._locks = _UserLocks()

    @property
    def root(self) -> Path:
        return self._root

    def _user_dir(self, user_id: str) -> Path:
        if not user_id or "/" in user_id or "\\" in user_id or user_id in {".", ".."}:
            raise StoreError(f"Invalid user id: {user_id!r}")
        return self._root / "users" / user_id

    def _sessions_dir(self, user_id: str) -> Path:
        return self._user_dir(user_id) / "sessions"

    def _read(self, path: Path) -> dict[str, Any] | None:
        """Load one document; None if missing or corrupted."""

        try:
            if not path.exists():
                return None
            text = path.read_text(encoding="utf-8").strip()
        except OSError as exc:
            raise StoreError(f"Cannot read {path}: {exc}") from exc
        if not text:
            return None
        try:
            data = json.loads(text)
        except json.JSONDecodeError:
            # Document corrupted: keep a backup and treat it as absent
            backup = path.with_suffix(path.suffix + ".broken")
            logger.warning("Corrupted document %s moved to %s", path, backup)
            try:
                path.replace(backup)
            except OSError as exc:
                logger.debug("Could not move %s aside: %s", path, exc)
            return None
        if not isinstance(data, dict):
            return None
        return data

    def _write(self, path: Path, data: dict[str, Any]) -> None:
        """Persist one document (atomic-ish)."""

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp = path.with_suffix(path.suffix + ".tmp")
            tmp.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
            tmp.replace(path)
        except OSError as exc:
            raise StoreError(f"Cannot write {path}: {exc}") from exc

    def get_stats(self, user_id: str) -> Stats:
        doc = self._read(self._user_dir(user_id) / "stats.json")
        return Stats.from_dict(doc) if doc is not None else Stats()

    def put_stats(self, user_id: str, stats: Stats) -> None:
        self._write(self._user_dir(user_id) / "stats.json", stats.to_dict())

    def update_stats(self, user_id: str, fn: Callable[[Stats], Stats]) -> Stats:
        return self._locks.update_stats(self, user_id, fn)

    def put_session(self, user_id: str, session: Session) -> Session:
        stored = session if session.id is not None else replace(session, id=_new_session_id())
        self._write(self._sessions_dir(user_id) / f"{stored.id}.json", stored.to_dict())
        return stored

    def get_session(self, user_id: str, session_id: str) -> Session | None:
        doc = self._read(self._sessions_dir(user_id) / f"{session_id}.json")
        return Session.from_dict(doc) if doc is not None else None

    def list_recent_sessions(self, user_id: str, limit: int = RECENT_SESSIONS_LIMIT) -> list[Session]:
        d = self._sessions_dir(user_id)
        if not d.exists():
            return []
        sessions: list[Session] = []
        for fp in sorted(d.glob("*.json")):
            doc = self._read(fp)
            if doc is None:
                continue
            try:
                sessions.append(Session.from_dict(doc))
            except (KeyError, ValueError, TypeError):
                logger.warning("Skipping malformed session document %s", fp)
        return _newest_first(sessions, limit)

    def get_settings(self, user_id: str) -> UserSettings:
        doc = self._read(self._user_dir(user_id) / "settings.json")
        return UserSettings.from_dict(doc) if doc is not None else UserSettings()

    def put_settings(self, user_id: str, settings: UserSettings) -> None:
        self._write(self._user_dir(user_id) / "settings.json", settings.to_dict())
