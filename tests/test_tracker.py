"""Tests for the per-user tracker pipeline."""

from datetime import timedelta

import pytest

from gym_rewards.models import Stats, UserSettings
from gym_rewards.proximity import TransitionKind
from gym_rewards.store import StoreError
from gym_rewards.tracker import GymTracker

from conftest import GYM_A, GYM_B, T0, offset

SITES = [GYM_A, GYM_B]
AWAY = offset(GYM_A.location, north_m=800.0)
AT_A = offset(GYM_A.location, east_m=25.0)
AT_B = offset(GYM_B.location, north_m=-25.0)


def _visit(tracker: GymTracker, where, start, minutes: int):
    tracker.handle_location(AWAY, SITES, at=start - timedelta(minutes=5))
    tracker.handle_location(where, SITES, at=start)
    tracker.handle_location(where, SITES, at=start + timedelta(minutes=minutes // 2))
    return tracker.handle_location(AWAY, SITES, at=start + timedelta(minutes=minutes))


def test_valid_visit_is_rewarded(store) -> None:
    """Test a 90-minute visit flows through to stats and the session record."""
    tracker = GymTracker("alice", store)
    events = _visit(tracker, AT_A, T0, 90)
    assert [e.kind for e in events] == [TransitionKind.EXIT]

    assert tracker.stats.total_coins == 300
    assert tracker.stats.current_streak == 1
    assert store.get_stats("alice") == tracker.stats

    [session] = store.list_recent_sessions("alice")
    assert session.is_valid
    assert session.duration_seconds == 90 * 60
    assert session.coins_earned == 300
    assert tracker.closed_sessions == [session]


def test_pro_multiplier_from_settings(store) -> None:
    """Test Pro users get double coins."""
    tracker = GymTracker("alice", store, UserSettings(is_pro=True))
    _visit(tracker, AT_A, T0, 90)
    assert tracker.stats.total_coins == 600


def test_short_visit_is_not_rewarded(store) -> None:
    """Test a visit under 30 minutes leaves stats untouched."""
    tracker = GymTracker("alice", store)
    _visit(tracker, AT_A, T0, 29)
    assert tracker.stats == Stats()
    assert store.get_stats("alice") == Stats()
    [session] = store.list_recent_sessions("alice")
    assert not session.is_valid
    assert session.coins_earned == 0


def test_streak_across_days(store) -> None:
    """Test consecutive daily visits build a streak from stored stats."""
    for day in range(3):
        tracker = GymTracker("alice", store)
        _visit(tracker, AT_A, T0 + timedelta(days=day), 40)
    stats = store.get_stats("alice")
    assert stats.current_streak == 3
    assert stats.longest_streak == 3
    assert stats.total_sessions == 3
    assert stats.total_minutes == 120


def test_gym_switch_closes_and_opens(store) -> None:
    """Test moving between gyms closes one session and opens another."""
    tracker = GymTracker("alice", store)
    tracker.handle_location(AT_A, SITES, at=T0)
    events = tracker.handle_location(AT_B, SITES, at=T0 + timedelta(minutes=35))
    assert [(e.kind, e.site.id) for e in events] == [(TransitionKind.EXIT, "a"), (TransitionKind.ENTER, "b")]
    assert tracker.ledger.open_session.gym_id == "b"
    assert tracker.ledger.open_session.start_time == T0 + timedelta(minutes=35)
    assert tracker.stats.total_sessions == 1


def test_stop_closes_open_session(store) -> None:
    """Test shutting down closes the visit."""
    tracker = GymTracker("alice", store)
    tracker.handle_location(AT_A, SITES, at=T0)
    closed = tracker.stop(at=T0 + timedelta(minutes=65))
    assert closed is not None
    assert closed.coins_earned == 50
    assert not tracker.ledger.in_session
    assert not tracker.monitor.is_in_gym
    assert tracker.stop() is None


def test_uses_clock_when_no_timestamp(store, clock) -> None:
    """Test the injected clock stamps sessions."""
    tracker = GymTracker("alice", store, clock=clock)
    tracker.handle_location(AT_A, SITES)
    clock.now = T0 + timedelta(minutes=31)
    tracker.handle_location(AWAY, SITES)
    [session] = store.list_recent_sessions("alice")
    assert session.start_time == T0
    assert session.duration_seconds == 31 * 60


def test_stats_advance_when_store_fails(failing_store) -> None:
    """Test in-memory stats advance even if the write is rejected."""
    tracker = GymTracker("alice", failing_store)
    failing_store.fail_stats = True
    _visit(tracker, AT_A, T0, 90)
    assert tracker.stats.total_coins == 300
    assert failing_store.get_stats("alice") == Stats()

    # a second visit builds on the cached stats, not the stale store copy
    _visit(tracker, AT_A, T0 + timedelta(days=1), 90)
    assert tracker.stats.total_coins == 600
    assert tracker.stats.current_streak == 2


def test_stats_read_failure_falls_back(store, monkeypatch) -> None:
    """Test an unreadable stats document does not break construction."""

    def boom(user_id):
        raise StoreError("offline")

    monkeypatch.setattr(store, "get_stats", boom)
    tracker = GymTracker("alice", store)
    assert tracker.stats == Stats()


def test_invalid_timezone_rejected(store) -> None:
    """Test bad settings fail fast."""
    with pytest.raises(ValueError):
        GymTracker("alice", store, UserSettings(timezone="Bad/Zone"))
