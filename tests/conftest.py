"""Shared fixtures and helpers for tests."""

from __future__ import annotations

import math
from datetime import UTC, datetime

import pytest

from gym_rewards.models import GeoPoint, GymSite
from gym_rewards.store import MemoryStore, StoreError

METERS_PER_DEG_LAT = 6_371_000.0 * math.pi / 180.0

GYM_A = GymSite(id="a", name="Gym A", location=GeoPoint(47.3717, 8.5423))
GYM_B = GymSite(id="b", name="Gym B", location=GeoPoint(47.3856, 8.5311))
T0 = datetime(2025, 1, 6, 10, 0, 0, tzinfo=UTC)


def offset(point: GeoPoint, north_m: float = 0.0, east_m: float = 0.0) -> GeoPoint:
    """Move a point by a small number of meters."""
    dlat = north_m / METERS_PER_DEG_LAT
    dlon = east_m / (METERS_PER_DEG_LAT * math.cos(math.radians(point.latitude)))
    return GeoPoint(point.latitude + dlat, point.longitude + dlon)


class FailingStore(MemoryStore):
    """MemoryStore whose writes can be switched to fail."""

    def __init__(self) -> None:
        super().__init__()
        self.fail_sessions = False
        self.fail_stats = False

    def put_session(self, user_id, session):
        if self.fail_sessions:
            raise StoreError("session store offline")
        return super().put_session(user_id, session)

    def put_stats(self, user_id, stats):
        if self.fail_stats:
            raise StoreError("stats store offline")
        super().put_stats(user_id, stats)


class FakeClock:
    def __init__(self, now: datetime = T0) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def failing_store() -> FailingStore:
    return FailingStore()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
