"""Nearest-gym classification and enter/exit transition detection."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Sequence

from gym_rewards.geo import distance_m, is_valid_coordinate
from gym_rewards.models import PROXIMITY_THRESHOLD_M, GeoPoint, GymSite

logger = logging.getLogger(__name__)


class TransitionKind(enum.Enum):
    ENTER = "enter"
    EXIT = "exit"


@dataclass(frozen=True, slots=True)
class Transition:
    """A change of presence status for one gym."""

    kind: TransitionKind
    site: GymSite
    location: GeoPoint


@dataclass(frozen=True, slots=True)
class NearestSite:
    site: GymSite
    distance_m: float


def find_nearest_site(location: GeoPoint, sites: Sequence[GymSite]) -> NearestSite | None:
    """Return the closest site to ``location``.

    Equidistant sites resolve to the first one in iteration order. Sites with
    malformed coordinates are skipped.
    """

    best: NearestSite | None = None
    for site in sites:
        if not is_valid_coordinate(site.location):
            logger.debug("Ignoring gym %s with malformed coordinate %s", site.id, site.location)
            continue
        d = distance_m(location, site.location)
        if best is None or d < best.distance_m:
            best = NearestSite(site=site, distance_m=d)
    return best


def classify(
    location: GeoPoint,
    sites: Sequence[GymSite],
    threshold_m: float = PROXIMITY_THRESHOLD_M,
) -> GymSite | None:
    """Return the gym the user is at, or None when not at any gym."""

    nearest = find_nearest_site(location, sites)
    if nearest is None or nearest.distance_m > threshold_m:
        return None
    return nearest.site


class ProximityMonitor:
    """Tracks which gym (if any) the user is currently at.

    ``update`` is fed one location sample at a time together with the current
    candidate list and returns the transitions caused by that sample. Moving
    directly from one gym to another yields EXIT for the old gym followed by
    ENTER for the new one.
    """

    def __init__(self, threshold_m: float = PROXIMITY_THRESHOLD_M) -> None:
        self._threshold_m = threshold_m
        self._current: GymSite | None = None

    @property
    def is_in_gym(self) -> bool:
        return self._current is not None

    @property
    def current_site(self) -> GymSite | None:
        return self._current

    def update(self, location: GeoPoint, sites: Sequence[GymSite]) -> list[Transition]:
        if not is_valid_coordinate(location):
            logger.warning("Skipping malformed location sample %s", location)
            return []

        site = classify(location, sites, self._threshold_m)
        previous = self._current
        if previous is not None and site is not None and previous.id == site.id:
            return []
        if previous is None and site is None:
            return []

        events: list[Transition] = []
        if previous is not None:
            events.append(Transition(TransitionKind.EXIT, previous, location))
        if site is not None:
            events.append(Transition(TransitionKind.ENTER, site, location))
        self._current = site

        for ev in events:
            logger.info("%s gym %s (%s)", ev.kind.value, ev.site.name, ev.site.id)
        return events

    def reset(self) -> None:
        """Forget the current gym without emitting an event."""

        self._current = None
