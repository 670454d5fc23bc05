"""CSV input utilities for location tracks and gym directories."""

from __future__ import annotations

import csv
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

from gym_rewards.models import GeoPoint, GymSite

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class LocationSample:
    """A single device location sample.

    Attributes:
        geo_time_ms: Unix epoch milliseconds.
        location: Device coordinate.
    """

    geo_time_ms: int
    location: GeoPoint


@dataclass(frozen=True, slots=True)
class CsvSummary:
    """Quick summary of CSV parsing."""

    rows_total: int
    rows_parsed: int
    rows_skipped: int
    fieldnames: Sequence[str]


def _parse_int(value: str) -> int:
    return int(value.strip())


def _parse_float(value: str) -> float:
    return float(value.strip())


def _require(fieldnames: Sequence[str], required: Sequence[str], path: Path) -> None:
    missing = [c for c in required if c not in fieldnames]
    if missing:
        raise KeyError(f"{path}: missing required column(s) {missing}. Found: {list(fieldnames)}")


def load_location_samples(csv_path: str | Path) -> tuple[list[LocationSample], CsvSummary]:
    """Load a track export sorted by time.

    Args:
        csv_path: CSV with columns geoTime (epoch ms), latitude, longitude.
            Other columns are ignored.

    Returns:
        (samples, summary)

    Raises:
        KeyError: If a required column is missing.
    """

    p = Path(csv_path)
    rows_total = 0
    parsed: list[LocationSample] = []
    fieldnames: Sequence[str] = ()

    with p.open("r", encoding="utf-8", newline="") as f:
        reader = csv.DictReader(f)
        fieldnames = reader.fieldnames or ()
        _require(fieldnames, ("geoTime", "latitude", "longitude"), p)
        for row in reader:
            rows_total += 1
            try:
                parsed.append(
                    LocationSample(
                        geo_time_ms=_parse_int(row["geoTime"]),
                        location=GeoPoint(
                            latitude=_parse_float(row["latitude"]),
                            longitude=_parse_float(row["longitude"]),
                        ),
                    )
                )
            except (ValueError, TypeError, AttributeError):
                # damaged or empty rows are skipped
                continue

    parsed.sort(key=lambda s: s.geo_time_ms)
    summary = CsvSummary(
        rows_total=rows_total,
        rows_parsed=len(parsed),
        rows_skipped=rows_total - len(parsed),
        fieldnames=fieldnames,
    )
    if summary.rows_skipped > 0:
        logger.warning("Skipped %s unparsable row(s) in %s", summary.rows_skipped, p)
    return parsed, summary


def load_gym_sites(csv_path: str | Path) -> list[GymSite]:
    """Load a gym directory with columns id, name, latitude, longitude.

    Rows keep their file order, which decides ties between equidistant gyms.
    """

    p = Path(csv_path)
    sites: list[GymSite] = []
    with p.open("r", encoding="utf-8", newline="") as f:
        reader = csv.DictReader(f)
        _require(reader.fieldnames or (), ("id", "name", "latitude", "longitude"), p)
        for line_no, row in enumerate(reader, start=2):
            try:
                sites.append(
                    GymSite(
                        id=row["id"].strip(),
                        name=(row["name"] or "").strip() or "Unnamed Gym",
                        location=GeoPoint(
                            latitude=_parse_float(row["latitude"]),
                            longitude=_parse_float(row["longitude"]),
                        ),
                    )
                )
            except (ValueError, TypeError, AttributeError):
                logger.warning("Skipping malformed gym row %d in %s", line_no, p)
    return sites
