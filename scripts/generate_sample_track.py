from __future__ import annotations

import argparse
import csv
import random
from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path
from typing import Final

from zoneinfo import ZoneInfo

from gym_rewards.timeutils import epoch_ms_from_dt


TZ: Final[str] = "Europe/Zurich"


@dataclass(frozen=True, slots=True)
class Place:
    id: str
    name: str
    lat: float
    lon: float


def _jitter(rng: random.Random, place: Place, spread: float = 0.0003) -> tuple[float, float]:
    # 0.0003 deg is roughly 30 m, well inside the 100 m gym radius
    return place.lat + rng.uniform(-spread, spread), place.lon + rng.uniform(-spread, spread)


def generate_points(
    *,
    days: int,
    seed: int,
    start_local: datetime,
    home: Place,
    gyms: list[Place],
    skip_rate: float,
) -> list[dict[str, str]]:
    """Generate fake track rows: home in the morning, an evening gym visit most days."""

    rng = random.Random(seed)
    tz = ZoneInfo(TZ)
    day0 = start_local.replace(tzinfo=tz)
    out: list[dict[str, str]] = []

    def emit(at: datetime, place: Place) -> None:
        lat, lon = _jitter(rng, place)
        out.append(
            {
                "geoTime": str(epoch_ms_from_dt(at)),
                "latitude": f"{lat:.7f}",
                "longitude": f"{lon:.7f}",
                "horizontalAccuracy": f"{rng.choice([5.0, 8.0, 12.0]):.1f}",
            }
        )

    for d in range(days):
        day = day0 + timedelta(days=d)
        emit(day, home)
        if rng.random() < skip_rate:
            emit(day + timedelta(hours=12), home)
            continue

        gym = rng.choice(gyms)
        arrive = day + timedelta(hours=10, minutes=rng.uniform(0, 60))
        # Mix of short drop-ins (invalid) and long workouts (rewarded)
        stay = timedelta(minutes=rng.choice([15, 45, 75, 90, 120]))
        t = arrive
        while t < arrive + stay:
            emit(t, gym)
            t += timedelta(seconds=rng.uniform(60, 300))
        emit(arrive + stay, gym)
        emit(arrive + stay + timedelta(minutes=10), home)

    out.sort(key=lambda r: int(r["geoTime"]))
    return out


def main() -> int:
    p = argparse.ArgumentParser(description="Generate a fake track and gym directory for demo/testing.")
    p.add_argument("--out", type=str, default="sample_data/Path.csv", help="Output track CSV path")
    p.add_argument("--gyms-out", type=str, default="sample_data/gyms.csv", help="Output gym CSV path")
    p.add_argument("--days", type=int, default=14, help="Number of days")
    p.add_argument("--seed", type=int, default=42, help="Random seed (reproducible)")
    p.add_argument("--skip-rate", type=float, default=0.2, help="Probability of skipping the gym on a day")
    p.add_argument(
        "--start",
        type=str,
        default="2025-01-06 07:00:00",
        help=f"Start local time in {TZ}, e.g. '2025-01-06 07:00:00'",
    )
    args = p.parse_args()

    home = Place("home", "Home", 47.3769000, 8.5417000)
    gyms = [
        Place("g1", "Downtown Fitness", 47.3717000, 8.5423000),
        Place("g2", "Riverside Gym", 47.3856000, 8.5311000),
    ]

    rows = generate_points(
        days=args.days,
        seed=args.seed,
        start_local=datetime.fromisoformat(args.start),
        home=home,
        gyms=gyms,
        skip_rate=args.skip_rate,
    )
    out_path = Path(args.out)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    with out_path.open("w", encoding="utf-8", newline="") as f:
        w = csv.DictWriter(f, fieldnames=["geoTime", "latitude", "longitude", "horizontalAccuracy"])
        w.writeheader()
        w.writerows(rows)

    gyms_path = Path(args.gyms_out)
    gyms_path.parent.mkdir(parents=True, exist_ok=True)
    with gyms_path.open("w", encoding="utf-8", newline="") as f:
        w = csv.DictWriter(f, fieldnames=["id", "name", "latitude", "longitude"])
        w.writeheader()
        for g in gyms:
            w.writerow({"id": g.id, "name": g.name, "latitude": f"{g.lat:.7f}", "longitude": f"{g.lon:.7f}"})

    print(f"Generated: {out_path} (rows={len(rows)}, seed={args.seed}), {gyms_path} (gyms={len(gyms)})")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
