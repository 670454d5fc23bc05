"""Command-line interface for gym_rewards.

Run:
    python -m gym_rewards replay --csv Path.csv --gyms gyms.csv --user alice
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import replace

from gym_rewards.csv_io import load_gym_sites, load_location_samples
from gym_rewards.models import DEFAULT_TZ, RECENT_SESSIONS_LIMIT, HISTORY_SESSIONS_LIMIT, Stats
from gym_rewards.rewards import milestone_progress, weekly_progress
from gym_rewards.store import JsonFileStore, StoreError
from gym_rewards.timeutils import dt_from_epoch_ms, format_hhmmss, utc_now, week_year_label
from gym_rewards.tracker import GymTracker


def _print_stats(stats: Stats) -> None:
    print(
        f"coins={stats.total_coins}, streak={stats.current_streak} (longest={stats.longest_streak}), "
        f"sessions={stats.total_sessions}, minutes={stats.total_minutes}"
    )
    if stats.last_session_date is not None:
        print(f"last_session={stats.last_session_date.isoformat(sep=' ')}")


def _cmd_replay(args: argparse.Namespace) -> int:
    store = JsonFileStore(args.store)
    settings = store.get_settings(args.user)
    settings = replace(
        settings,
        timezone=args.tz or settings.timezone,
        is_pro=args.pro or settings.is_pro,
        weekly_goal=args.weekly_goal if args.weekly_goal is not None else settings.weekly_goal,
    )
    store.put_settings(args.user, settings)

    samples, summary = load_location_samples(args.csv)
    sites = load_gym_sites(args.gyms)
    print(f"samples={summary.rows_parsed} (skipped={summary.rows_skipped}), gyms={len(sites)}")

    tracker = GymTracker(args.user, store, settings)
    last_at = None
    for sample in samples:
        at = dt_from_epoch_ms(sample.geo_time_ms, settings.timezone)
        last_at = at
        for ev in tracker.handle_location(sample.location, sites, at=at):
            print(f"{at.isoformat(sep=' ')}  {ev.kind.value:<5}  {ev.site.name} ({ev.site.id})")

    if not args.keep_open and last_at is not None:
        tracker.stop(at=last_at)

    for s in tracker.closed_sessions:
        print(
            f"session {s.gym_name}: {format_hhmmss(s.duration_seconds)} "
            f"valid={s.is_valid} coins={s.coins_earned}"
        )
    _print_stats(tracker.stats)
    return 0


def _cmd_stats(args: argparse.Namespace) -> int:
    store = JsonFileStore(args.store)
    stats = store.get_stats(args.user)
    if args.json:
        print(json.dumps(stats.to_dict(), ensure_ascii=False, indent=2))
    else:
        _print_stats(stats)
    return 0


def _cmd_sessions(args: argparse.Namespace) -> int:
    store = JsonFileStore(args.store)
    sessions = store.list_recent_sessions(args.user, args.limit)
    if args.json:
        print(json.dumps([s.to_dict() for s in sessions], ensure_ascii=False, indent=2))
        return 0
    for s in sessions:
        end = s.end_time.isoformat(sep=" ") if s.end_time is not None else "(open)"
        print(
            f"{s.start_time.isoformat(sep=' ')} -> {end}  {s.gym_name}  "
            f"{format_hhmmss(s.duration_seconds)} valid={s.is_valid} coins={s.coins_earned}"
        )
    print(f"sessions={len(sessions)}")
    return 0


def _cmd_weekly(args: argparse.Namespace) -> int:
    store = JsonFileStore(args.store)
    settings = store.get_settings(args.user)
    week = args.week or week_year_label(utc_now(), settings.timezone)
    goal = args.goal if args.goal is not None else settings.weekly_goal
    sessions = store.list_recent_sessions(args.user, HISTORY_SESSIONS_LIMIT)
    res = weekly_progress(sessions, week, goal)
    print(f"week={res.week_year}, sessions={res.sessions}/{res.goal}, goal_met={res.goal_met}")
    return 0


def _cmd_milestones(args: argparse.Namespace) -> int:
    store = JsonFileStore(args.store)
    stats = store.get_stats(args.user)
    for p in milestone_progress(stats.current_streak):
        mark = "x" if p.unlocked else " "
        print(
            f"[{mark}] {p.milestone.required_streak:>3} days  {p.milestone.title}  "
            f"({p.progress * 100:5.1f}%)"
        )
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Build CLI parser."""

    p = argparse.ArgumentParser(prog="gym_rewards")
    p.add_argument(
        "--log-level",
        type=str,
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level",
    )
    sub = p.add_subparsers(dest="cmd", required=True)

    def add_common(sp: argparse.ArgumentParser) -> None:
        sp.add_argument("--user", type=str, required=True, help="User id")
        sp.add_argument("--store", type=str, default="data", help="Store root directory")

    p_rep = sub.add_parser("replay", help="Replay a location track through the session and reward engine")
    add_common(p_rep)
    p_rep.add_argument("--csv", type=str, default="Path.csv", help="Location track CSV (geoTime, latitude, longitude)")
    p_rep.add_argument("--gyms", type=str, default="gyms.csv", help="Gym directory CSV (id, name, latitude, longitude)")
    p_rep.add_argument("--tz", type=str, default=None, help=f"Time zone (IANA); default from user settings or {DEFAULT_TZ}")
    p_rep.add_argument("--pro", action="store_true", help="Apply the Pro coin multiplier")
    p_rep.add_argument("--weekly-goal", type=int, default=None, help="Store a new weekly visit goal in user settings")
    p_rep.add_argument("--keep-open", action="store_true", help="Leave a session open at the end of the track")
    p_rep.set_defaults(func=_cmd_replay)

    p_st = sub.add_parser("stats", help="Show stored stats")
    add_common(p_st)
    p_st.add_argument("--json", action="store_true", help="Print JSON")
    p_st.set_defaults(func=_cmd_stats)

    p_se = sub.add_parser("sessions", help="List recent sessions, newest first")
    add_common(p_se)
    p_se.add_argument("--limit", type=int, default=RECENT_SESSIONS_LIMIT, help="Max sessions to show")
    p_se.add_argument("--json", action="store_true", help="Print JSON")
    p_se.set_defaults(func=_cmd_sessions)

    p_wk = sub.add_parser("weekly", help="Show weekly visit goal progress")
    add_common(p_wk)
    p_wk.add_argument("--week", type=str, default=None, help="ISO week label, e.g. 2025-W03 (default: current week)")
    p_wk.add_argument("--goal", type=int, default=None, help="Override the weekly goal from user settings")
    p_wk.set_defaults(func=_cmd_weekly)

    p_ms = sub.add_parser("milestones", help="Show streak milestone progress")
    add_common(p_ms)
    p_ms.set_defaults(func=_cmd_milestones)

    return p


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint."""

    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=args.log_level, format="%(levelname)s %(name)s: %(message)s")
    try:
        return int(args.func(args))
    except (OSError, KeyError, ValueError, StoreError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
