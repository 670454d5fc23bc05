"""Module entry point: python -m gym_rewards ..."""

from __future__ import annotations

from gym_rewards.cli import main


if __name__ == "__main__":
    raise SystemExit(main())
