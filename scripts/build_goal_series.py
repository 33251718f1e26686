"""
Build dashboard series from a goal snapshot file.

Usage:
  python scripts/build_goal_series.py goals.json [--now 2024-02-15T12:00:00Z] [--tz Europe/Berlin]
  python scripts/build_goal_series.py goal.json --single [--extend]

The file holds either a list of goal snapshots (dashboard views) or a single
goal snapshot (--single: goal progress, topic and category series).
"""
from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

# Ensure repo root is on sys.path.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from goalprogress.logging import setup_logging
from goalprogress.pipeline.dates import parse_instant, resolve_zone
from goalprogress.pipeline.orchestrator import build_dashboard, build_goal_progress


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Build goal progress series from a JSON snapshot.")
    parser.add_argument("path", help="JSON file with a goal or a list of goals")
    parser.add_argument("--now", default=None, help="ISO-8601 instant to anchor windows on (default: current time)")
    parser.add_argument("--tz", default=None, help="IANA timezone for calendar days (default: LOCAL_TZ)")
    parser.add_argument("--days", type=int, default=None, help="daily window count")
    parser.add_argument("--months", type=int, default=None, help="monthly window count")
    parser.add_argument("--single", action="store_true", help="treat the file as one goal snapshot")
    parser.add_argument("--extend", action="store_true", help="extend single-goal series to --now")
    args = parser.parse_args(argv)

    # Logs go to stderr so stdout stays valid JSON.
    setup_logging(stream=sys.stderr)
    try:
        payload = json.loads(Path(args.path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        print(f"cannot read {args.path}: {e}", file=sys.stderr)
        return 2

    try:
        resolve_zone(args.tz)
    except ValueError as e:
        print(str(e), file=sys.stderr)
        return 2

    now = None
    if args.now:
        now = parse_instant(args.now, args.tz)
        if now is None:
            print(f"--now is not an ISO-8601 timestamp: {args.now}", file=sys.stderr)
            return 2

    if args.single:
        out = build_goal_progress(payload, now=now, tz_name=args.tz, extend=args.extend)
    else:
        goals = payload if isinstance(payload, list) else [payload]
        out = build_dashboard(goals, now=now, tz_name=args.tz, days=args.days, months=args.months)
    json.dump(out, sys.stdout, indent=2, sort_keys=True)
    sys.stdout.write("\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
