from __future__ import annotations

import argparse
import datetime
import json
import sys
from pathlib import Path
from typing import List, Optional

ROOT_DIR = Path(__file__).resolve().parents[2]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from shift_recon import database  # noqa: E402
from shift_recon.dates import coerce_date, default_date_range  # noqa: E402
from shift_recon.feeds import FeedLoadError, load_feeds, resolve_feed_paths  # noqa: E402
from shift_recon.policy import (  # noqa: E402
    ensure_default_policy,
    export_policy_file,
    import_policy_file,
    load_active_policy,
    window_settings,
)
from shift_recon.reconcile import summarize_merge  # noqa: E402
from shift_recon.view import build_schedule_view, serialize_view  # noqa: E402


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description=(
            "Merge the plan and fact feeds, apply the consecutive-day window and "
            "print the per-employee view."
        )
    )
    parser.add_argument("--plan", help="Path to the plan feed (JSON array). Defaults to the policy file.")
    parser.add_argument("--fact", help="Path to the fact feed (JSON array). Defaults to the policy file.")
    parser.add_argument("--start", help="First day (YYYY-MM-DD). Defaults to the policy range.")
    parser.add_argument("--end", help="Last day (YYYY-MM-DD). Defaults to today.")
    parser.add_argument("--max-days", type=int, help="Maximum consecutive days per employee/store.")
    parser.add_argument("--json", action="store_true", help="Print the serialized view as JSON.")
    policy_io = parser.add_mutually_exclusive_group()
    policy_io.add_argument("--export-policy", metavar="PATH", help="Write the active policy to PATH and exit.")
    policy_io.add_argument("--import-policy", metavar="PATH", help="Load a policy from PATH, make it active and exit.")
    return parser.parse_args(argv)


def _run_policy_transfer(args: argparse.Namespace) -> None:
    session = database.PolicySessionLocal()
    try:
        if args.export_policy:
            path = export_policy_file(session, Path(args.export_policy))
            print(f"[report] Exported active policy to {path}")
        else:
            policy = import_policy_file(session, Path(args.import_policy), edited_by="report")
            print(f"[report] Imported policy '{policy.name}' from {args.import_policy}")
    except (OSError, ValueError) as exc:
        raise SystemExit(f"[report] {exc}") from exc
    finally:
        session.close()


def _format_time(value: Optional[datetime.datetime]) -> str:
    return value.strftime("%H:%M") if value else "--:--"


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    database.init_database()
    ensure_default_policy(database.PolicySessionLocal)
    if args.export_policy or args.import_policy:
        _run_policy_transfer(args)
        return 0
    policy = load_active_policy(database.PolicySessionLocal)
    settings = window_settings(policy)

    default_plan, default_fact = resolve_feed_paths(database.DATA_DIR, policy)
    plan_path = Path(args.plan) if args.plan else default_plan
    fact_path = Path(args.fact) if args.fact else default_fact
    try:
        plans, facts = load_feeds(plan_path, fact_path, policy)
    except FeedLoadError as exc:
        raise SystemExit(f"[report] {exc}") from exc

    default_start, default_end = default_date_range(days=settings["default_range_days"])
    try:
        range_start = coerce_date(args.start) if args.start else default_start
        range_end = coerce_date(args.end) if args.end else default_end
    except ValueError as exc:
        raise SystemExit(f"[report] {exc}") from exc
    max_days = settings["max_consecutive_days"] if args.max_days is None else args.max_days

    summary = summarize_merge(plans, facts)
    try:
        groups = build_schedule_view(summary.shifts, range_start, range_end, max_days)
    except ValueError as exc:
        raise SystemExit(f"[report] {exc}") from exc

    if args.json:
        print(json.dumps(serialize_view(groups), indent=2, ensure_ascii=False))
        return 0

    counts = summary.counts()
    print(
        f"[report] {counts['plans']} plan shifts, {counts['facts']} facts: "
        f"{counts['matched']} matched, {counts['dropped_facts']} facts dropped."
    )
    if counts["fallback_plans"] or counts["fallback_facts"]:
        print(
            f"[report][warning] {counts['fallback_plans']} plan and {counts['fallback_facts']} fact rows "
            "had missing or unparseable timestamps (dated 1970-01-01)."
        )
    print(f"[report] Window {range_start} .. {range_end}, max {max_days} consecutive days.")
    for label, group in groups.items():
        print(f"{label} [{group.role}]")
        for shift in group.shifts:
            print(
                f"  {shift.plan_start:%Y-%m-%d}  plan {_format_time(shift.plan_start)}-{_format_time(shift.plan_end)}"
                f"  fact {_format_time(shift.fact_start)}-{_format_time(shift.fact_end)}"
            )
    return 0


if __name__ == "__main__":
    sys.exit(main())
