"""
Recompute leaderboard snapshots. Intended for a scheduler (cron) at period boundaries.

Usage:
  python scripts/recompute_leaderboard.py --period WEEKLY
  python scripts/recompute_leaderboard.py --period MONTHLY --at 2026-03-31T23:00:00+05:30
  python scripts/recompute_leaderboard.py --all
"""
import argparse
import sys
from datetime import datetime
from pathlib import Path

# Add project root so app is importable
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from sqlalchemy.orm import Session
from app.core.logging import setup_logging
from app.db import session as db_session
from app.models.leaderboard import LeaderboardPeriod
from app.services.audit_service import log_audit
from app.services.leaderboard_service import recompute_leaderboard
from app.utils.datetime_utils import assume_local


def main():
    parser = argparse.ArgumentParser(description="Recompute leaderboard snapshots")
    group = parser.add_mutually_exclusive_group(required=True)
    group.add_argument("--period", choices=[p.value for p in LeaderboardPeriod], help="Period to recompute")
    group.add_argument("--all", action="store_true", help="Recompute every period")
    parser.add_argument(
        "--at",
        type=datetime.fromisoformat,
        default=None,
        help="Reference instant (ISO-8601; naive values are local time). Defaults to now.",
    )
    args = parser.parse_args()

    setup_logging()
    periods = list(LeaderboardPeriod) if args.all else [LeaderboardPeriod(args.period)]
    now = assume_local(args.at)

    db: Session = db_session.SessionLocal()
    failures = 0
    try:
        for period in periods:
            result = recompute_leaderboard(db, period, now=now)
            failures += len(result["failed"])
            print(
                f"{period.value} {result['year']}/{result['month']}/{result['week']} "
                f"({result['start']}..{result['end']}): processed={result['processed']} "
                f"failed={len(result['failed'])} ranked={result['ranked']}"
            )
            log_audit(db=db, actor_id=None, action="LEADERBOARD_RECOMPUTE", entity_type="leaderboard", meta=result)
    finally:
        db.close()
    if failures:
        sys.exit(1)


if __name__ == "__main__":
    main()
