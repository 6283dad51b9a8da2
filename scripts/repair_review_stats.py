"""Recompute every place's review statistics and fix the ones that drifted.

Usage: python -m scripts.repair_review_stats [--dry-run] [--delete-orphans]
"""

from __future__ import annotations

import argparse

import cityguide.models  # noqa: F401
from cityguide.core.config import settings
from cityguide.core.logging_config import configure_logging
from cityguide.db.base import Base
from cityguide.db.session import engine, session_scope
from cityguide.services.review_repair import RepairReport, repair_review_stats


def print_report(report: RepairReport) -> None:
    print("=" * 60)
    print("REVIEW STATISTICS CHECK" + (" (dry run)" if report.dry_run else ""))
    print("=" * 60)
    for r in report.repairs:
        print(f"{r.name} ({r.place_id})")
        print(f"   Old: {r.before.total_reviews} reviews, {r.before.average_rating:.2f} avg")
        print(f"   New: {r.after.total_reviews} reviews, {r.after.average_rating:.2f} avg")
    print(f"Total places:            {report.places_scanned}")
    print(f"Places updated:          {report.updated}")
    print(f"Places already correct:  {report.already_correct}")
    print(f"Reviews in database:     {report.total_reviews}")
    print(f"Places with reviews:     {report.places_with_reviews}")
    print(f"Orphaned reviews:        {report.orphaned_reviews} (deleted: {report.orphans_deleted})")


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Reconcile place rating aggregates with the reviews table")
    parser.add_argument("--dry-run", action="store_true", help="report differences without writing")
    parser.add_argument(
        "--delete-orphans",
        action="store_true",
        help="delete reviews whose place no longer exists",
    )
    args = parser.parse_args(argv)

    configure_logging(log_dir=settings.log_dir, level=settings.log_level)
    Base.metadata.create_all(bind=engine)

    with session_scope() as db:
        report = repair_review_stats(db, dry_run=args.dry_run, delete_orphans=args.delete_orphans)
    print_report(report)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
