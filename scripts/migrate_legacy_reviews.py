"""Copy reviews embedded in places into the reviews table.

Safe to re-run: reviews that were already copied are reported as skipped.
The embedded arrays are kept; drop them by hand once the result is verified.

Usage: python -m scripts.migrate_legacy_reviews
"""

from __future__ import annotations

import argparse
import logging

import cityguide.models  # noqa: F401
from cityguide.core.config import settings
from cityguide.core.logging_config import configure_logging
from cityguide.db.base import Base
from cityguide.db.session import engine, session_scope
from cityguide.services.legacy_migration import MigrationReport, migrate_legacy_reviews

logger = logging.getLogger(__name__)


def print_report(report: MigrationReport) -> None:
    print("=" * 60)
    print("LEGACY REVIEW MIGRATION")
    print("=" * 60)
    print(f"Places checked:              {report.places_scanned}")
    print(f"Places with embedded reviews: {report.places_with_reviews}")
    print(f"Reviews migrated:            {report.migrated}")
    print(f"Reviews skipped (duplicates): {report.skipped}")
    print(f"Reviews failed:              {report.failed}")
    print(f"Reviews in reviews table:    {report.reviews_in_store}")


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Migrate embedded place reviews into the reviews table")
    parser.parse_args(argv)

    configure_logging(log_dir=settings.log_dir, level=settings.log_level)
    Base.metadata.create_all(bind=engine)

    with session_scope() as db:
        report = migrate_legacy_reviews(db)
    print_report(report)

    if report.failed:
        logger.error("%s embedded reviews could not be migrated, see log above", report.failed)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
