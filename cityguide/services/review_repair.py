"""Offline reconciliation of place aggregates with the review table.

Every place is checked independently: the true aggregate is computed from its
reviews and, when the stored fields drift beyond the tolerance, rewritten
with the same single-statement update the request path uses. A second run
with no writes in between changes nothing. Running next to live traffic can
read a slightly stale snapshot of one place but never leaves a torn row.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from cityguide.models.places import Place
from cityguide.models.reviews import Review
from cityguide.services import review_store
from cityguide.services.ratings import ReviewAggregate, aggregate_matches, compute_aggregate, write_aggregate

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PlaceRepair:
    place_id: str
    name: str
    before: ReviewAggregate
    after: ReviewAggregate


@dataclass
class RepairReport:
    places_scanned: int = 0
    updated: int = 0
    already_correct: int = 0
    total_reviews: int = 0
    places_with_reviews: int = 0
    orphaned_reviews: int = 0
    orphans_deleted: int = 0
    dry_run: bool = False
    repairs: list[PlaceRepair] = field(default_factory=list)


def find_orphaned_review_ids(db: Session) -> list[str]:
    """Reviews whose place no longer exists."""
    stmt = select(Review.id).where(~select(Place.id).where(Place.id == Review.place_id).exists())
    return list(db.scalars(stmt).all())


def repair_review_stats(db: Session, *, dry_run: bool = False, delete_orphans: bool = False) -> RepairReport:
    report = RepairReport(dry_run=dry_run)
    place_ids = list(db.scalars(select(Place.id).order_by(Place.created_at, Place.id)).all())
    logger.info("Checking review statistics of %s places", len(place_ids))

    for place_id in place_ids:
        place = db.get(Place, place_id, populate_existing=True)
        if place is None:
            # Deleted since the id scan.
            continue
        report.places_scanned += 1

        actual = compute_aggregate(review_store.ratings_for_place(db, place_id))
        if actual.total_reviews:
            report.places_with_reviews += 1
        if aggregate_matches(place, actual):
            report.already_correct += 1
            continue

        before = ReviewAggregate.of_place(place)
        logger.info(
            "%s %s (%s): %s reviews %.2f avg (rating %.2f) -> %s reviews %.2f avg",
            "Would update" if dry_run else "Updating",
            place.name,
            place_id,
            before.total_reviews,
            before.average_rating,
            float(place.rating or 0.0),
            actual.total_reviews,
            actual.average_rating,
        )
        if not dry_run:
            write_aggregate(db, place_id, actual)
        report.updated += 1
        report.repairs.append(PlaceRepair(place_id=place_id, name=place.name, before=before, after=actual))

    orphans = find_orphaned_review_ids(db)
    report.orphaned_reviews = len(orphans)
    if orphans:
        logger.warning("Found %s reviews referencing deleted places", len(orphans))
        if delete_orphans and not dry_run:
            res = db.execute(delete(Review).where(Review.id.in_(orphans)))
            db.commit()
            report.orphans_deleted = int(res.rowcount or 0)

    report.total_reviews = int(db.scalar(select(func.count(Review.id))) or 0)

    logger.info(
        "Review statistics check finished: scanned=%s updated=%s already_correct=%s orphaned=%s",
        report.places_scanned,
        report.updated,
        report.already_correct,
        report.orphaned_reviews,
    )
    return report
