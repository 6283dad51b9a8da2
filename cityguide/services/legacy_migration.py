"""One-time move of embedded place reviews into the ``reviews`` table.

Older data kept reviews as a JSON array on the place row
(``Place.legacy_reviews``). Each element is replayed through
``review_store.create_review``; the unique (place, author) constraint makes
a replay of an already migrated element fail with ``DuplicateReviewError``,
which is counted as skipped. The tool can therefore be re-run over a partly
migrated database. The embedded arrays are left untouched; clearing them is
a separate manual step once the migrated data has been checked.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any

import pydantic
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from cityguide.core.errors import DuplicateReviewError, ValidationError
from cityguide.models.places import Place
from cityguide.models.reviews import Review
from cityguide.services import review_store
from cityguide.services.ratings import recompute_place_aggregate

logger = logging.getLogger(__name__)


class LegacyReview(BaseModel):
    """Review element as stored inside a place by the old schema (camelCase keys)."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    user_id: str = Field(alias="userId")
    user_name: str = Field(alias="userName")
    rating: int
    comment: str
    created_at: datetime | None = Field(default=None, alias="createdAt")
    owner_reply: str | None = Field(default=None, alias="ownerReply")
    owner_reply_at: datetime | None = Field(default=None, alias="ownerReplyAt")


@dataclass
class MigrationReport:
    places_scanned: int = 0
    places_with_reviews: int = 0
    migrated: int = 0
    skipped: int = 0
    failed: int = 0
    reviews_in_store: int = 0


def _migrate_one(db: Session, place_id: str, raw: dict[str, Any]) -> None:
    legacy = LegacyReview.model_validate(raw)
    review_store.create_review(
        db,
        place_id=place_id,
        user_id=legacy.user_id,
        user_name=legacy.user_name,
        rating=legacy.rating,
        comment=legacy.comment,
        created_at=legacy.created_at,
        owner_reply=legacy.owner_reply or None,
        owner_reply_at=legacy.owner_reply_at,
    )


def migrate_legacy_reviews(db: Session) -> MigrationReport:
    report = MigrationReport()

    # Snapshot first: a rollback on a duplicate expires loaded places.
    rows = db.execute(select(Place.id, Place.name, Place.legacy_reviews).order_by(Place.created_at, Place.id)).all()
    logger.info("Found %s places", len(rows))

    for place_id, name, legacy_reviews in rows:
        report.places_scanned += 1
        if not legacy_reviews:
            continue

        report.places_with_reviews += 1
        logger.info("Migrating %s embedded reviews of %s (%s)", len(legacy_reviews), name, place_id)

        for raw in legacy_reviews:
            try:
                _migrate_one(db, place_id, raw)
            except DuplicateReviewError:
                report.skipped += 1
                logger.info("Skipped already migrated review of user %s", raw.get("userId") or raw.get("user_id"))
            except (pydantic.ValidationError, ValidationError) as exc:
                report.failed += 1
                logger.error("Could not migrate review %r of place %s: %s", raw, place_id, exc)
            except SQLAlchemyError as exc:
                # e.g. the legacy author no longer exists
                db.rollback()
                report.failed += 1
                logger.error("Storing review %r of place %s failed: %s", raw, place_id, exc)
            else:
                report.migrated += 1

        aggregate = recompute_place_aggregate(db, place_id)
        logger.info(
            "Place %s stats: %s reviews, %.2f average",
            place_id,
            aggregate.total_reviews,
            aggregate.average_rating,
        )

    report.reviews_in_store = int(db.scalar(select(func.count(Review.id))) or 0)
    logger.info(
        "Migration finished: places=%s with_reviews=%s migrated=%s skipped=%s failed=%s in_store=%s",
        report.places_scanned,
        report.places_with_reviews,
        report.migrated,
        report.skipped,
        report.failed,
        report.reviews_in_store,
    )
    return report
