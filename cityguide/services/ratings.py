from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from sqlalchemy import update
from sqlalchemy.orm import Session

from cityguide.core.errors import NotFoundError
from cityguide.models.places import Place
from cityguide.models.reviews import Review
from cityguide.services import review_store

logger = logging.getLogger(__name__)

# Stored averages are floats rewritten on every recompute; compare them loosely.
RATING_TOLERANCE = 0.01


@dataclass(frozen=True)
class ReviewAggregate:
    total_reviews: int = 0
    average_rating: float = 0.0

    @property
    def rating(self) -> float:
        return self.average_rating

    @classmethod
    def of_place(cls, place: Place) -> "ReviewAggregate":
        return cls(total_reviews=int(place.total_reviews or 0), average_rating=float(place.average_rating or 0.0))


def compute_aggregate(ratings: Sequence[int]) -> ReviewAggregate:
    """Derive the aggregate from the ratings of all reviews of one place."""
    if not ratings:
        return ReviewAggregate()
    return ReviewAggregate(total_reviews=len(ratings), average_rating=sum(ratings) / len(ratings))


def aggregate_matches(place: Place, expected: ReviewAggregate, *, tolerance: float = RATING_TOLERANCE) -> bool:
    """True when the fields stored on ``place`` agree with ``expected``."""
    return (
        int(place.total_reviews or 0) == expected.total_reviews
        and abs(float(place.average_rating or 0.0) - expected.average_rating) <= tolerance
        and abs(float(place.rating or 0.0) - expected.rating) <= tolerance
    )


def write_aggregate(db: Session, place_id: str, aggregate: ReviewAggregate) -> None:
    """Store all three aggregate fields with a single UPDATE and commit."""
    stmt = (
        update(Place)
        .where(Place.id == place_id)
        .values(
            total_reviews=aggregate.total_reviews,
            average_rating=aggregate.average_rating,
            rating=aggregate.rating,
        )
    )
    res = db.execute(stmt)
    if not res.rowcount:
        db.rollback()
        raise NotFoundError("Place", place_id)
    db.commit()


def recompute_place_aggregate(db: Session, place_id: str) -> ReviewAggregate:
    """Recompute aggregated rating fields for a place from its reviews.

    Reads every review of the place (no pagination, counts per place are
    small) and rewrites ``total_reviews``, ``average_rating`` and ``rating``
    together. Errors from the write propagate so the triggering request fails.
    """
    aggregate = compute_aggregate(review_store.ratings_for_place(db, place_id))
    write_aggregate(db, place_id, aggregate)
    logger.debug(
        "Place %s aggregate: %s reviews, %.2f average",
        place_id,
        aggregate.total_reviews,
        aggregate.average_rating,
    )
    return aggregate


def remove_review(db: Session, review: Review) -> ReviewAggregate:
    """Delete one review and bring its place aggregate back in line."""
    place_id = review.place_id
    review_store.delete_review(db, review)
    return recompute_place_aggregate(db, place_id)
