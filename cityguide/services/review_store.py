"""Persistence of individual reviews.

One review per (place, author) is guaranteed by the ``uq_reviews_place_user``
constraint: ``create_review`` inserts straight away and turns the constraint
violation into ``DuplicateReviewError``, so two racing submissions cannot
both succeed. Functions here never touch the place aggregate; callers run
``services.ratings.recompute_place_aggregate`` after a mutation.
"""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from cityguide.core.errors import DuplicateReviewError, NotFoundError, ValidationError
from cityguide.models.reviews import Review

logger = logging.getLogger(__name__)

MIN_RATING = 1
MAX_RATING = 5


# How drivers name the (place, author) constraint in their error text.
# sqlite lists the columns, postgres and mysql quote the constraint name.
_DUPLICATE_REVIEW_MARKERS = ("uq_reviews_place_user", "reviews.place_id, reviews.user_id")


def _is_duplicate_review(exc: IntegrityError) -> bool:
    constraint = getattr(getattr(exc.orig, "diag", None), "constraint_name", None)
    if constraint:
        return constraint == "uq_reviews_place_user"
    msg = str(exc.orig)
    return any(marker in msg for marker in _DUPLICATE_REVIEW_MARKERS)


def validate_review_input(rating: object, comment: str | None) -> tuple[int, str]:
    if isinstance(rating, bool) or not isinstance(rating, int):
        raise ValidationError("Rating must be an integer between 1 and 5", field="rating")
    if not MIN_RATING <= rating <= MAX_RATING:
        raise ValidationError("Rating must be between 1 and 5", field="rating")
    text = (comment or "").strip()
    if not text:
        raise ValidationError("Comment is required", field="comment")
    return rating, text


def create_review(
    db: Session,
    *,
    place_id: str,
    user_id: str,
    user_name: str,
    rating: int,
    comment: str,
    created_at: datetime | None = None,
    owner_reply: str | None = None,
    owner_reply_at: datetime | None = None,
) -> Review:
    rating, text = validate_review_input(rating, comment)
    created = created_at or datetime.utcnow()

    review = Review(
        place_id=place_id,
        user_id=user_id,
        user_name=user_name,
        rating=rating,
        comment=text,
        owner_reply=owner_reply,
        owner_reply_at=owner_reply_at,
        created_at=created,
        updated_at=created,
    )
    db.add(review)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        if _is_duplicate_review(exc):
            raise DuplicateReviewError(place_id, user_id) from exc
        raise
    db.refresh(review)
    return review


def get_review(db: Session, *, place_id: str, review_id: str) -> Review:
    review = db.scalar(select(Review).where(Review.id == review_id, Review.place_id == place_id))
    if review is None:
        raise NotFoundError("Review", review_id)
    return review


def set_owner_reply(db: Session, *, place_id: str, review_id: str, reply_text: str | None) -> Review:
    """Set or overwrite the owner's reply. Ownership is checked by the caller."""
    text = (reply_text or "").strip()
    if not text:
        raise ValidationError("Reply text is required", field="reply")

    review = get_review(db, place_id=place_id, review_id=review_id)
    review.owner_reply = text
    review.owner_reply_at = datetime.utcnow()
    db.commit()
    db.refresh(review)
    return review


def list_by_place(db: Session, place_id: str, *, newest_first: bool = True) -> list[Review]:
    order = Review.created_at.desc() if newest_first else Review.created_at.asc()
    stmt = select(Review).where(Review.place_id == place_id).order_by(order, Review.id)
    return list(db.scalars(stmt).all())


def ratings_for_place(db: Session, place_id: str) -> list[int]:
    return list(db.scalars(select(Review.rating).where(Review.place_id == place_id)).all())


def count_by_place(db: Session, place_id: str) -> int:
    return int(db.scalar(select(func.count(Review.id)).where(Review.place_id == place_id)) or 0)


def delete_by_place(db: Session, place_id: str, *, commit: bool = True) -> int:
    res = db.execute(delete(Review).where(Review.place_id == place_id))
    if commit:
        db.commit()
    return int(res.rowcount or 0)


def delete_review(db: Session, review: Review) -> None:
    db.delete(review)
    db.commit()
