from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from cityguide.core.deps import get_current_user
from cityguide.core.errors import UnauthorizedError
from cityguide.db.session import get_db
from cityguide.models.reviews import Review
from cityguide.models.users import UserAuth
from cityguide.routers.places import _to_place_response, get_place_or_404
from cityguide.schemas.reviews import (
    ReplyCreate,
    ReviewCreate,
    ReviewCreatedResponse,
    ReviewListResponse,
    ReviewResponse,
)
from cityguide.services import review_store
from cityguide.services.ratings import recompute_place_aggregate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/places/{place_id}/reviews", tags=["reviews"])


def _to_review_response(r: Review) -> ReviewResponse:
    return ReviewResponse(
        id=r.id,
        place_id=r.place_id,
        user_id=r.user_id,
        user_name=r.user_name,
        rating=r.rating,
        comment=r.comment,
        owner_reply=r.owner_reply,
        owner_reply_at=r.owner_reply_at,
        created_at=r.created_at,
        updated_at=r.updated_at,
    )


@router.post("", response_model=ReviewCreatedResponse, status_code=201)
def create_review(
    place_id: str,
    payload: ReviewCreate,
    current: UserAuth = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> ReviewCreatedResponse:
    get_place_or_404(db, place_id)

    review = review_store.create_review(
        db,
        place_id=place_id,
        user_id=current.id,
        user_name=current.name,
        rating=payload.rating,
        comment=payload.comment,
    )
    # The response must already carry the new aggregate.
    recompute_place_aggregate(db, place_id)
    logger.info("Review %s added to place %s by %s", review.id, place_id, current.email)

    place = get_place_or_404(db, place_id)
    return ReviewCreatedResponse(place=_to_place_response(place), review=_to_review_response(review))


@router.get("", response_model=ReviewListResponse)
def list_reviews(place_id: str, db: Session = Depends(get_db)) -> ReviewListResponse:
    place = get_place_or_404(db, place_id)
    reviews = review_store.list_by_place(db, place_id, newest_first=True)
    return ReviewListResponse(
        items=[_to_review_response(r) for r in reviews],
        total_reviews=place.total_reviews,
        average_rating=place.average_rating,
    )


@router.post("/{review_id}/reply", response_model=ReviewResponse)
def reply_to_review(
    place_id: str,
    review_id: str,
    payload: ReplyCreate,
    current: UserAuth = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> ReviewResponse:
    place = get_place_or_404(db, place_id)
    if place.owner_id is None or place.owner_id != current.id:
        raise UnauthorizedError("Only the place owner can reply to reviews")

    # Replies leave the rating untouched, so no recompute here.
    review = review_store.set_owner_reply(db, place_id=place_id, review_id=review_id, reply_text=payload.reply)
    logger.info("Owner reply added to review %s on place %s", review_id, place_id)
    return _to_review_response(review)
