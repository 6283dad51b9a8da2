from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import delete, select, update
from sqlalchemy.orm import Session

from cityguide.models.enums import ModerationStatus
from cityguide.models.favorites import Favorite
from cityguide.models.places import Place
from cityguide.models.reviews import Review
from cityguide.models.submissions import PlaceSubmission, PlaceUpdate
from cityguide.models.users import UserAuth
from cityguide.services import review_store
from cityguide.services.ratings import recompute_place_aggregate

logger = logging.getLogger(__name__)

# Fields an approved PlaceUpdate may copy onto a place. Aggregates are never among them.
EDITABLE_FIELDS = ("name", "category", "description", "image", "address", "contact_number", "website")


def delete_place(db: Session, place: Place) -> int:
    """Delete a place with its reviews, favorites and edit requests.

    Returns the number of reviews removed. No recompute: the place is gone.
    """
    place_id = place.id
    removed = review_store.delete_by_place(db, place_id, commit=False)
    db.execute(delete(Favorite).where(Favorite.place_id == place_id))
    db.execute(delete(PlaceUpdate).where(PlaceUpdate.place_id == place_id))
    db.delete(place)
    db.commit()
    logger.info("Deleted place %s with %s reviews", place_id, removed)
    return removed


def approve_submission(db: Session, submission: PlaceSubmission, *, admin_id: str, notes: str | None) -> Place:
    _mark_reviewed(submission, ModerationStatus.approved, admin_id=admin_id, notes=notes)
    place = Place(
        name=submission.name,
        category=submission.category,
        city=submission.city,
        description=submission.description,
        address=submission.address,
        image=submission.image,
        contact_number=submission.contact_number,
        website=submission.website,
        owner_id=submission.submitted_by,
        total_reviews=0,
        average_rating=0.0,
        rating=0.0,
    )
    db.add(place)
    db.commit()
    db.refresh(place)
    logger.info("Submission %s approved, created place %s", submission.id, place.id)
    return place


def reject_submission(db: Session, submission: PlaceSubmission, *, admin_id: str, notes: str | None) -> None:
    _mark_reviewed(submission, ModerationStatus.rejected, admin_id=admin_id, notes=notes)
    db.commit()


def decide_place_update(
    db: Session,
    update_request: PlaceUpdate,
    status: ModerationStatus,
    *,
    admin_id: str,
    notes: str | None,
) -> Place | None:
    """Record the admin decision; on approval copy the proposed fields onto the place."""
    _mark_reviewed(update_request, status, admin_id=admin_id, notes=notes)
    place = None
    if status == ModerationStatus.approved:
        place = db.get(Place, update_request.place_id)
        if place is not None:
            for field in EDITABLE_FIELDS:
                value = getattr(update_request, field)
                if value:
                    setattr(place, field, value)
    db.commit()
    return place


def delete_user(db: Session, user: UserAuth) -> None:
    """Delete an account and everything that only makes sense with it.

    The user's reviews go too, so each affected place gets its aggregate
    recomputed. Places the user owned stay, without an owner.
    """
    user_id = user.id
    affected = list(db.scalars(select(Review.place_id).where(Review.user_id == user_id)).all())

    db.execute(delete(Review).where(Review.user_id == user_id))
    db.execute(delete(Favorite).where(Favorite.user_id == user_id))
    db.execute(delete(PlaceSubmission).where(PlaceSubmission.submitted_by == user_id))
    db.execute(delete(PlaceUpdate).where(PlaceUpdate.submitted_by == user_id))
    db.execute(update(Place).where(Place.owner_id == user_id).values(owner_id=None))
    db.delete(user)
    db.commit()

    for place_id in affected:
        recompute_place_aggregate(db, place_id)
    logger.info("Deleted user %s (%s reviews removed)", user_id, len(affected))


def _mark_reviewed(
    item: PlaceSubmission | PlaceUpdate,
    status: ModerationStatus,
    *,
    admin_id: str,
    notes: str | None,
) -> None:
    item.status = status.value
    item.admin_notes = notes or ""
    item.reviewed_by = admin_id
    item.reviewed_at = datetime.utcnow()
