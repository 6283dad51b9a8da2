from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from cityguide.core.deps import require_role
from cityguide.db.session import get_db
from cityguide.models.enums import ModerationStatus, UserRole
from cityguide.models.places import Place
from cityguide.models.reviews import Review
from cityguide.models.submissions import PlaceSubmission, PlaceUpdate
from cityguide.models.users import UserAuth
from cityguide.routers.places import _to_place_response, get_place_or_404
from cityguide.routers.submissions import _to_submission_response, _to_update_response
from cityguide.schemas.places import PlaceListResponse
from cityguide.schemas.submissions import (
    ModerationDecision,
    PlaceUpdateListResponse,
    PlaceUpdateResponse,
    SubmissionListResponse,
    SubmissionResponse,
)
from cityguide.schemas.users import AdminStatsResponse, AdminUserResponse, AdminUserUpdate
from cityguide.services.places import (
    approve_submission,
    decide_place_update,
    delete_place,
    delete_user,
    reject_submission,
)

logger = logging.getLogger(__name__)

require_admin = require_role(UserRole.admin)

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])


def _to_admin_user(u: UserAuth) -> AdminUserResponse:
    return AdminUserResponse(
        id=u.id,
        name=u.name,
        email=u.email,
        role=u.role,
        is_active=u.is_active,
        is_email_verified=u.is_email_verified,
        created_at=u.created_at,
    )


def _count(db: Session, stmt) -> int:
    return int(db.scalar(stmt) or 0)


# Users


@router.get("/users", response_model=list[AdminUserResponse])
def list_users(db: Session = Depends(get_db)) -> list[AdminUserResponse]:
    users = db.scalars(select(UserAuth).order_by(UserAuth.created_at.desc())).all()
    return [_to_admin_user(u) for u in users]


@router.patch("/users/{user_id}", response_model=AdminUserResponse)
def update_user(user_id: str, payload: AdminUserUpdate, db: Session = Depends(get_db)) -> AdminUserResponse:
    user = db.get(UserAuth, user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    if payload.is_active is not None:
        user.is_active = payload.is_active
    if payload.role is not None:
        user.role = payload.role.value
    db.commit()
    db.refresh(user)
    return _to_admin_user(user)


@router.delete("/users/{user_id}", status_code=204)
def remove_user(
    user_id: str,
    admin: UserAuth = Depends(require_admin),
    db: Session = Depends(get_db),
) -> None:
    if user_id == admin.id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You cannot delete your own account")
    user = db.get(UserAuth, user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    delete_user(db, user)


# Place submissions


@router.get("/submissions", response_model=SubmissionListResponse)
def list_submissions(
    db: Session = Depends(get_db),
    status_filter: ModerationStatus | None = Query(default=None, alias="status"),
) -> SubmissionListResponse:
    stmt = select(PlaceSubmission)
    if status_filter:
        stmt = stmt.where(PlaceSubmission.status == status_filter.value)
    items = list(db.scalars(stmt.order_by(PlaceSubmission.created_at.desc())).all())
    return SubmissionListResponse(items=[_to_submission_response(s) for s in items], total=len(items))


@router.patch("/submissions/{submission_id}", response_model=SubmissionResponse)
def decide_submission(
    submission_id: str,
    payload: ModerationDecision,
    admin: UserAuth = Depends(require_admin),
    db: Session = Depends(get_db),
) -> SubmissionResponse:
    submission = db.get(PlaceSubmission, submission_id)
    if not submission:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Submission not found")
    if submission.status != ModerationStatus.pending.value:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=f"Submission already {submission.status}")

    if payload.status == ModerationStatus.approved.value:
        approve_submission(db, submission, admin_id=admin.id, notes=payload.admin_notes)
    else:
        reject_submission(db, submission, admin_id=admin.id, notes=payload.admin_notes)
    db.refresh(submission)
    return _to_submission_response(submission)


# Place update requests


@router.get("/updates", response_model=PlaceUpdateListResponse)
def list_updates(
    db: Session = Depends(get_db),
    status_filter: ModerationStatus | None = Query(default=None, alias="status"),
) -> PlaceUpdateListResponse:
    stmt = select(PlaceUpdate)
    if status_filter:
        stmt = stmt.where(PlaceUpdate.status == status_filter.value)
    items = list(db.scalars(stmt.order_by(PlaceUpdate.created_at.desc())).all())
    return PlaceUpdateListResponse(items=[_to_update_response(u) for u in items], total=len(items))


@router.patch("/updates/{update_id}", response_model=PlaceUpdateResponse)
def decide_update(
    update_id: str,
    payload: ModerationDecision,
    admin: UserAuth = Depends(require_admin),
    db: Session = Depends(get_db),
) -> PlaceUpdateResponse:
    update_request = db.get(PlaceUpdate, update_id)
    if not update_request:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Update request not found")
    if update_request.status != ModerationStatus.pending.value:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Update request already {update_request.status}",
        )

    decide_place_update(
        db,
        update_request,
        ModerationStatus(payload.status),
        admin_id=admin.id,
        notes=payload.admin_notes,
    )
    db.refresh(update_request)
    return _to_update_response(update_request)


# Places


@router.get("/places", response_model=PlaceListResponse)
def list_all_places(
    db: Session = Depends(get_db),
    city: str | None = Query(default=None, max_length=120),
    category: str | None = Query(default=None, max_length=80),
) -> PlaceListResponse:
    stmt = select(Place)
    if city and city != "all":
        stmt = stmt.where(Place.city == city)
    if category and category != "all":
        stmt = stmt.where(Place.category == category)
    places = list(db.scalars(stmt.order_by(Place.created_at.desc())).all())
    return PlaceListResponse(items=[_to_place_response(p) for p in places], total=len(places))


@router.delete("/places/{place_id}", status_code=204)
def remove_place(place_id: str, db: Session = Depends(get_db)) -> None:
    delete_place(db, get_place_or_404(db, place_id))


@router.get("/stats", response_model=AdminStatsResponse)
def stats(db: Session = Depends(get_db)) -> AdminStatsResponse:
    by_category = db.execute(select(Place.category, func.count(Place.id)).group_by(Place.category)).all()
    by_city = db.execute(select(Place.city, func.count(Place.id)).group_by(Place.city)).all()

    def submissions_with(s: ModerationStatus) -> int:
        return _count(db, select(func.count(PlaceSubmission.id)).where(PlaceSubmission.status == s.value))

    return AdminStatsResponse(
        total_users=_count(db, select(func.count(UserAuth.id))),
        active_users=_count(db, select(func.count(UserAuth.id)).where(UserAuth.is_active.is_(True))),
        banned_users=_count(db, select(func.count(UserAuth.id)).where(UserAuth.is_active.is_(False))),
        total_places=_count(db, select(func.count(Place.id))),
        total_reviews=_count(db, select(func.count(Review.id))),
        pending_submissions=submissions_with(ModerationStatus.pending),
        approved_submissions=submissions_with(ModerationStatus.approved),
        rejected_submissions=submissions_with(ModerationStatus.rejected),
        pending_updates=_count(
            db, select(func.count(PlaceUpdate.id)).where(PlaceUpdate.status == ModerationStatus.pending.value)
        ),
        places_by_category={c: int(n) for c, n in by_category},
        places_by_city={c: int(n) for c, n in by_city},
    )
