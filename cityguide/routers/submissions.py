from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.orm import Session

from cityguide.core.deps import get_current_user
from cityguide.db.session import get_db
from cityguide.models.places import DEFAULT_PLACE_IMAGE
from cityguide.models.submissions import PlaceSubmission, PlaceUpdate
from cityguide.models.users import UserAuth
from cityguide.schemas.submissions import (
    PlaceUpdateResponse,
    SubmissionCreate,
    SubmissionListResponse,
    SubmissionResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/submissions", tags=["submissions"])


def _to_submission_response(s: PlaceSubmission) -> SubmissionResponse:
    return SubmissionResponse(
        id=s.id,
        submitted_by=s.submitted_by,
        name=s.name,
        category=s.category,
        city=s.city,
        description=s.description,
        address=s.address,
        image=s.image,
        contact_number=s.contact_number,
        website=s.website,
        note_for_admin=s.note_for_admin,
        status=s.status,
        admin_notes=s.admin_notes,
        reviewed_at=s.reviewed_at,
        created_at=s.created_at,
    )


def _to_update_response(u: PlaceUpdate) -> PlaceUpdateResponse:
    return PlaceUpdateResponse(
        id=u.id,
        place_id=u.place_id,
        place_name=u.place_name,
        submitted_by=u.submitted_by,
        name=u.name,
        category=u.category,
        description=u.description,
        image=u.image,
        address=u.address,
        contact_number=u.contact_number,
        website=u.website,
        status=u.status,
        admin_notes=u.admin_notes,
        reviewed_at=u.reviewed_at,
        created_at=u.created_at,
    )


@router.post("", response_model=SubmissionResponse, status_code=201)
def submit_place(
    payload: SubmissionCreate,
    current: UserAuth = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> SubmissionResponse:
    submission = PlaceSubmission(
        submitted_by=current.id,
        name=payload.name.strip(),
        category=payload.category.strip(),
        city=payload.city.strip(),
        description=payload.description.strip(),
        address=payload.address.strip(),
        image=payload.image or DEFAULT_PLACE_IMAGE,
        contact_number=payload.contact_number,
        website=payload.website,
        note_for_admin=payload.note_for_admin,
    )
    db.add(submission)
    db.commit()
    db.refresh(submission)

    logger.info("Place submitted for approval: %s by %s", submission.name, current.email)
    return _to_submission_response(submission)


@router.get("/my", response_model=SubmissionListResponse)
def my_submissions(
    current: UserAuth = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> SubmissionListResponse:
    items = list(
        db.scalars(
            select(PlaceSubmission)
            .where(PlaceSubmission.submitted_by == current.id)
            .order_by(PlaceSubmission.created_at.desc())
        ).all()
    )
    return SubmissionListResponse(items=[_to_submission_response(s) for s in items], total=len(items))
