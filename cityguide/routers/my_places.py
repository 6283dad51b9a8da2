from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from cityguide.core.deps import get_current_user
from cityguide.db.session import get_db
from cityguide.models.places import Place
from cityguide.models.submissions import PlaceUpdate
from cityguide.models.users import UserAuth
from cityguide.routers.places import _to_place_response
from cityguide.routers.submissions import _to_update_response
from cityguide.schemas.places import PlaceEditRequest, PlaceListResponse
from cityguide.schemas.submissions import PlaceUpdateListResponse, PlaceUpdateResponse
from cityguide.services.places import delete_place

logger = logging.getLogger(__name__)

router = APIRouter(tags=["my-places"])


def _owned_place(db: Session, place_id: str, user: UserAuth) -> Place:
    place = db.scalar(select(Place).where(Place.id == place_id, Place.owner_id == user.id))
    if not place:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Place not found or you do not have permission to edit",
        )
    return place


@router.get("/my-places", response_model=PlaceListResponse)
def my_places(
    current: UserAuth = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> PlaceListResponse:
    places = list(
        db.scalars(select(Place).where(Place.owner_id == current.id).order_by(Place.created_at.desc())).all()
    )
    return PlaceListResponse(items=[_to_place_response(p) for p in places], total=len(places))


@router.patch("/my-places/{place_id}", response_model=PlaceUpdateResponse, status_code=202)
def request_place_update(
    place_id: str,
    payload: PlaceEditRequest,
    current: UserAuth = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> PlaceUpdateResponse:
    """Owners cannot edit directly; the change waits for an admin."""
    place = _owned_place(db, place_id, current)
    proposed = payload.model_dump(exclude_none=True)
    if not proposed:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No changes provided")

    update_request = PlaceUpdate(place_id=place.id, place_name=place.name, submitted_by=current.id, **proposed)
    db.add(update_request)
    db.commit()
    db.refresh(update_request)

    logger.info("Update request %s submitted for place %s", update_request.id, place.id)
    return _to_update_response(update_request)


@router.delete("/my-places/{place_id}", status_code=204)
def delete_my_place(
    place_id: str,
    current: UserAuth = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> None:
    place = _owned_place(db, place_id, current)
    delete_place(db, place)


@router.get("/my-updates", response_model=PlaceUpdateListResponse)
def my_updates(
    current: UserAuth = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> PlaceUpdateListResponse:
    items = list(
        db.scalars(
            select(PlaceUpdate).where(PlaceUpdate.submitted_by == current.id).order_by(PlaceUpdate.created_at.desc())
        ).all()
    )
    return PlaceUpdateListResponse(items=[_to_update_response(u) for u in items], total=len(items))
