from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from cityguide.core.deps import get_current_user
from cityguide.db.session import get_db
from cityguide.models.favorites import Favorite
from cityguide.models.users import UserAuth
from cityguide.routers.places import _to_place_response, get_place_or_404
from cityguide.schemas.favorites import FavoriteCreate, FavoriteListResponse, FavoriteResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/favorites", tags=["favorites"])


def _to_favorite_response(fav: Favorite) -> FavoriteResponse:
    return FavoriteResponse(id=fav.id, place=_to_place_response(fav.place), created_at=fav.created_at)


@router.get("", response_model=FavoriteListResponse)
def list_favorites(
    current: UserAuth = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> FavoriteListResponse:
    favs = list(
        db.scalars(
            select(Favorite).where(Favorite.user_id == current.id).order_by(Favorite.created_at.desc())
        ).all()
    )
    return FavoriteListResponse(items=[_to_favorite_response(f) for f in favs], total=len(favs))


@router.post("", response_model=FavoriteResponse, status_code=201)
def add_favorite(
    payload: FavoriteCreate,
    current: UserAuth = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> FavoriteResponse:
    place = get_place_or_404(db, payload.place_id)

    fav = Favorite(user_id=current.id, place_id=place.id)
    db.add(fav)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Place already in favorites")
    db.refresh(fav)

    logger.info("Added %s to favorites of %s", place.id, current.id)
    return _to_favorite_response(fav)


@router.delete("/{favorite_id}", status_code=204)
def remove_favorite(
    favorite_id: str,
    current: UserAuth = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> None:
    fav = db.scalar(select(Favorite).where(Favorite.id == favorite_id, Favorite.user_id == current.id))
    if not fav:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Favorite not found")
    db.delete(fav)
    db.commit()
