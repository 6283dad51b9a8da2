from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, Depends, Query
from sqlalchemy import Select, func, or_, select
from sqlalchemy.orm import Session

from cityguide.core.errors import NotFoundError
from cityguide.db.session import get_db
from cityguide.models.places import Place
from cityguide.schemas.places import CitiesResponse, PlaceListResponse, PlaceResponse

router = APIRouter(prefix="/places", tags=["places"])

SortField = Literal["rating", "average_rating", "total_reviews", "name", "created_at"]

_SORT_COLUMNS = {
    "rating": Place.rating.desc(),
    "average_rating": Place.average_rating.desc(),
    "total_reviews": Place.total_reviews.desc(),
    "name": Place.name.asc(),
    "created_at": Place.created_at.desc(),
}


def _to_place_response(place: Place) -> PlaceResponse:
    return PlaceResponse(
        id=place.id,
        name=place.name,
        category=place.category,
        city=place.city,
        description=place.description,
        address=place.address,
        contact_number=place.contact_number,
        website=place.website,
        image=place.image,
        owner_id=place.owner_id,
        total_reviews=place.total_reviews,
        average_rating=place.average_rating,
        rating=place.rating,
        created_at=place.created_at,
    )


def get_place_or_404(db: Session, place_id: str) -> Place:
    place = db.get(Place, place_id)
    if place is None:
        raise NotFoundError("Place", place_id)
    return place


def _page(db: Session, stmt: Select, *, sort: str, limit: int, offset: int) -> PlaceListResponse:
    total = db.scalar(select(func.count()).select_from(stmt.subquery()))
    items = list(
        db.scalars(stmt.order_by(_SORT_COLUMNS[sort], Place.name, Place.id).limit(limit).offset(offset)).all()
    )
    return PlaceListResponse(items=[_to_place_response(p) for p in items], total=int(total or 0))


@router.get("", response_model=PlaceListResponse)
def list_places(
    db: Session = Depends(get_db),
    city: str | None = Query(default=None, max_length=120),
    category: str | None = Query(default=None, max_length=80),
    min_rating: float | None = Query(default=None, ge=0, le=5),
    sort: SortField = Query(default="rating"),
    limit: int = Query(default=10, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
) -> PlaceListResponse:
    stmt = select(Place)
    if city:
        stmt = stmt.where(Place.city == city.strip())
    if category:
        stmt = stmt.where(Place.category == category.strip())
    if min_rating is not None:
        stmt = stmt.where(Place.rating >= min_rating)
    return _page(db, stmt, sort=sort, limit=limit, offset=offset)


@router.get("/search", response_model=PlaceListResponse)
def search_places(
    db: Session = Depends(get_db),
    keyword: str = Query(min_length=1, max_length=200),
    city: str | None = Query(default=None, max_length=120),
    min_rating: float | None = Query(default=None, ge=0, le=5),
    sort: SortField = Query(default="rating"),
    limit: int = Query(default=10, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
) -> PlaceListResponse:
    pattern = f"%{keyword.strip().lower()}%"
    stmt = select(Place).where(
        or_(
            func.lower(Place.name).like(pattern),
            func.lower(Place.category).like(pattern),
            func.lower(Place.description).like(pattern),
        )
    )
    if city:
        stmt = stmt.where(Place.city == city.strip())
    if min_rating is not None:
        stmt = stmt.where(Place.rating >= min_rating)
    return _page(db, stmt, sort=sort, limit=limit, offset=offset)


@router.get("/cities", response_model=CitiesResponse)
def list_cities(db: Session = Depends(get_db)) -> CitiesResponse:
    cities = db.scalars(select(Place.city).distinct().order_by(Place.city)).all()
    return CitiesResponse(items=list(cities))


@router.get("/{place_id}", response_model=PlaceResponse)
def get_place(place_id: str, db: Session = Depends(get_db)) -> PlaceResponse:
    return _to_place_response(get_place_or_404(db, place_id))
