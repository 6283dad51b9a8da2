from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel

from cityguide.schemas.places import PlaceResponse


class FavoriteCreate(BaseModel):
    place_id: str


class FavoriteResponse(BaseModel):
    id: str
    place: PlaceResponse
    created_at: datetime


class FavoriteListResponse(BaseModel):
    items: list[FavoriteResponse]
    total: int
