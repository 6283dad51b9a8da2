from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class PlaceResponse(BaseModel):
    id: str
    name: str
    category: str
    city: str
    description: str
    address: str | None
    contact_number: str | None
    website: str | None
    image: str
    owner_id: str | None
    total_reviews: int
    average_rating: float
    rating: float
    created_at: datetime


class PlaceListResponse(BaseModel):
    items: list[PlaceResponse]
    total: int


class CitiesResponse(BaseModel):
    items: list[str]


class PlaceEditRequest(BaseModel):
    name: str | None = Field(default=None, max_length=200)
    category: str | None = Field(default=None, max_length=80)
    description: str | None = None
    image: str | None = Field(default=None, max_length=500)
    address: str | None = Field(default=None, max_length=250)
    contact_number: str | None = Field(default=None, max_length=40)
    website: str | None = Field(default=None, max_length=500)
