from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field, StrictInt

from cityguide.schemas.places import PlaceResponse


class ReviewCreate(BaseModel):
    # Range and emptiness are checked by the review store so that every
    # writer (API, migration) gets the same rules and errors.
    rating: StrictInt
    comment: str = Field(default="", max_length=2000)


class ReplyCreate(BaseModel):
    reply: str = Field(default="", max_length=2000)


class ReviewResponse(BaseModel):
    id: str
    place_id: str
    user_id: str
    user_name: str
    rating: int
    comment: str
    owner_reply: str | None
    owner_reply_at: datetime | None
    created_at: datetime
    updated_at: datetime


class ReviewListResponse(BaseModel):
    items: list[ReviewResponse]
    total_reviews: int
    average_rating: float


class ReviewCreatedResponse(BaseModel):
    place: PlaceResponse
    review: ReviewResponse
