from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field


class SubmissionCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    category: str = Field(min_length=1, max_length=80)
    city: str = Field(min_length=1, max_length=120)
    description: str = Field(min_length=1)
    address: str = Field(min_length=1, max_length=250)
    image: str | None = Field(default=None, max_length=500)
    contact_number: str | None = Field(default=None, max_length=40)
    website: str | None = Field(default=None, max_length=500)
    note_for_admin: str | None = None


class SubmissionResponse(BaseModel):
    id: str
    submitted_by: str
    name: str
    category: str
    city: str
    description: str
    address: str
    image: str
    contact_number: str | None
    website: str | None
    note_for_admin: str | None
    status: str
    admin_notes: str
    reviewed_at: datetime | None
    created_at: datetime


class SubmissionListResponse(BaseModel):
    items: list[SubmissionResponse]
    total: int


class PlaceUpdateResponse(BaseModel):
    id: str
    place_id: str
    place_name: str
    submitted_by: str
    name: str | None
    category: str | None
    description: str | None
    image: str | None
    address: str | None
    contact_number: str | None
    website: str | None
    status: str
    admin_notes: str
    reviewed_at: datetime | None
    created_at: datetime


class PlaceUpdateListResponse(BaseModel):
    items: list[PlaceUpdateResponse]
    total: int


class ModerationDecision(BaseModel):
    status: Literal["approved", "rejected"]
    admin_notes: str | None = Field(default=None, max_length=2000)
