from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel

from cityguide.models.enums import UserRole


class AdminUserUpdate(BaseModel):
    is_active: bool | None = None
    role: UserRole | None = None


class AdminUserResponse(BaseModel):
    id: str
    name: str
    email: str
    role: str
    is_active: bool
    is_email_verified: bool
    created_at: datetime


class AdminStatsResponse(BaseModel):
    total_users: int
    active_users: int
    banned_users: int
    total_places: int
    total_reviews: int
    pending_submissions: int
    approved_submissions: int
    rejected_submissions: int
    pending_updates: int
    places_by_category: dict[str, int]
    places_by_city: dict[str, int]
