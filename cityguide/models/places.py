from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, Float, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from cityguide.db.base import Base

DEFAULT_PLACE_IMAGE = "https://via.placeholder.com/400x300?text=Place+Image"


class Place(Base):
    __tablename__ = "places"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    category: Mapped[str] = mapped_column(String(80), nullable=False, index=True)
    city: Mapped[str] = mapped_column(String(120), nullable=False, index=True)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    address: Mapped[str | None] = mapped_column(String(250), nullable=True)
    contact_number: Mapped[str | None] = mapped_column(String(40), nullable=True)
    website: Mapped[str | None] = mapped_column(String(500), nullable=True)
    image: Mapped[str] = mapped_column(String(500), nullable=False, default=DEFAULT_PLACE_IMAGE)
    owner_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("users_auth.id", ondelete="SET NULL"), nullable=True, index=True
    )

    # Review aggregate. Written only by services.ratings.recompute_place_aggregate.
    total_reviews: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    average_rating: Mapped[float] = mapped_column(Float, nullable=False, default=0.0, index=True)
    # Older clients read this one; always equal to average_rating.
    rating: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)

    # Reviews embedded by the pre-migration schema. Input of the legacy migration only.
    legacy_reviews: Mapped[list[dict[str, Any]] | None] = mapped_column(JSON, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )


Index("ix_places_city_rating", Place.city, Place.rating)
Index("ix_places_category_city", Place.category, Place.city)
