"""Tour package model definition."""

import re
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import JSON, Boolean, CheckConstraint, DateTime, Float, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from ..core.database import Base
from ..core.time_utils import utcnow

if TYPE_CHECKING:
    from .account import Account


class Category(str, Enum):
    """Tour category enumeration."""
    SAFARI = "safari"
    CULTURAL = "cultural"
    ADVENTURE = "adventure"
    BEACH = "beach"
    MOUNTAIN = "mountain"
    WILDLIFE = "wildlife"
    LUXURY = "luxury"


class Circuit(str, Enum):
    """Geographic circuit enumeration."""
    NORTHERN = "northern"
    SOUTHERN = "southern"
    WESTERN = "western"
    COASTAL = "coastal"
    ZANZIBAR = "zanzibar"


_NON_SLUG_CHARS = re.compile(r"[^\w-]+")


def slugify(name: str) -> str:
    """Lowercase the name, turn spaces into hyphens and drop everything else."""
    return _NON_SLUG_CHARS.sub("", name.lower().replace(" ", "-"))


def name_index(names) -> str:
    """
    Casefolded names, one per line.

    Stored beside JSON sub-documents so searches match names only, and
    match non-ASCII names the same way on every database.
    """
    return "\n".join(name.strip().casefold() for name in names if name and name.strip())


class TourPackage(Base):
    """Tour package entity representing a catalog entry."""

    __tablename__ = "tour_packages"

    # Primary key
    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    # Catalog information
    name: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    short_description: Mapped[str] = mapped_column(String(200), nullable=False)
    category: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    circuit: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    destinations: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    destination_names: Mapped[str] = mapped_column(Text, nullable=False, default="")

    # Duration
    duration_days: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    duration_nights: Mapped[int] = mapped_column(Integer, nullable=False)

    # Pricing
    base_price: Mapped[float] = mapped_column(Float, nullable=False, index=True)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="USD")
    price_includes: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    price_excludes: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    seasonal_pricing: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    group_discounts: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    # Availability, inclusions and content
    availability: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    inclusions: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    itinerary: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    media: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    requirements: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)

    # Reviews
    average_rating: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    total_reviews: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # SEO
    slug: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    seo: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)

    # Flags
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, index=True)
    is_featured: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_by_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("accounts.id"),
        nullable=False,
        index=True
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    # Constraints
    __table_args__ = (
        CheckConstraint("base_price >= 0", name="ck_tour_package_base_price_non_negative"),
        CheckConstraint("duration_days >= 1", name="ck_tour_package_duration_days_positive"),
        CheckConstraint("duration_nights >= 0", name="ck_tour_package_duration_nights_non_negative"),
    )

    # Relationships
    created_by: Mapped["Account"] = relationship("Account", lazy="raise")

    @validates("destinations")
    def index_destination_names(self, key: str, value: list) -> list:
        self.destination_names = name_index(entry.get("name") for entry in value or [])
        return value

    def __repr__(self) -> str:
        return f"<TourPackage(id={self.id}, name='{self.name}', slug='{self.slug}')>"
