"""Tour package Pydantic schemas."""

from datetime import date, datetime
from enum import Enum
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, HttpUrl, model_validator

from ..models.tour_package import Category, Circuit
from .common import Pagination


class Coordinates(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)


class Destination(BaseModel):
    """A stop on the tour, in visiting order."""

    name: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    coordinates: Optional[Coordinates] = None
    activities: List[str] = Field(default_factory=list)
    accommodation: Optional[str] = None
    duration: Optional[int] = Field(None, ge=1, description="Days spent at this destination")


class Duration(BaseModel):
    days: int = Field(..., ge=1)
    nights: int = Field(..., ge=0)


class Season(str, Enum):
    HIGH = "high"
    PEAK = "peak"
    LOW = "low"


class SeasonalPrice(BaseModel):
    season: Season
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    multiplier: float = Field(1, ge=0)


class GroupDiscount(BaseModel):
    """Percentage discount for groups of at least ``min_size`` travelers."""

    min_size: int = Field(..., ge=2)
    discount: float = Field(..., ge=0, le=50, description="Discount percentage")


class Pricing(BaseModel):
    base_price: float = Field(..., ge=0)
    currency: str = Field("USD", min_length=3, max_length=3)
    price_includes: List[str] = Field(default_factory=list)
    price_excludes: List[str] = Field(default_factory=list)
    seasonal_pricing: List[SeasonalPrice] = Field(default_factory=list)
    group_discounts: List[GroupDiscount] = Field(default_factory=list)


class Availability(BaseModel):
    max_group_size: int = Field(..., ge=1)
    min_group_size: int = Field(1, ge=1)
    departure_dates: List[date] = Field(default_factory=list)
    blackout_dates: List[date] = Field(default_factory=list)
    advance_booking_days: int = Field(7, ge=0)

    @model_validator(mode="after")
    def check_group_bounds(self) -> "Availability":
        if self.min_group_size > self.max_group_size:
            raise ValueError("min_group_size cannot exceed max_group_size")
        return self


class AccommodationLevel(str, Enum):
    BUDGET = "budget"
    MID_RANGE = "mid-range"
    LUXURY = "luxury"
    MIXED = "mixed"


class Inclusions(BaseModel):
    accommodation: Optional[AccommodationLevel] = None
    meals: List[str] = Field(default_factory=list)
    transport: Optional[str] = None
    guide: Optional[bool] = None
    activities: List[str] = Field(default_factory=list)
    equipment: List[str] = Field(default_factory=list)


class ItineraryDay(BaseModel):
    day: int = Field(..., ge=1)
    title: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    meals: List[str] = Field(default_factory=list)
    accommodation: Optional[str] = None
    activities: List[str] = Field(default_factory=list)


class Media(BaseModel):
    images: List[HttpUrl] = Field(default_factory=list)
    videos: List[HttpUrl] = Field(default_factory=list)
    brochure: Optional[HttpUrl] = None


class FitnessLevel(str, Enum):
    EASY = "easy"
    MODERATE = "moderate"
    CHALLENGING = "challenging"
    EXTREME = "extreme"


class AgeRestrictions(BaseModel):
    min_age: Optional[int] = Field(None, ge=0)
    max_age: Optional[int] = Field(None, le=120)


class Requirements(BaseModel):
    fitness_level: Optional[FitnessLevel] = None
    age_restrictions: Optional[AgeRestrictions] = None
    medical_requirements: List[str] = Field(default_factory=list)
    equipment: List[str] = Field(default_factory=list)


class Seo(BaseModel):
    slug: Optional[str] = Field(None, pattern=r"^[\w-]+$", max_length=255)
    meta_title: Optional[str] = None
    meta_description: Optional[str] = None
    keywords: List[str] = Field(default_factory=list)


class CreateTourPackageRequest(BaseModel):
    """Request schema for creating a tour package."""

    name: str = Field(..., min_length=3, max_length=200)
    description: str = Field(..., min_length=10)
    short_description: str = Field(..., min_length=1, max_length=200)
    category: Category
    circuit: Circuit
    destinations: List[Destination] = Field(..., min_length=1)
    duration: Duration
    pricing: Pricing
    availability: Availability
    inclusions: Inclusions = Field(default_factory=Inclusions)
    itinerary: List[ItineraryDay] = Field(default_factory=list)
    media: Media = Field(default_factory=Media)
    requirements: Requirements = Field(default_factory=Requirements)
    seo: Seo = Field(default_factory=Seo)
    is_active: bool = True
    is_featured: bool = False


class UpdateTourPackageRequest(BaseModel):
    """Partial update; only whitelisted fields are accepted."""

    name: Optional[str] = Field(None, min_length=3, max_length=200)
    description: Optional[str] = Field(None, min_length=10)
    short_description: Optional[str] = Field(None, min_length=1, max_length=200)
    category: Optional[Category] = None
    circuit: Optional[Circuit] = None
    destinations: Optional[List[Destination]] = Field(None, min_length=1)
    duration: Optional[Duration] = None
    pricing: Optional[Pricing] = None
    availability: Optional[Availability] = None
    inclusions: Optional[Inclusions] = None
    itinerary: Optional[List[ItineraryDay]] = None
    media: Optional[Media] = None
    requirements: Optional[Requirements] = None
    seo: Optional[Seo] = None
    is_active: Optional[bool] = None
    is_featured: Optional[bool] = None

    model_config = {"extra": "forbid"}


class CreatorSummary(BaseModel):
    id: UUID
    first_name: str
    last_name: str

    model_config = {"from_attributes": True}


class TourPackage(BaseModel):
    """Tour package response schema."""

    id: UUID = Field(..., description="Unique tour package ID")
    name: str
    description: str
    short_description: str
    category: Category
    circuit: Circuit
    destinations: List[dict]
    duration: Duration
    pricing: Pricing
    availability: dict
    inclusions: dict
    itinerary: List[dict]
    media: dict
    requirements: dict
    reviews: dict
    seo: dict
    is_active: bool
    is_featured: bool
    created_by: Optional[CreatorSummary] = None
    created_at: datetime
    updated_at: datetime


class TourPackageSummary(BaseModel):
    """Package fields joined onto bookings."""

    id: UUID
    name: str
    category: Optional[Category] = None
    circuit: Optional[Circuit] = None
    duration: Duration
    pricing: Pricing


class TourListResponse(BaseModel):
    tours: List[TourPackage]
    pagination: Pagination


class TourMessageResponse(BaseModel):
    message: str
    tour: TourPackage


class TourSearchParams(BaseModel):
    """Public catalog filters."""

    category: Optional[Category] = None
    circuit: Optional[Circuit] = None
    min_price: Optional[float] = Field(None, ge=0)
    max_price: Optional[float] = Field(None, ge=0)
    duration: Optional[int] = Field(None, ge=1, description="Exact number of days")
    featured: Optional[bool] = None
    search: Optional[str] = Field(None, max_length=200)
    sort: str = Field("created_at", pattern=r"^-?(created_at|name|price|duration|rating)$")
    page: int = Field(1, ge=1)
    limit: int = Field(10, ge=1, le=100)
