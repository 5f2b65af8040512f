"""CRM Pydantic schemas."""

from datetime import datetime
from typing import Dict, List, Optional
from uuid import UUID

from pydantic import AliasChoices, BaseModel, Field

from ..models.booking import BookingStatus
from ..models.campaign import CampaignType
from .account import AccountResponse
from .booking import Booking
from .common import Pagination


class CustomerFilters(BaseModel):
    search: Optional[str] = Field(None, max_length=100)
    country: Optional[str] = None
    booking_status: Optional[BookingStatus] = None
    last_login_days: Optional[int] = Field(None, ge=1)
    page: int = Field(1, ge=1)
    limit: int = Field(20, ge=1, le=100)


class CustomerRow(AccountResponse):
    """Customer account with lifetime booking totals."""

    total_bookings: int = 0
    total_spent: float = 0
    last_booking_date: Optional[datetime] = None


class CustomerListResponse(BaseModel):
    customers: List[CustomerRow]
    pagination: Pagination


class CustomerStatistics(BaseModel):
    total_bookings: int
    total_spent: float
    average_booking_value: float
    bookings_by_status: Dict[str, int]
    preferred_circuits: Dict[str, int]
    last_booking_date: Optional[datetime] = None


class CustomerDetailResponse(BaseModel):
    customer: AccountResponse
    statistics: CustomerStatistics
    recent_bookings: List[Booking]


class AddCustomerNoteRequest(BaseModel):
    note: str = Field(..., min_length=1, max_length=5000)
    type: str = Field("general", min_length=1, max_length=30)


class Segments(BaseModel):
    high_value: int
    repeat: int
    recent: int
    active: int


class CountryCount(BaseModel):
    country: str
    count: int


class SegmentsResponse(BaseModel):
    segments: Segments
    customers_by_country: List[CountryCount]


class CreateCampaignRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    type: CampaignType
    subject: Optional[str] = Field(None, max_length=255)
    message: str = Field(..., min_length=1)
    target_segment: Optional[str] = Field(None, max_length=50)
    scheduled_date: Optional[datetime] = None


class Campaign(BaseModel):
    id: UUID
    name: str
    type: CampaignType
    subject: Optional[str] = None
    message: str
    target_segment: Optional[str] = None
    scheduled_date: datetime
    status: str
    created_by: UUID = Field(..., validation_alias=AliasChoices("created_by_id", "created_by"))
    created_at: datetime

    model_config = {"from_attributes": True}


class CampaignResponse(BaseModel):
    message: str = "Campaign created successfully"
    campaign: Campaign


class CampaignListResponse(BaseModel):
    campaigns: List[Campaign]
    pagination: Pagination
