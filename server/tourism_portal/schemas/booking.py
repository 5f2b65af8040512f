"""Booking-related Pydantic schemas."""

from datetime import date, datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from ..core.time_utils import utctoday
from ..models.booking import BookingSource, BookingStatus, PaymentStatus
from .account import EmergencyContact
from .common import AccountSummary, NamedAccount, Pagination
from .tour_package import TourPackageSummary


class RoomConfiguration(BaseModel):
    single_rooms: int = Field(0, ge=0)
    double_rooms: int = Field(0, ge=0)
    triple_rooms: int = Field(0, ge=0)


class TravelerCounts(BaseModel):
    """Party composition; infants travel free and do not count."""

    adults: int = Field(..., ge=1, le=50, description="Number of adults")
    children: int = Field(0, ge=0, le=50, description="Number of children")
    infants: int = Field(0, ge=0, le=20, description="Number of infants")

    @property
    def total(self) -> int:
        return self.adults + self.children


class BookingDetailsRequest(TravelerCounts):
    departure_date: date = Field(..., description="Departure date (YYYY-MM-DD)")
    room_configuration: RoomConfiguration = Field(default_factory=RoomConfiguration)

    @field_validator("departure_date")
    @classmethod
    def validate_departure_date(cls, v: date) -> date:
        if v < utctoday():
            raise ValueError("Departure date cannot be in the past")
        return v


class Traveler(BaseModel):
    """Traveler record attached to a booking."""

    first_name: str = Field(..., min_length=1, max_length=50)
    last_name: str = Field(..., min_length=1, max_length=50)
    date_of_birth: Optional[date] = None
    nationality: Optional[str] = None
    passport_number: Optional[str] = None
    passport_expiry: Optional[date] = None
    dietary_requirements: Optional[str] = None
    medical_conditions: Optional[str] = None
    emergency_contact: Optional[EmergencyContact] = None


class CreateBookingRequest(BaseModel):
    """Request schema for creating a booking."""

    tour_package: UUID = Field(..., description="Tour package to book")
    booking_details: BookingDetailsRequest
    travelers: List[Traveler] = Field(..., min_length=1)
    special_requests: Optional[str] = Field(None, max_length=2000)
    source: Optional[BookingSource] = Field(
        None,
        description="Booking channel; only honoured for staff callers"
    )
    ota_reference: Optional[str] = Field(None, max_length=100)


class Discount(BaseModel):
    type: str
    amount: float
    description: str


class Extra(BaseModel):
    item: str
    quantity: int
    unit_price: float
    total_price: float


class Taxes(BaseModel):
    amount: float
    description: Optional[str] = None


class PricingSnapshot(BaseModel):
    """Price computed at booking time; never recomputed."""

    base_amount: float = Field(..., ge=0)
    discounts: List[Discount] = Field(default_factory=list)
    extras: List[Extra] = Field(default_factory=list)
    taxes: Optional[Taxes] = None
    total_amount: float = Field(..., ge=0)
    currency: str = "USD"


class Transaction(BaseModel):
    transaction_id: str
    amount: float
    method: str
    status: str
    date: datetime
    reference: Optional[str] = None


class PaymentInfo(BaseModel):
    status: PaymentStatus
    method: Optional[str] = None
    transactions: List[Transaction] = Field(default_factory=list)


class BookingDetails(BaseModel):
    departure_date: date
    return_date: date
    adults: int
    children: int
    infants: int
    total_travelers: int
    room_configuration: RoomConfiguration


class InternalNote(BaseModel):
    note: str
    added_by: Optional[NamedAccount] = None
    date: datetime


class Booking(BaseModel):
    """Booking response schema."""

    id: UUID = Field(..., description="Unique booking ID")
    booking_reference: str = Field(..., description="Human-facing booking reference")
    customer: AccountSummary
    tour_package: TourPackageSummary
    assigned_agent: Optional[AccountSummary] = None
    booking_details: BookingDetails
    travelers: List[Traveler]
    pricing: PricingSnapshot
    payment: PaymentInfo
    status: BookingStatus
    communications: List[dict] = Field(default_factory=list)
    documents: List[dict] = Field(default_factory=list)
    special_requests: Optional[str] = None
    internal_notes: List[InternalNote] = Field(default_factory=list)
    source: BookingSource
    ota_reference: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class BookingListResponse(BaseModel):
    bookings: List[Booking]
    pagination: Pagination


class BookingMessageResponse(BaseModel):
    message: str
    booking: Booking


class UpdateStatusRequest(BaseModel):
    # Plain string so unknown values surface as "Invalid status"
    status: str = Field(..., min_length=1, description="New booking status")


class AddNoteRequest(BaseModel):
    note: str = Field(..., min_length=1, max_length=5000)


class InternalNotesResponse(BaseModel):
    message: str = "Note added successfully"
    notes: List[InternalNote]


class AssignAgentRequest(BaseModel):
    agent_id: UUID = Field(..., description="Agent account to assign")


class RecordPaymentRequest(BaseModel):
    """Payment transaction recorded by finance staff."""

    amount: float = Field(..., gt=0)
    method: str = Field(..., min_length=1, max_length=30)
    status: str = Field("completed", pattern=r"^(completed|pending|failed|refunded)$")
    transaction_id: Optional[str] = Field(None, max_length=100)
    reference: Optional[str] = Field(None, max_length=100)


class BookingFilters(BaseModel):
    status: Optional[BookingStatus] = None
    payment_status: Optional[PaymentStatus] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    search: Optional[str] = Field(None, max_length=100)
    page: int = Field(1, ge=1)
    limit: int = Field(20, ge=1, le=100)
