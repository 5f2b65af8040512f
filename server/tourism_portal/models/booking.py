"""Booking model definition."""

from datetime import date, datetime
from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import JSON, CheckConstraint, Date, DateTime, Float, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from ..core.database import Base
from ..core.time_utils import utcnow
from .tour_package import name_index

if TYPE_CHECKING:
    from .account import Account
    from .tour_package import TourPackage


class BookingStatus(str, Enum):
    """Booking status enumeration."""
    DRAFT = "draft"
    PENDING = "pending"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no-show"


# Any status may follow any other; kept as an explicit table so tightening it
# is a data change rather than a code change.
ALLOWED_TRANSITIONS: dict[BookingStatus, frozenset[BookingStatus]] = {
    status: frozenset(BookingStatus) for status in BookingStatus
}


def can_transition(current: BookingStatus | str, new: BookingStatus | str) -> bool:
    return BookingStatus(new) in ALLOWED_TRANSITIONS[BookingStatus(current)]


class PaymentStatus(str, Enum):
    """Payment status enumeration."""
    PENDING = "pending"
    PAID = "paid"
    PARTIAL = "partial"
    REFUNDED = "refunded"
    CANCELLED = "cancelled"


class BookingSource(str, Enum):
    """Booking source channel enumeration."""
    WEBSITE = "website"
    PHONE = "phone"
    EMAIL = "email"
    OTA = "ota"
    AGENT = "agent"
    REFERRAL = "referral"


class ImmutableReferenceError(ValueError):
    """Raised when a persisted booking reference would be overwritten."""


class Booking(Base):
    """Booking entity representing a customer's reservation of a tour package."""

    __tablename__ = "bookings"

    # Primary key
    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    booking_reference: Mapped[str] = mapped_column(String(32), nullable=False, unique=True, index=True)

    # References
    customer_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("accounts.id"),
        nullable=False,
        index=True
    )
    tour_package_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("tour_packages.id"),
        nullable=False,
        index=True
    )
    assigned_agent_id: Mapped[UUID | None] = mapped_column(
        Uuid,
        ForeignKey("accounts.id"),
        nullable=True,
        index=True
    )

    # Booking details
    departure_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    return_date: Mapped[date] = mapped_column(Date, nullable=False)
    adults: Mapped[int] = mapped_column(Integer, nullable=False)
    children: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    infants: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    room_configuration: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    travelers: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    traveler_names: Mapped[str] = mapped_column(Text, nullable=False, default="")

    # Pricing snapshot, frozen at creation
    base_amount: Mapped[float] = mapped_column(Float, nullable=False)
    discounts: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    extras: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    taxes: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    total_amount: Mapped[float] = mapped_column(Float, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="USD")

    # Payment
    payment_status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=PaymentStatus.PENDING.value,
        index=True
    )
    payment_method: Mapped[str | None] = mapped_column(String(30), nullable=True)
    transactions: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=BookingStatus.PENDING.value,
        index=True
    )

    # Activity
    communications: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    documents: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    special_requests: Mapped[str | None] = mapped_column(Text, nullable=True)
    internal_notes: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    source: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=BookingSource.WEBSITE.value,
        index=True
    )
    ota_reference: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    # Constraints
    __table_args__ = (
        CheckConstraint("adults >= 1", name="ck_booking_adults_positive"),
        CheckConstraint("children >= 0", name="ck_booking_children_non_negative"),
        CheckConstraint("infants >= 0", name="ck_booking_infants_non_negative"),
        CheckConstraint("length(booking_reference) > 0", name="ck_booking_reference_not_empty"),
    )

    # Relationships
    customer: Mapped["Account"] = relationship("Account", foreign_keys=[customer_id], lazy="raise")
    tour_package: Mapped["TourPackage"] = relationship("TourPackage", lazy="raise")
    assigned_agent: Mapped["Account | None"] = relationship(
        "Account",
        foreign_keys=[assigned_agent_id],
        lazy="raise"
    )

    @validates("booking_reference")
    def validate_booking_reference(self, key: str, value: str) -> str:
        current = self.__dict__.get("booking_reference")
        if current and value != current:
            raise ImmutableReferenceError(f"Booking reference {current} cannot be changed")
        return value

    @validates("travelers")
    def index_traveler_names(self, key: str, value: list) -> list:
        self.traveler_names = name_index(
            f"{traveler.get('first_name') or ''} {traveler.get('last_name') or ''}"
            for traveler in value or []
        )
        return value

    @property
    def total_travelers(self) -> int:
        return self.adults + self.children

    def __repr__(self) -> str:
        return (
            f"<Booking(id={self.id}, reference='{self.booking_reference}', "
            f"status={self.status}, total={self.total_amount})>"
        )
