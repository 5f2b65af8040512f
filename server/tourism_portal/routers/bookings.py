"""Booking router for booking operations."""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.database import get_db
from ..core.dependencies import CURRENT_ACCOUNT, get_notifier, require_roles
from ..models.account import Account, Role
from ..models.booking import Booking as BookingModel
from ..schemas.booking import (
    AddNoteRequest,
    AssignAgentRequest,
    Booking,
    BookingDetails,
    BookingFilters,
    BookingListResponse,
    BookingMessageResponse,
    CreateBookingRequest,
    InternalNotesResponse,
    PaymentInfo,
    PricingSnapshot,
    RecordPaymentRequest,
    UpdateStatusRequest,
)
from ..schemas.common import AccountSummary, Pagination
from ..services.booking_service import BookingService
from .tours import tour_to_summary

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/bookings", tags=["bookings"])

# Define dependencies to avoid B008 linting errors
DB_DEPENDENCY = Depends(get_db)
NOTIFIER_DEPENDENCY = Depends(get_notifier)
FILTERS_QUERY = Query()
BOOKING_VIEWERS = Depends(require_roles(Role.ADMIN, Role.MANAGER, Role.AGENT, Role.FINANCE))
BOOKING_HANDLERS = Depends(require_roles(Role.ADMIN, Role.MANAGER, Role.AGENT))
BOOKING_SUPERVISORS = Depends(require_roles(Role.ADMIN, Role.MANAGER))
PAYMENT_RECORDERS = Depends(require_roles(Role.ADMIN, Role.FINANCE))


def booking_to_schema(booking: BookingModel) -> Booking:
    """Convert booking model to schema; customer, package and agent must be loaded."""
    return Booking(
        id=booking.id,
        booking_reference=booking.booking_reference,
        customer=AccountSummary.model_validate(booking.customer),
        tour_package=tour_to_summary(booking.tour_package),
        assigned_agent=(
            AccountSummary.model_validate(booking.assigned_agent)
            if booking.assigned_agent is not None else None
        ),
        booking_details=BookingDetails(
            departure_date=booking.departure_date,
            return_date=booking.return_date,
            adults=booking.adults,
            children=booking.children,
            infants=booking.infants,
            total_travelers=booking.total_travelers,
            room_configuration=booking.room_configuration,
        ),
        travelers=booking.travelers,
        pricing=PricingSnapshot(
            base_amount=booking.base_amount,
            discounts=booking.discounts,
            extras=booking.extras,
            taxes=booking.taxes,
            total_amount=booking.total_amount,
            currency=booking.currency,
        ),
        payment=PaymentInfo(
            status=booking.payment_status,
            method=booking.payment_method,
            transactions=booking.transactions,
        ),
        status=booking.status,
        communications=booking.communications,
        documents=booking.documents,
        special_requests=booking.special_requests,
        internal_notes=[
            {
                "note": note["note"],
                "added_by": {"id": note["added_by"]} if note.get("added_by") else None,
                "date": note["date"],
            }
            for note in booking.internal_notes
        ],
        source=booking.source,
        ota_reference=booking.ota_reference,
        created_at=booking.created_at,
        updated_at=booking.updated_at,
    )


@router.post("", response_model=BookingMessageResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    request: CreateBookingRequest,
    account: Account = CURRENT_ACCOUNT,
    db: AsyncSession = DB_DEPENDENCY,
    notifier=NOTIFIER_DEPENDENCY,
) -> BookingMessageResponse:
    """
    Book a tour package for the caller.

    The price is computed once here and frozen on the booking; the
    confirmation email is queued and never delays the response.
    """
    booking = await BookingService(db, notifier=notifier).create_booking(account, request)
    return BookingMessageResponse(
        message="Booking created successfully",
        booking=booking_to_schema(booking),
    )


@router.get("/my-bookings", response_model=list[Booking])
async def my_bookings(
    account: Account = CURRENT_ACCOUNT,
    db: AsyncSession = DB_DEPENDENCY,
) -> list[Booking]:
    bookings = await BookingService(db).list_my_bookings(account)
    return [booking_to_schema(booking) for booking in bookings]


@router.get("", response_model=BookingListResponse)
async def list_bookings(
    filters: BookingFilters = FILTERS_QUERY,
    account: Account = BOOKING_VIEWERS,
    db: AsyncSession = DB_DEPENDENCY,
) -> BookingListResponse:
    """
    List bookings visible to the caller.

    Agents only see bookings assigned to them.
    """
    bookings, total = await BookingService(db).list_bookings(account, filters)
    return BookingListResponse(
        bookings=[booking_to_schema(booking) for booking in bookings],
        pagination=Pagination.build(filters.page, filters.limit, total),
    )


@router.get("/{booking_id}", response_model=Booking)
async def get_booking(
    booking_id: UUID,
    account: Account = CURRENT_ACCOUNT,
    db: AsyncSession = DB_DEPENDENCY,
) -> Booking:
    booking = await BookingService(db).get_booking(booking_id, account)
    return booking_to_schema(booking)


@router.patch("/{booking_id}/status", response_model=BookingMessageResponse)
async def update_booking_status(
    booking_id: UUID,
    request: UpdateStatusRequest,
    account: Account = BOOKING_HANDLERS,
    db: AsyncSession = DB_DEPENDENCY,
) -> BookingMessageResponse:
    booking = await BookingService(db).update_status(booking_id, request.status, account)
    return BookingMessageResponse(
        message="Booking status updated successfully",
        booking=booking_to_schema(booking),
    )


@router.post("/{booking_id}/notes", response_model=InternalNotesResponse)
async def add_booking_note(
    booking_id: UUID,
    request: AddNoteRequest,
    account: Account = BOOKING_HANDLERS,
    db: AsyncSession = DB_DEPENDENCY,
) -> InternalNotesResponse:
    notes = await BookingService(db).append_note(booking_id, request.note, account)
    return InternalNotesResponse(notes=notes)


@router.patch("/{booking_id}/assign", response_model=BookingMessageResponse)
async def assign_booking_agent(
    booking_id: UUID,
    request: AssignAgentRequest,
    account: Account = BOOKING_SUPERVISORS,
    db: AsyncSession = DB_DEPENDENCY,
) -> BookingMessageResponse:
    booking = await BookingService(db).assign_agent(booking_id, request.agent_id, account)
    return BookingMessageResponse(
        message="Agent assigned successfully",
        booking=booking_to_schema(booking),
    )


@router.post("/{booking_id}/payments", response_model=BookingMessageResponse)
async def record_booking_payment(
    booking_id: UUID,
    request: RecordPaymentRequest,
    account: Account = PAYMENT_RECORDERS,
    db: AsyncSession = DB_DEPENDENCY,
) -> BookingMessageResponse:
    """Record a payment transaction; the payment status follows from the ledger."""
    booking = await BookingService(db).record_payment(booking_id, request, account)
    return BookingMessageResponse(
        message="Payment recorded successfully",
        booking=booking_to_schema(booking),
    )
