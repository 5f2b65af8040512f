"""Booking service for business logic operations."""

import logging
import secrets
from typing import Any, Dict, Iterable, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..core.config import settings
from ..core.exceptions import AuthorizationError, InternalServerError, NotFoundError, ValidationError
from ..core.observability import metrics_collector
from ..core.policy import booking_scope, can_manage_booking
from ..core.time_utils import utcnow, utctoday
from ..models.account import Account, Role
from ..models.booking import Booking, BookingSource, BookingStatus, PaymentStatus, can_transition
from ..schemas.booking import BookingFilters, CreateBookingRequest, RecordPaymentRequest
from .account_service import resolve_note_authors
from .pricing import calculate_pricing, calculate_return_date, generate_booking_reference
from .tour_service import TourService

logger = logging.getLogger(__name__)

REFERENCE_ATTEMPTS = 10


def _booking_relations():
    return (
        selectinload(Booking.customer),
        selectinload(Booking.tour_package),
        selectinload(Booking.assigned_agent),
    )


def derive_payment_status(transactions: Iterable[Dict[str, Any]], total_amount: float, current: str) -> str:
    """
    Work out the payment status from the recorded transactions.

    Completed payments net of refunds covering the total make a booking
    paid; anything above zero is partial.
    """
    paid = 0.0
    refunded = 0.0
    for transaction in transactions:
        if transaction.get("status") == "completed":
            paid += transaction["amount"]
        elif transaction.get("status") == "refunded":
            refunded += transaction["amount"]

    net = paid - refunded
    if net >= total_amount and paid > 0:
        return PaymentStatus.PAID.value
    if net > 0:
        return PaymentStatus.PARTIAL.value
    if refunded > 0:
        return PaymentStatus.REFUNDED.value
    return current


class BookingService:
    """Service for booking-related operations."""

    def __init__(self, db: AsyncSession, notifier=None):
        self.db = db
        self.notifier = notifier
        self.tour_service = TourService(db)

    async def _reference_exists(self, reference: str) -> bool:
        result = await self.db.execute(select(Booking.id).where(Booking.booking_reference == reference))
        return result.first() is not None

    async def _generate_unique_reference(self) -> str:
        for _ in range(REFERENCE_ATTEMPTS):
            reference = generate_booking_reference(settings.booking_reference_prefix, utctoday())
            if not await self._reference_exists(reference):
                return reference
            logger.warning("Booking reference collision", extra={"booking_reference": reference})
        raise InternalServerError("Could not allocate a booking reference")

    async def _load_booking(self, booking_id: UUID, *conditions) -> Optional[Booking]:
        result = await self.db.execute(
            select(Booking)
            .options(*_booking_relations())
            .where(Booking.id == booking_id, *conditions)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_booking_or_raise(self, booking_id: UUID) -> Booking:
        booking = await self._load_booking(booking_id)
        if not booking:
            raise NotFoundError("Booking", str(booking_id))
        return booking

    async def create_booking(self, customer: Account, request: CreateBookingRequest) -> Booking:
        """
        Create a booking with a frozen pricing snapshot.

        Args:
            customer: Account making the booking
            request: Booking creation request

        Returns:
            Created booking with customer, package and agent loaded

        Raises:
            NotFoundError: If the package does not exist or is inactive
        """
        package = await self.tour_service.get_tour_by_id(request.tour_package)
        if package is None:
            logger.info(
                "Booking refused, package unavailable",
                extra={"tour_package_id": str(request.tour_package), "customer_id": str(customer.id)}
            )
            raise NotFoundError(message="Tour package not found or not available")

        details = request.booking_details
        quote = calculate_pricing(
            base_price=package.base_price,
            adults=details.adults,
            children=details.children,
            group_discounts=package.group_discounts,
            currency=package.currency,
        )

        source = BookingSource.WEBSITE
        if request.source is not None and customer.role != Role.CUSTOMER.value:
            source = request.source

        booking = Booking(
            booking_reference=await self._generate_unique_reference(),
            customer_id=customer.id,
            tour_package_id=package.id,
            departure_date=details.departure_date,
            return_date=calculate_return_date(details.departure_date, package.duration_days),
            adults=details.adults,
            children=details.children,
            infants=details.infants,
            room_configuration=details.room_configuration.model_dump(),
            travelers=[traveler.model_dump(mode="json") for traveler in request.travelers],
            base_amount=quote.base_amount,
            discounts=quote.discounts,
            extras=quote.extras,
            taxes=quote.taxes,
            total_amount=quote.total_amount,
            currency=quote.currency,
            status=BookingStatus.PENDING.value,
            payment_status=PaymentStatus.PENDING.value,
            special_requests=request.special_requests,
            source=source.value,
            ota_reference=request.ota_reference,
        )

        self.db.add(booking)
        await self.db.commit()

        metrics_collector.record_booking_created(booking.source)
        logger.info(
            "Booking created",
            extra={
                "booking_id": str(booking.id),
                "booking_reference": booking.booking_reference,
                "customer_id": str(customer.id),
                "tour_package_id": str(package.id),
                "travelers": booking.total_travelers,
                "total_amount": booking.total_amount,
            }
        )

        if self.notifier is not None:
            self.notifier.booking_confirmation(booking, customer, package)

        return await self.get_booking_or_raise(booking.id)

    async def update_status(self, booking_id: UUID, new_status: str, actor: Account) -> Booking:
        """
        Move a booking to ``new_status``.

        Raises:
            ValidationError: If the status is not a booking status
            NotFoundError: If the booking does not exist
            AuthorizationError: If an agent changes a booking not assigned to them
        """
        try:
            status = BookingStatus(new_status)
        except ValueError:
            raise ValidationError(
                "Invalid status",
                details=[{"field": "status", "message": f"Must be one of: {[s.value for s in BookingStatus]}"}],
            )

        booking = await self.get_booking_or_raise(booking_id)

        if not can_manage_booking(actor, booking):
            logger.warning(
                "Status update refused for unassigned agent",
                extra={"booking_id": str(booking_id), "actor_id": str(actor.id)}
            )
            raise AuthorizationError("Not authorized to update this booking")

        previous = booking.status
        if not can_transition(previous, status):
            raise ValidationError(f"Cannot change booking status from {previous} to {status.value}")

        booking.status = status.value
        await self.db.commit()

        metrics_collector.record_status_change(status.value)
        logger.info(
            "Booking status updated",
            extra={
                "booking_id": str(booking.id),
                "from_status": previous,
                "to_status": status.value,
                "actor_id": str(actor.id),
            }
        )

        return await self.get_booking_or_raise(booking.id)

    async def append_note(self, booking_id: UUID, text: str, actor: Account) -> List[Dict[str, Any]]:
        """
        Append an internal note stamped with the actor and the current time.

        Existing notes are never edited or removed.

        Returns:
            The full ordered note list with author names resolved
        """
        booking = await self.get_booking_or_raise(booking_id)

        if not can_manage_booking(actor, booking):
            raise AuthorizationError("Not authorized to update this booking")

        booking.internal_notes = [
            *booking.internal_notes,
            {"note": text, "added_by": str(actor.id), "date": utcnow().isoformat()},
        ]
        await self.db.commit()

        logger.info(
            "Booking note added",
            extra={"booking_id": str(booking.id), "actor_id": str(actor.id), "notes": len(booking.internal_notes)}
        )

        return await resolve_note_authors(self.db, booking.internal_notes)

    async def list_my_bookings(self, account: Account) -> List[Booking]:
        """Bookings the account made as a customer, newest first."""
        result = await self.db.execute(
            select(Booking)
            .options(*_booking_relations())
            .where(Booking.customer_id == account.id)
            .order_by(Booking.created_at.desc())
        )
        return list(result.scalars().all())

    async def list_bookings(self, account: Account, filters: BookingFilters) -> Tuple[List[Booking], int]:
        """
        List bookings visible to ``account`` with optional filters.

        Returns:
            The requested page, newest first, and the total matching count
        """
        conditions = list(booking_scope(account))
        if filters.status is not None:
            conditions.append(Booking.status == filters.status.value)
        if filters.payment_status is not None:
            conditions.append(Booking.payment_status == filters.payment_status.value)
        if filters.date_from is not None:
            conditions.append(Booking.departure_date >= filters.date_from)
        if filters.date_to is not None:
            conditions.append(Booking.departure_date <= filters.date_to)
        if filters.search:
            term = filters.search.strip()
            # traveler_names is stored casefolded
            conditions.append(or_(
                Booking.booking_reference.ilike(f"%{term}%"),
                Booking.traveler_names.like(f"%{term.casefold()}%"),
            ))

        total = await self.db.scalar(select(func.count()).select_from(Booking).where(*conditions))

        result = await self.db.execute(
            select(Booking)
            .options(*_booking_relations())
            .where(*conditions)
            .order_by(Booking.created_at.desc(), Booking.id)
            .offset((filters.page - 1) * filters.limit)
            .limit(filters.limit)
        )
        return list(result.scalars().all()), total or 0

    async def get_booking(self, booking_id: UUID, account: Account) -> Booking:
        """
        Get one booking within the account's scope.

        Bookings outside the scope are reported as missing.

        Raises:
            NotFoundError: If the booking does not exist or is out of scope
        """
        booking = await self._load_booking(booking_id, *booking_scope(account))
        if not booking:
            raise NotFoundError("Booking", str(booking_id))
        return booking

    async def assign_agent(self, booking_id: UUID, agent_id: UUID, actor: Account) -> Booking:
        """
        Assign an active agent to a booking.

        Raises:
            NotFoundError: If the booking does not exist
            ValidationError: If the target is not an active agent
        """
        booking = await self.get_booking_or_raise(booking_id)

        result = await self.db.execute(select(Account).where(Account.id == agent_id))
        agent = result.scalar_one_or_none()
        if agent is None or agent.role != Role.AGENT.value or not agent.is_active:
            raise ValidationError(
                "Assigned user must be an active agent",
                details=[{"field": "agent_id", "message": "Not an active agent"}],
            )

        booking.assigned_agent_id = agent.id
        await self.db.commit()

        logger.info(
            "Booking agent assigned",
            extra={"booking_id": str(booking.id), "agent_id": str(agent.id), "actor_id": str(actor.id)}
        )

        return await self.get_booking_or_raise(booking.id)

    async def record_payment(self, booking_id: UUID, request: RecordPaymentRequest, actor: Account) -> Booking:
        """
        Append a payment transaction and refresh the payment status.

        The pricing snapshot is never touched.

        Raises:
            NotFoundError: If the booking does not exist
        """
        booking = await self.get_booking_or_raise(booking_id)

        transaction = {
            "transaction_id": request.transaction_id or f"TX{secrets.token_hex(6).upper()}",
            "amount": request.amount,
            "method": request.method,
            "status": request.status,
            "date": utcnow().isoformat(),
            "reference": request.reference,
        }
        booking.transactions = [*booking.transactions, transaction]
        booking.payment_method = request.method
        booking.payment_status = derive_payment_status(
            booking.transactions,
            booking.total_amount,
            booking.payment_status,
        )
        await self.db.commit()

        logger.info(
            "Booking payment recorded",
            extra={
                "booking_id": str(booking.id),
                "amount": request.amount,
                "payment_status": booking.payment_status,
                "actor_id": str(actor.id),
            }
        )

        return await self.get_booking_or_raise(booking.id)
