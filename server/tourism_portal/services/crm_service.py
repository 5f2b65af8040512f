"""CRM views over customer accounts and their bookings."""

import logging
from collections import Counter
from typing import Any, Dict, List, Tuple
from uuid import UUID

from sqlalchemy import and_, exists, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..core.config import settings
from ..core.exceptions import NotFoundError
from ..core.time_utils import days_ago, to_naive_utc, utcnow
from ..models.account import Account, Role
from ..models.booking import Booking
from ..models.campaign import Campaign
from ..schemas.crm import CreateCampaignRequest, CustomerFilters
from .account_service import resolve_note_authors
from .updates import merge_document

logger = logging.getLogger(__name__)

RECENT_BOOKINGS_LIMIT = 5
TOP_COUNTRIES_LIMIT = 10


def _booking_totals():
    """Per-customer booking count, lifetime spend and latest booking time."""
    return (
        select(
            Booking.customer_id.label("customer_id"),
            func.count(Booking.id).label("total_bookings"),
            func.sum(Booking.total_amount).label("total_spent"),
            func.max(Booking.created_at).label("last_booking_date"),
        )
        .group_by(Booking.customer_id)
        .subquery()
    )


def customer_statistics(bookings: List[Booking]) -> Dict[str, Any]:
    """
    Summarise a customer's booking history.

    ``bookings`` must be newest first with their packages loaded.
    """
    total_bookings = len(bookings)
    total_spent = sum(booking.total_amount for booking in bookings)
    circuits = Counter(
        booking.tour_package.circuit
        for booking in bookings
        if booking.tour_package is not None and booking.tour_package.circuit
    )

    return {
        "total_bookings": total_bookings,
        "total_spent": total_spent,
        "average_booking_value": total_spent / total_bookings if total_bookings else 0,
        "bookings_by_status": dict(Counter(booking.status for booking in bookings)),
        "preferred_circuits": dict(circuits),
        "last_booking_date": bookings[0].created_at if bookings else None,
    }


class CRMService:
    """Service for customer relationship views and campaigns."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _get_customer(self, customer_id: UUID) -> Account:
        result = await self.db.execute(
            select(Account).where(Account.id == customer_id, Account.role == Role.CUSTOMER.value)
        )
        customer = result.scalar_one_or_none()
        if customer is None:
            raise NotFoundError("Customer", str(customer_id))
        return customer

    async def list_customers(self, filters: CustomerFilters) -> Tuple[List[Dict[str, Any]], int]:
        """
        List customer accounts with their lifetime booking totals.

        Returns:
            Rows of ``{"account", "total_bookings", "total_spent",
            "last_booking_date"}``, newest account first, and the total count
        """
        conditions = [Account.role == Role.CUSTOMER.value]
        if filters.search:
            pattern = f"%{filters.search}%"
            conditions.append(or_(
                Account.first_name.ilike(pattern),
                Account.last_name.ilike(pattern),
                Account.email.ilike(pattern),
            ))
        if filters.country:
            conditions.append(Account.country == filters.country)
        if filters.last_login_days:
            conditions.append(Account.last_login >= days_ago(filters.last_login_days))
        if filters.booking_status is not None:
            conditions.append(exists().where(and_(
                Booking.customer_id == Account.id,
                Booking.status == filters.booking_status.value,
            )))

        total = await self.db.scalar(select(func.count()).select_from(Account).where(*conditions))

        totals = _booking_totals()
        result = await self.db.execute(
            select(Account, totals.c.total_bookings, totals.c.total_spent, totals.c.last_booking_date)
            .outerjoin(totals, totals.c.customer_id == Account.id)
            .where(*conditions)
            .order_by(Account.created_at.desc(), Account.id)
            .offset((filters.page - 1) * filters.limit)
            .limit(filters.limit)
        )

        rows = [
            {
                "account": account,
                "total_bookings": total_bookings or 0,
                "total_spent": float(total_spent or 0),
                "last_booking_date": last_booking_date,
            }
            for account, total_bookings, total_spent, last_booking_date in result.all()
        ]
        return rows, total or 0

    async def customer_detail(self, customer_id: UUID) -> Dict[str, Any]:
        """
        Customer profile, booking statistics and the most recent bookings.

        Raises:
            NotFoundError: If no customer account has this ID
        """
        customer = await self._get_customer(customer_id)

        result = await self.db.execute(
            select(Booking)
            .options(
                selectinload(Booking.customer),
                selectinload(Booking.tour_package),
                selectinload(Booking.assigned_agent),
            )
            .where(Booking.customer_id == customer.id)
            .order_by(Booking.created_at.desc())
        )
        bookings = list(result.scalars().all())

        return {
            "customer": customer,
            "statistics": customer_statistics(bookings),
            "recent_bookings": bookings[:RECENT_BOOKINGS_LIMIT],
        }

    async def add_customer_note(self, customer_id: UUID, note: str, note_type: str, actor: Account) -> List[Dict[str, Any]]:
        """Append a note to the customer's profile; existing notes are kept as they are."""
        customer = await self._get_customer(customer_id)

        notes = list((customer.profile or {}).get("notes") or [])
        notes.append({
            "note": note,
            "type": note_type,
            "added_by": str(actor.id),
            "date": utcnow().isoformat(),
        })
        customer.profile = merge_document(customer.profile, {"notes": notes})
        await self.db.commit()

        logger.info(
            "Customer note added",
            extra={"customer_id": str(customer.id), "actor_id": str(actor.id), "type": note_type}
        )

        return await resolve_note_authors(self.db, notes)

    async def segments_overview(self) -> Dict[str, Any]:
        """Counts of high-value, repeat, recent and active customers plus top countries."""
        totals = _booking_totals()
        customer_totals = (
            select(totals)
            .join(Account, Account.id == totals.c.customer_id)
            .where(Account.role == Role.CUSTOMER.value)
            .subquery()
        )

        high_value = await self.db.scalar(
            select(func.count()).select_from(customer_totals)
            .where(customer_totals.c.total_spent >= settings.high_value_threshold)
        )
        repeat = await self.db.scalar(
            select(func.count()).select_from(customer_totals)
            .where(customer_totals.c.total_bookings > 1)
        )
        active = await self.db.scalar(
            select(func.count()).select_from(customer_totals)
            .where(customer_totals.c.last_booking_date >= days_ago(settings.active_customer_days))
        )
        recent = await self.db.scalar(
            select(func.count()).select_from(Account)
            .where(
                Account.role == Role.CUSTOMER.value,
                Account.created_at >= days_ago(settings.recent_customer_days),
            )
        )

        countries = await self.db.execute(
            select(Account.country, func.count(Account.id).label("count"))
            .where(Account.role == Role.CUSTOMER.value, Account.country.is_not(None))
            .group_by(Account.country)
            .order_by(func.count(Account.id).desc(), Account.country)
            .limit(TOP_COUNTRIES_LIMIT)
        )

        return {
            "segments": {
                "high_value": high_value or 0,
                "repeat": repeat or 0,
                "recent": recent or 0,
                "active": active or 0,
            },
            "customers_by_country": [
                {"country": country, "count": count} for country, count in countries.all()
            ],
        }

    async def create_campaign(self, request: CreateCampaignRequest, actor: Account) -> Campaign:
        """Persist a scheduled campaign; delivery is not performed here."""
        campaign = Campaign(
            name=request.name,
            type=request.type.value,
            subject=request.subject,
            message=request.message,
            target_segment=request.target_segment,
            scheduled_date=to_naive_utc(request.scheduled_date) if request.scheduled_date else utcnow(),
            status="scheduled",
            created_by_id=actor.id,
        )
        self.db.add(campaign)
        await self.db.commit()
        await self.db.refresh(campaign)

        logger.info(
            "Campaign created",
            extra={"campaign_id": str(campaign.id), "type": campaign.type, "actor_id": str(actor.id)}
        )
        return campaign

    async def list_campaigns(self, page: int = 1, limit: int = 20) -> Tuple[List[Campaign], int]:
        total = await self.db.scalar(select(func.count()).select_from(Campaign))
        result = await self.db.execute(
            select(Campaign)
            .order_by(Campaign.created_at.desc(), Campaign.id)
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return list(result.scalars().all()), total or 0
