"""Read-side aggregation over bookings and accounts for dashboards."""

import calendar
import logging
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.time_utils import days_ago, end_of_day, start_of_day, utcnow
from ..models.account import Account
from ..models.booking import Booking, BookingStatus
from ..models.tour_package import TourPackage
from ..schemas.analytics import GroupBy, Period

logger = logging.getLogger(__name__)

EARNING_STATUSES = (BookingStatus.CONFIRMED.value, BookingStatus.COMPLETED.value)
REVENUE_STATUSES = EARNING_STATUSES + (BookingStatus.IN_PROGRESS.value,)
POPULAR_TOURS_LIMIT = 5
TREND_MONTHS = 12


def conversion_rate(confirmed: int, total: int) -> float:
    return round(confirmed / total * 100, 2) if total else 0.0


def months_back(today: date, months: int) -> datetime:
    """Midnight on the same day ``months`` calendar months earlier (clamped to month end)."""
    month_index = today.year * 12 + (today.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    day = min(today.day, calendar.monthrange(year, month)[1])
    return datetime(year, month, day)


def bucket_key(created_at: datetime, group_by: GroupBy) -> Tuple[int, ...]:
    if group_by == GroupBy.DAY:
        return (created_at.year, created_at.month, created_at.day)
    if group_by == GroupBy.WEEK:
        # Sunday-based week of the year, 0-53
        return (created_at.year, int(created_at.strftime("%U")))
    if group_by == GroupBy.YEAR:
        return (created_at.year,)
    return (created_at.year, created_at.month)


def bucket_fields(key: Tuple[int, ...], group_by: GroupBy) -> Dict[str, int]:
    if group_by == GroupBy.DAY:
        return {"year": key[0], "month": key[1], "day": key[2]}
    if group_by == GroupBy.WEEK:
        return {"year": key[0], "week": key[1]}
    if group_by == GroupBy.YEAR:
        return {"year": key[0]}
    return {"year": key[0], "month": key[1]}


def aggregate_revenue(rows: Iterable[Tuple[datetime, float]], group_by: GroupBy) -> List[Dict[str, Any]]:
    """
    Sum booking totals into time buckets.

    Args:
        rows: ``(created_at, total_amount)`` pairs
        group_by: Bucket size

    Returns:
        Buckets in chronological order with total, count and average
    """
    buckets: Dict[Tuple[int, ...], List[float]] = {}
    for created_at, amount in rows:
        buckets.setdefault(bucket_key(created_at, group_by), []).append(amount)

    data = []
    for key in sorted(buckets):
        amounts = buckets[key]
        total = sum(amounts)
        data.append({
            **bucket_fields(key, group_by),
            "total_revenue": total,
            "booking_count": len(amounts),
            "average_value": total / len(amounts),
        })
    return data


class AnalyticsService:
    """Service for dashboard and report aggregation."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _status_counts(self, conditions: list) -> Dict[str, int]:
        result = await self.db.execute(
            select(Booking.status, func.count(Booking.id)).where(*conditions).group_by(Booking.status)
        )
        return {status: count for status, count in result.all()}

    async def dashboard(self, start_date: Optional[date] = None, end_date: Optional[date] = None) -> Dict[str, Any]:
        """
        Build the overview dashboard.

        Booking counts, revenue and popular tours are filtered on departure
        date; monthly trends always cover the trailing twelve months of
        creation dates.
        """
        conditions = []
        if start_date is not None:
            conditions.append(Booking.departure_date >= start_date)
        if end_date is not None:
            conditions.append(Booking.departure_date <= end_date)

        by_status = await self._status_counts(conditions)
        total = sum(by_status.values())
        confirmed = by_status.get(BookingStatus.CONFIRMED.value, 0)

        revenue_row = (await self.db.execute(
            select(func.coalesce(func.sum(Booking.total_amount), 0), func.avg(Booking.total_amount))
            .where(*conditions, Booking.status.in_(EARNING_STATUSES))
        )).one()

        popular = await self.db.execute(
            select(
                TourPackage.id,
                TourPackage.name,
                func.count(Booking.id).label("bookings"),
                func.coalesce(func.sum(Booking.total_amount), 0).label("revenue"),
            )
            .select_from(Booking)
            .join(TourPackage, TourPackage.id == Booking.tour_package_id)
            .where(*conditions)
            .group_by(TourPackage.id, TourPackage.name)
            .order_by(func.count(Booking.id).desc(), TourPackage.name)
            .limit(POPULAR_TOURS_LIMIT)
        )

        now = utcnow()
        trend_rows = await self.db.execute(
            select(Booking.created_at, Booking.total_amount)
            .where(Booking.created_at >= months_back(now.date(), TREND_MONTHS))
        )
        monthly_trends = [
            {
                "year": bucket["year"],
                "month": bucket["month"],
                "bookings": bucket["booking_count"],
                "revenue": bucket["total_revenue"],
            }
            for bucket in aggregate_revenue(trend_rows.all(), GroupBy.MONTH)
        ]

        total_users = await self.db.scalar(select(func.count()).select_from(Account))
        new_users = await self.db.scalar(
            select(func.count()).select_from(Account)
            .where(Account.created_at >= datetime(now.year, now.month, 1))
        )

        return {
            "bookings": {
                "total": total,
                "confirmed": confirmed,
                "pending": by_status.get(BookingStatus.PENDING.value, 0),
                "cancelled": by_status.get(BookingStatus.CANCELLED.value, 0),
                "conversion_rate": conversion_rate(confirmed, total),
            },
            "revenue": {
                "total": float(revenue_row[0] or 0),
                "average": float(revenue_row[1] or 0),
                "currency": "USD",
            },
            "users": {
                "total": total_users or 0,
                "new_this_month": new_users or 0,
            },
            "popular_tours": [
                {"id": row.id, "name": row.name, "bookings": row.bookings, "revenue": float(row.revenue)}
                for row in popular.all()
            ],
            "monthly_trends": monthly_trends,
        }

    async def booking_analytics(self, period: Period = Period.LAST_30_DAYS) -> Dict[str, Any]:
        """Status, source and circuit breakdowns over a trailing window of creation dates."""
        since = days_ago(period.days)
        recent = Booking.created_at >= since

        by_status = await self._status_counts([recent])

        sources = await self.db.execute(
            select(Booking.source, func.count(Booking.id)).where(recent).group_by(Booking.source)
        )

        circuits = await self.db.execute(
            select(
                TourPackage.circuit,
                func.count(Booking.id),
                func.coalesce(func.sum(Booking.total_amount), 0),
            )
            .select_from(Booking)
            .join(TourPackage, TourPackage.id == Booking.tour_package_id)
            .where(recent)
            .group_by(TourPackage.circuit)
            .order_by(TourPackage.circuit)
        )

        return {
            "period": period,
            "status_breakdown": [
                {"key": status, "count": count} for status, count in sorted(by_status.items())
            ],
            "source_breakdown": [
                {"key": source, "count": count} for source, count in sorted(sources.all())
            ],
            "circuit_analytics": [
                {"circuit": circuit, "bookings": count, "revenue": float(revenue)}
                for circuit, count, revenue in circuits.all()
            ],
        }

    async def revenue_analytics(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        group_by: GroupBy = GroupBy.MONTH,
    ) -> Dict[str, Any]:
        """Revenue per time bucket for confirmed, completed and in-progress bookings."""
        conditions = [Booking.status.in_(REVENUE_STATUSES)]
        if start_date is not None:
            conditions.append(Booking.created_at >= start_of_day(start_date))
        if end_date is not None:
            conditions.append(Booking.created_at <= end_of_day(end_date))

        rows = await self.db.execute(select(Booking.created_at, Booking.total_amount).where(*conditions))
        data = aggregate_revenue(rows.all(), group_by)

        logger.debug(
            "Revenue analytics computed",
            extra={"group_by": group_by.value, "buckets": len(data)}
        )

        return {"group_by": group_by, "data": data}
