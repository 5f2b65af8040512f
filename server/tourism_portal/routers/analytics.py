"""Analytics router for management dashboards."""

import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.database import get_db
from ..core.dependencies import require_roles
from ..models.account import Account, Role
from ..schemas.analytics import (
    BookingAnalyticsResponse,
    DashboardResponse,
    DateRange,
    PeriodQuery,
    RevenueAnalyticsResponse,
    RevenueQuery,
)
from ..services.analytics_service import AnalyticsService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/analytics", tags=["analytics"])

# Define dependencies to avoid B008 linting errors
DB_DEPENDENCY = Depends(get_db)
DATE_RANGE_QUERY = Query()
PERIOD_QUERY = Query()
REVENUE_QUERY = Query()
ANALYSTS = Depends(require_roles(Role.ADMIN, Role.MANAGER, Role.FINANCE))


@router.get("/dashboard", response_model=DashboardResponse)
async def dashboard(
    date_range: DateRange = DATE_RANGE_QUERY,
    account: Account = ANALYSTS,
    db: AsyncSession = DB_DEPENDENCY,
) -> DashboardResponse:
    """
    Overview of bookings, revenue, users and popular tours.

    The optional date range applies to departure dates.
    """
    data = await AnalyticsService(db).dashboard(date_range.start_date, date_range.end_date)
    return DashboardResponse(**data)


@router.get("/bookings", response_model=BookingAnalyticsResponse)
async def booking_analytics(
    query: PeriodQuery = PERIOD_QUERY,
    account: Account = ANALYSTS,
    db: AsyncSession = DB_DEPENDENCY,
) -> BookingAnalyticsResponse:
    data = await AnalyticsService(db).booking_analytics(query.period)
    return BookingAnalyticsResponse(**data)


@router.get("/revenue", response_model=RevenueAnalyticsResponse)
async def revenue_analytics(
    query: RevenueQuery = REVENUE_QUERY,
    account: Account = ANALYSTS,
    db: AsyncSession = DB_DEPENDENCY,
) -> RevenueAnalyticsResponse:
    """Revenue per day, week, month or year, by booking creation date."""
    data = await AnalyticsService(db).revenue_analytics(query.start_date, query.end_date, query.group_by)
    return RevenueAnalyticsResponse(**data)
