"""Reporting Pydantic schemas."""

from datetime import date
from enum import Enum
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class Period(str, Enum):
    """Trailing window for booking analytics."""
    LAST_7_DAYS = "7d"
    LAST_30_DAYS = "30d"
    LAST_90_DAYS = "90d"
    LAST_YEAR = "1y"

    @property
    def days(self) -> int:
        return {"7d": 7, "30d": 30, "90d": 90, "1y": 365}[self.value]


class GroupBy(str, Enum):
    """Time bucket for revenue analytics."""
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"


class BookingCounts(BaseModel):
    total: int
    confirmed: int
    pending: int
    cancelled: int
    conversion_rate: float = Field(..., description="Confirmed / total as a percentage")


class RevenueSummary(BaseModel):
    total: float
    average: float
    currency: str = "USD"


class UserCounts(BaseModel):
    total: int
    new_this_month: int


class PopularTour(BaseModel):
    id: UUID
    name: str
    bookings: int
    revenue: float


class MonthlyTrend(BaseModel):
    year: int
    month: int
    bookings: int
    revenue: float


class DashboardResponse(BaseModel):
    bookings: BookingCounts
    revenue: RevenueSummary
    users: UserCounts
    popular_tours: List[PopularTour]
    monthly_trends: List[MonthlyTrend]


class CountBucket(BaseModel):
    key: Optional[str] = Field(None, description="Grouping value")
    count: int


class CircuitBucket(BaseModel):
    circuit: Optional[str] = None
    bookings: int
    revenue: float


class BookingAnalyticsResponse(BaseModel):
    period: Period
    status_breakdown: List[CountBucket]
    source_breakdown: List[CountBucket]
    circuit_analytics: List[CircuitBucket]


class RevenueBucket(BaseModel):
    year: int
    month: Optional[int] = None
    week: Optional[int] = None
    day: Optional[int] = None
    total_revenue: float
    booking_count: int
    average_value: float


class RevenueAnalyticsResponse(BaseModel):
    group_by: GroupBy
    data: List[RevenueBucket]


class DateRange(BaseModel):
    start_date: Optional[date] = None
    end_date: Optional[date] = None


class RevenueQuery(DateRange):
    group_by: GroupBy = GroupBy.MONTH


class PeriodQuery(BaseModel):
    period: Period = Period.LAST_30_DAYS
