"""Unit tests for analytics aggregation."""

from datetime import date, datetime, timedelta

import pytest

from tourism_portal.core.time_utils import days_ago
from tourism_portal.models.account import Role
from tourism_portal.schemas.analytics import GroupBy, Period
from tourism_portal.services.analytics_service import (
    AnalyticsService,
    aggregate_revenue,
    bucket_key,
    conversion_rate,
    months_back,
)


def test_conversion_rate():
    assert conversion_rate(0, 0) == 0.0
    assert conversion_rate(1, 3) == 33.33
    assert conversion_rate(2, 2) == 100.0


def test_months_back_clamps_to_month_end():
    assert months_back(date(2025, 3, 31), 1) == datetime(2025, 2, 28)
    assert months_back(date(2025, 1, 15), 12) == datetime(2024, 1, 15)


def test_week_bucket_is_sunday_based():
    # 2025-01-04 is a Saturday, 2025-01-05 a Sunday
    assert bucket_key(datetime(2025, 1, 4), GroupBy.WEEK) == (2025, 0)
    assert bucket_key(datetime(2025, 1, 5), GroupBy.WEEK) == (2025, 1)


def test_aggregate_revenue_orders_buckets():
    rows = [
        (datetime(2025, 3, 2), 300.0),
        (datetime(2025, 1, 10), 100.0),
        (datetime(2025, 1, 20), 200.0),
    ]

    data = aggregate_revenue(rows, GroupBy.MONTH)

    assert data == [
        {"year": 2025, "month": 1, "total_revenue": 300.0, "booking_count": 2, "average_value": 150.0},
        {"year": 2025, "month": 3, "total_revenue": 300.0, "booking_count": 1, "average_value": 300.0},
    ]
    assert aggregate_revenue(rows, GroupBy.YEAR) == [
        {"year": 2025, "total_revenue": 600.0, "booking_count": 3, "average_value": 200.0},
    ]



@pytest.mark.asyncio
async def test_dashboard_counts_and_revenue(test_session, admin, customer, make_tour, seed_booking):
    safari = await make_tour(admin)
    beach = await make_tour(admin, name="Zanzibar Spice Island Escape", category="beach", circuit="zanzibar")
    await seed_booking(customer, safari, status="confirmed", amount=2000)
    await seed_booking(customer, safari, status="completed", amount=1000)
    await seed_booking(customer, safari, status="pending", amount=500)
    await seed_booking(customer, beach, status="cancelled", amount=800)

    dashboard = await AnalyticsService(test_session).dashboard()

    assert dashboard["bookings"] == {
        "total": 4,
        "confirmed": 1,
        "pending": 1,
        "cancelled": 1,
        "conversion_rate": 25.0,
    }
    assert dashboard["revenue"]["total"] == 3000
    assert dashboard["revenue"]["average"] == 1500
    assert dashboard["users"]["total"] == 2
    assert dashboard["popular_tours"][0]["name"] == "Serengeti Migration Safari"
    assert dashboard["popular_tours"][0]["bookings"] == 3
    assert dashboard["popular_tours"][0]["revenue"] == 3500
    assert sum(trend["bookings"] for trend in dashboard["monthly_trends"]) == 4


@pytest.mark.asyncio
async def test_dashboard_filters_on_departure_date(test_session, admin, customer, make_tour, seed_booking):
    tour = await make_tour(admin)
    soon = date.today() + timedelta(days=10)
    later = date.today() + timedelta(days=90)
    await seed_booking(customer, tour, status="confirmed", departure=soon)
    await seed_booking(customer, tour, status="confirmed", departure=later)

    dashboard = await AnalyticsService(test_session).dashboard(start_date=later - timedelta(days=1))

    assert dashboard["bookings"]["total"] == 1


@pytest.mark.asyncio
async def test_dashboard_on_empty_database(test_session):
    dashboard = await AnalyticsService(test_session).dashboard()

    assert dashboard["bookings"]["total"] == 0
    assert dashboard["bookings"]["conversion_rate"] == 0.0
    assert dashboard["revenue"] == {"total": 0.0, "average": 0.0, "currency": "USD"}
    assert dashboard["popular_tours"] == []
    assert dashboard["monthly_trends"] == []


@pytest.mark.asyncio
async def test_booking_analytics_window(test_session, admin, make_account, make_tour, seed_booking):
    customer = await make_account(Role.CUSTOMER)
    tour = await make_tour(admin)
    await seed_booking(customer, tour, status="confirmed", source="phone")
    await seed_booking(customer, tour, status="pending")
    await seed_booking(customer, tour, status="pending", created_at=days_ago(60))

    report = await AnalyticsService(test_session).booking_analytics(Period.LAST_30_DAYS)

    assert report["status_breakdown"] == [{"key": "confirmed", "count": 1}, {"key": "pending", "count": 1}]
    assert report["source_breakdown"] == [{"key": "phone", "count": 1}, {"key": "website", "count": 1}]
    assert report["circuit_analytics"] == [{"circuit": "northern", "bookings": 2, "revenue": 2000.0}]

    wider = await AnalyticsService(test_session).booking_analytics(Period.LAST_90_DAYS)
    assert sum(row["count"] for row in wider["status_breakdown"]) == 3


@pytest.mark.asyncio
async def test_revenue_analytics_excludes_unearned(test_session, admin, customer, make_tour, seed_booking):
    tour = await make_tour(admin)
    await seed_booking(customer, tour, status="confirmed", amount=1000, created_at=datetime(2025, 1, 5))
    await seed_booking(customer, tour, status="in-progress", amount=500, created_at=datetime(2025, 1, 25))
    await seed_booking(customer, tour, status="pending", amount=9000, created_at=datetime(2025, 1, 26))
    await seed_booking(customer, tour, status="completed", amount=700, created_at=datetime(2025, 2, 1))

    report = await AnalyticsService(test_session).revenue_analytics(
        start_date=date(2025, 1, 1),
        end_date=date(2025, 1, 31),
        group_by=GroupBy.MONTH,
    )

    assert report["data"] == [
        {"year": 2025, "month": 1, "total_revenue": 1500.0, "booking_count": 2, "average_value": 750.0},
    ]
