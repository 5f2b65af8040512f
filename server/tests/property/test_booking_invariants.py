"""Property-based tests for booking price and reference invariants."""

import re
from datetime import date, datetime

import pytest
from hypothesis import assume, given
from hypothesis import strategies as st

from tourism_portal.schemas.analytics import GroupBy
from tourism_portal.services.analytics_service import aggregate_revenue
from tourism_portal.services.pricing import (
    best_group_discount,
    calculate_pricing,
    calculate_return_date,
    generate_booking_reference,
)

pytestmark = pytest.mark.property

# Strategies for generating test data
prices = st.integers(min_value=0, max_value=20000)
adult_counts = st.integers(min_value=1, max_value=50)
child_counts = st.integers(min_value=0, max_value=50)
tiers = st.lists(
    st.fixed_dictionaries({
        "min_size": st.integers(min_value=2, max_value=60),
        "discount": st.integers(min_value=0, max_value=50),
    }),
    max_size=6,
)
dates = st.dates(min_value=date(2000, 1, 1), max_value=date(2099, 12, 31))


@given(base_price=prices, adults=adult_counts, children=child_counts, group_discounts=tiers)
def test_total_never_exceeds_base(base_price, adults, children, group_discounts):
    """The total is the base less at most one discount, never negative."""
    quote = calculate_pricing(base_price, adults, children, group_discounts)

    assert quote.base_amount == base_price * (adults + children)
    assert 0 <= quote.total_amount <= quote.base_amount
    assert len(quote.discounts) <= 1
    assert quote.total_amount == pytest.approx(quote.base_amount - quote.discount_amount)


@given(adults=adult_counts, children=child_counts, group_discounts=tiers)
def test_chosen_tier_is_satisfied_and_largest(adults, children, group_discounts):
    party = adults + children
    tier = best_group_discount(group_discounts, party)

    satisfied = [t for t in group_discounts if t["min_size"] <= party]
    if not satisfied:
        assert tier is None
    else:
        assert tier["min_size"] <= party
        assert tier["discount"] == max(t["discount"] for t in satisfied)


@given(base_price=st.integers(min_value=1, max_value=20000), adults=adult_counts, children=child_counts, group_discounts=tiers)
def test_children_and_adults_priced_alike(base_price, adults, children, group_discounts):
    assume(children > 0)

    with_children = calculate_pricing(base_price, adults, children, group_discounts)
    all_adults = calculate_pricing(base_price, adults + children, 0, group_discounts)

    assert with_children.total_amount == pytest.approx(all_adults.total_amount)


@given(departure=dates, days=st.integers(min_value=1, max_value=60))
def test_return_date_is_calendar_offset(departure, days):
    return_date = calculate_return_date(departure, days)

    assert (return_date - departure).days == days


@given(today=dates)
def test_reference_format(today):
    reference = generate_booking_reference("EA", today)

    assert re.fullmatch(r"EA\d{6}[A-Z0-9]{4}", reference)
    assert reference[2:8] == today.strftime("%y%m%d")


@given(amounts=st.lists(st.integers(min_value=0, max_value=100000), min_size=1, max_size=30), data=st.data())
def test_revenue_buckets_preserve_totals(amounts, data):
    created = data.draw(st.lists(dates, min_size=len(amounts), max_size=len(amounts)))
    rows = [(datetime(d.year, d.month, d.day), float(a)) for a, d in zip(amounts, created)]

    for group_by in GroupBy:
        buckets = aggregate_revenue(rows, group_by)
        assert sum(bucket["booking_count"] for bucket in buckets) == len(rows)
        assert sum(bucket["total_revenue"] for bucket in buckets) == pytest.approx(sum(amounts))
