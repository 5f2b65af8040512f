"""Booking price, return date and reference computation."""

import secrets
import string
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any, Dict, Iterable, List, Mapping, Optional

REFERENCE_ALPHABET = string.ascii_uppercase + string.digits
REFERENCE_SUFFIX_LENGTH = 4


@dataclass
class PriceQuote:
    """Frozen cost breakdown for a booking."""

    base_amount: float
    total_amount: float
    currency: str
    discounts: List[Dict[str, Any]] = field(default_factory=list)
    extras: List[Dict[str, Any]] = field(default_factory=list)
    taxes: Optional[Dict[str, Any]] = None

    @property
    def discount_amount(self) -> float:
        return sum(d["amount"] for d in self.discounts)


def best_group_discount(tiers: Iterable[Mapping[str, Any]], total_travelers: int) -> Optional[Mapping[str, Any]]:
    """
    Pick the tier with the largest discount among those the party satisfies.

    Tiers are compared on ``discount`` rather than ``min_size``; on equal
    discounts the first tier in stored order wins.
    """
    satisfied = [tier for tier in tiers if tier["min_size"] <= total_travelers]
    if not satisfied:
        return None
    # sorted() is stable, so equal discounts keep their stored order
    return sorted(satisfied, key=lambda tier: tier["discount"], reverse=True)[0]


def calculate_pricing(
    base_price: float,
    adults: int,
    children: int = 0,
    group_discounts: Iterable[Mapping[str, Any]] = (),
    currency: str = "USD",
) -> PriceQuote:
    """
    Price a booking from the package's base price and discount tiers.

    Infants travel free and are not passed in.

    Args:
        base_price: Per-traveler package price
        adults: Number of adults
        children: Number of children
        group_discounts: Package tiers as ``{"min_size", "discount"}`` mappings
        currency: Package currency

    Returns:
        PriceQuote: base amount, at most one group discount and the total
    """
    total_travelers = adults + children
    base_amount = base_price * total_travelers

    discounts = []
    tier = best_group_discount(group_discounts, total_travelers)
    if tier is not None:
        amount = base_amount * (tier["discount"] / 100)
        if amount > 0:
            discounts.append({
                "type": "group",
                "amount": amount,
                "description": f"Group discount for {total_travelers} travelers",
            })

    total_amount = base_amount - sum(d["amount"] for d in discounts)

    return PriceQuote(
        base_amount=base_amount,
        total_amount=total_amount,
        currency=currency,
        discounts=discounts,
    )


def calculate_return_date(departure_date: date, duration_days: int) -> date:
    """Return date is a plain calendar offset from departure."""
    return departure_date + timedelta(days=duration_days)


def generate_booking_reference(prefix: str, today: date) -> str:
    """
    Build a reference like ``EA2503140K7Q``.

    Prefix, two-digit year, month and day, then four random uppercase
    alphanumerics.
    """
    suffix = "".join(secrets.choice(REFERENCE_ALPHABET) for _ in range(REFERENCE_SUFFIX_LENGTH))
    return f"{prefix}{today:%y%m%d}{suffix}"
