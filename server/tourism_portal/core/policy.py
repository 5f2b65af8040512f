"""Role-based row scoping for bookings."""

from typing import List

from sqlalchemy import ColumnElement

from ..models.account import Account, Role
from ..models.booking import Booking


def booking_scope(account: Account) -> List[ColumnElement[bool]]:
    """
    Return the implicit filters an account's role puts on booking queries.

    Customers see their own bookings and agents the ones assigned to them.
    Every other staff role sees all bookings.
    """
    if account.role == Role.CUSTOMER.value:
        return [Booking.customer_id == account.id]
    if account.role == Role.AGENT.value:
        return [Booking.assigned_agent_id == account.id]
    return []


def can_manage_booking(account: Account, booking: Booking) -> bool:
    """Agents may only change bookings assigned to them."""
    if account.role == Role.AGENT.value:
        return booking.assigned_agent_id == account.id
    return True
