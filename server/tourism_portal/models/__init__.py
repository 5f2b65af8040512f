"""Models module exporting all database models."""

from .account import Account, Role
from .booking import Booking, BookingSource, BookingStatus, PaymentStatus
from .campaign import Campaign, CampaignType
from .tour_package import Category, Circuit, TourPackage

__all__ = [
    # Accounts
    "Account",
    "Role",

    # Catalog
    "TourPackage",
    "Category",
    "Circuit",

    # Bookings
    "Booking",
    "BookingStatus",
    "BookingSource",
    "PaymentStatus",

    # CRM
    "Campaign",
    "CampaignType",
]
