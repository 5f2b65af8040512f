"""Service layer package."""

from .account_service import AccountService
from .analytics_service import AnalyticsService
from .booking_service import BookingService
from .crm_service import CRMService
from .notification_service import NotificationDispatcher, SMTPEmailBackend
from .tour_service import TourService

__all__ = [
    "AccountService",
    "AnalyticsService",
    "BookingService",
    "CRMService",
    "NotificationDispatcher",
    "SMTPEmailBackend",
    "TourService",
]
