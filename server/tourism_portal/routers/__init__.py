"""FastAPI routers package."""

from .analytics import router as analytics_router
from .auth import router as auth_router
from .bookings import router as bookings_router
from .crm import router as crm_router
from .metrics import router as metrics_router
from .tours import router as tours_router
from .users import router as users_router

__all__ = [
    "analytics_router",
    "auth_router",
    "bookings_router",
    "crm_router",
    "metrics_router",
    "tours_router",
    "users_router",
]
