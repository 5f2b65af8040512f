"""Pydantic schemas for request/response validation."""

from .account import *  # noqa: F403
from .analytics import *  # noqa: F403
from .booking import *  # noqa: F403
from .common import *  # noqa: F403
from .crm import *  # noqa: F403
from .health import *  # noqa: F403
from .tour_package import *  # noqa: F403
