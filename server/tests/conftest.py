"""Test configuration and fixtures."""

import os

# Settings are read at import time
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("JWT_SECRET", "test-secret")

from datetime import date, timedelta  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from tourism_portal.core.database import Database  # noqa: E402
from tourism_portal.core.security import create_access_token, hash_password  # noqa: E402
from tourism_portal.main import create_app  # noqa: E402
from tourism_portal.models import *  # noqa: F403,E402 - Import all models
from tourism_portal.models.account import Account, Role  # noqa: E402
from tourism_portal.models.booking import Booking  # noqa: E402
from tourism_portal.schemas.tour_package import CreateTourPackageRequest  # noqa: E402
from tourism_portal.services.notification_service import NotificationDispatcher  # noqa: E402
from tourism_portal.services.tour_service import TourService  # noqa: E402

# Test database URL (in-memory SQLite for speed)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

TEST_PASSWORD = "secret123"


class RecordingBackend:
    """Email backend that keeps sent messages in memory."""

    def __init__(self):
        self.sent = []

    async def send(self, email):
        self.sent.append(email)


@pytest_asyncio.fixture(scope="function")
async def test_database():
    """Create a test database with all tables."""
    database = Database(TEST_DATABASE_URL)
    database.connect()
    await database.create_all()

    yield database

    await database.dispose()


@pytest_asyncio.fixture(scope="function")
async def test_session(test_database):
    """Create a test database session."""
    async with test_database.session_factory()() as session:
        yield session


@pytest.fixture
def email_backend():
    return RecordingBackend()


@pytest.fixture
def notifier(email_backend):
    """Notification dispatcher delivering to memory, with no retry delay."""
    return NotificationDispatcher(backend=email_backend, max_attempts=3, retry_delay_seconds=0)


@pytest_asyncio.fixture(scope="function")
async def test_app(test_database, notifier):
    """Create the application around the test database; the lifespan is not run."""
    yield create_app(database=test_database, notifier=notifier)


@pytest_asyncio.fixture(scope="function")
async def test_client(test_app):
    """Create a test HTTP client."""
    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def make_account(test_session):
    """Factory persisting an account with the shared test password."""
    counter = {"n": 0}

    async def factory(role: Role = Role.CUSTOMER, **overrides) -> Account:
        counter["n"] += 1
        fields = {
            "first_name": "Test",
            "last_name": f"{role.value.title()}{counter['n']}",
            "email": f"{role.value}{counter['n']}@example.com",
            "password_hash": hash_password(TEST_PASSWORD),
            "role": role.value,
            "country": "Tanzania",
        }
        fields.update(overrides)
        account = Account(**fields)
        test_session.add(account)
        await test_session.commit()
        await test_session.refresh(account)
        return account

    return factory


@pytest.fixture
def test_password():
    return TEST_PASSWORD


@pytest.fixture
def auth_headers():
    """Build bearer headers for an account."""

    def build(account: Account) -> dict:
        return {"Authorization": f"Bearer {create_access_token(account.id)}"}

    return build


@pytest_asyncio.fixture
async def admin(make_account):
    return await make_account(Role.ADMIN)


@pytest_asyncio.fixture
async def customer(make_account):
    return await make_account(Role.CUSTOMER)


@pytest.fixture
def sample_tour_data():
    """Sample tour package payload for testing."""
    return {
        "name": "Serengeti Migration Safari",
        "description": "Follow the great wildebeest migration across the Serengeti plains",
        "short_description": "Five days with the great migration",
        "category": "safari",
        "circuit": "northern",
        "destinations": [
            {"name": "Serengeti", "description": "Endless plains", "activities": ["game drives"], "duration": 3},
            {"name": "Ngorongoro", "description": "Crater floor wildlife", "duration": 2},
        ],
        "duration": {"days": 5, "nights": 4},
        "pricing": {
            "base_price": 1000,
            "currency": "USD",
            "group_discounts": [
                {"min_size": 4, "discount": 10},
                {"min_size": 8, "discount": 15},
            ],
        },
        "availability": {"max_group_size": 12, "min_group_size": 1},
    }


@pytest.fixture
def make_tour(test_session, sample_tour_data):
    """Factory persisting a tour package through the service."""

    async def factory(creator: Account, **overrides):
        data = {**sample_tour_data, **overrides}
        return await TourService(test_session).create_tour(CreateTourPackageRequest(**data), creator)

    return factory


@pytest.fixture
def sample_booking_data():
    """Factory for a booking payload departing in a month."""

    def build(tour_id, adults: int = 2, children: int = 0, **overrides):
        data = {
            "tour_package": str(tour_id),
            "booking_details": {
                "departure_date": (date.today() + timedelta(days=30)).isoformat(),
                "adults": adults,
                "children": children,
            },
            "travelers": [{"first_name": "Amani", "last_name": "Mushi"}],
        }
        data.update(overrides)
        return data

    return build


@pytest.fixture
def seed_booking(test_session):
    """Insert a booking row directly with a chosen status, amount and dates."""
    counter = {"n": 0}

    async def factory(customer, tour, status="pending", amount=1000.0, created_at=None, departure=None, source="website"):
        counter["n"] += 1
        departure = departure or date.today() + timedelta(days=30)
        booking = Booking(
            booking_reference=f"EA000000T{counter['n']:03d}",
            customer_id=customer.id,
            tour_package_id=tour.id,
            departure_date=departure,
            return_date=departure + timedelta(days=tour.duration_days),
            adults=1,
            base_amount=amount,
            total_amount=amount,
            status=status,
            source=source,
        )
        if created_at is not None:
            booking.created_at = created_at
        test_session.add(booking)
        await test_session.commit()
        return booking

    return factory
