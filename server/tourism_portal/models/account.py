"""Account model definition."""

from datetime import datetime
from enum import Enum
from uuid import UUID, uuid4

from sqlalchemy import JSON, Boolean, DateTime, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, validates

from ..core.database import Base
from ..core.time_utils import utcnow


class Role(str, Enum):
    """Account role enumeration."""
    ADMIN = "admin"
    MANAGER = "manager"
    AGENT = "agent"
    CUSTOMER = "customer"
    HR = "hr"
    FINANCE = "finance"
    MARKETING = "marketing"


def default_preferences() -> dict:
    return {
        "language": "en",
        "currency": "USD",
        "notifications": {"email": True, "sms": False},
    }


class Account(Base):
    """Account entity representing a customer or staff member."""

    __tablename__ = "accounts"

    # Primary key
    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    # Identity
    first_name: Mapped[str] = mapped_column(String(50), nullable=False)
    last_name: Mapped[str] = mapped_column(String(50), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default=Role.CUSTOMER.value, index=True)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    country: Mapped[str | None] = mapped_column(String(100), nullable=True, index=True)

    # Nested documents
    preferences: Mapped[dict] = mapped_column(JSON, nullable=False, default=default_preferences)
    profile: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)

    # Lifecycle
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    email_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    last_login: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    reset_password_token: Mapped[str | None] = mapped_column(String(128), nullable=True, index=True)
    reset_password_expires: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    @validates("email")
    def normalize_email(self, key: str, value: str) -> str:
        return value.strip().lower()

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def has_role(self, *roles: Role | str) -> bool:
        return self.role in {Role(r).value for r in roles}

    def __repr__(self) -> str:
        return f"<Account(id={self.id}, email='{self.email}', role='{self.role}')>"
