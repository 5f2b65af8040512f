"""Marketing campaign model definition."""

from datetime import datetime
from enum import Enum
from uuid import UUID, uuid4

from sqlalchemy import DateTime, ForeignKey, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from ..core.database import Base
from ..core.time_utils import utcnow


class CampaignType(str, Enum):
    EMAIL = "email"
    SMS = "sms"
    NOTIFICATION = "notification"


class Campaign(Base):
    """Customer communication campaign scheduled from the CRM."""

    __tablename__ = "campaigns"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    subject: Mapped[str | None] = mapped_column(String(255), nullable=True)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    target_segment: Mapped[str | None] = mapped_column(String(50), nullable=True)
    scheduled_date: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="scheduled")
    created_by_id: Mapped[UUID] = mapped_column(Uuid, ForeignKey("accounts.id"), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)

    def __repr__(self) -> str:
        return f"<Campaign(id={self.id}, name='{self.name}', status='{self.status}')>"
