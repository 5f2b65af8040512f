"""Account and authentication Pydantic schemas."""

from datetime import date, datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_validator

from ..core.security import MAX_PASSWORD_BYTES, password_too_long
from ..models.account import Role
from .common import Pagination


def _check_password_length(value: str) -> str:
    if password_too_long(value):
        raise ValueError(f"Password cannot be longer than {MAX_PASSWORD_BYTES} bytes")
    return value


class NotificationPreferences(BaseModel):
    email: bool = True
    sms: bool = False


class Preferences(BaseModel):
    """Account preferences."""

    language: str = Field("en", description="Preferred locale")
    currency: str = Field("USD", min_length=3, max_length=3, description="Preferred currency")
    notifications: NotificationPreferences = Field(default_factory=NotificationPreferences)


class EmergencyContact(BaseModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    relationship: Optional[str] = None


class Profile(BaseModel):
    """Free-form profile sub-document."""

    avatar: Optional[str] = None
    date_of_birth: Optional[date] = None
    nationality: Optional[str] = None
    passport_number: Optional[str] = None
    emergency_contact: Optional[EmergencyContact] = None
    notes: List[dict] = Field(default_factory=list)


class PreferencesUpdate(BaseModel):
    """Partial preferences, merged shallowly into the stored document."""

    language: Optional[str] = None
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    notifications: Optional[NotificationPreferences] = None

    model_config = {"extra": "forbid"}


class ProfileUpdate(BaseModel):
    """Partial profile, merged shallowly into the stored document."""

    avatar: Optional[str] = None
    date_of_birth: Optional[date] = None
    nationality: Optional[str] = None
    passport_number: Optional[str] = None
    emergency_contact: Optional[EmergencyContact] = None

    model_config = {"extra": "forbid"}


class RegisterRequest(BaseModel):
    """Request schema for public registration."""

    first_name: str = Field(..., min_length=2, max_length=50, description="First name")
    last_name: str = Field(..., min_length=2, max_length=50, description="Last name")
    email: EmailStr = Field(..., description="Email address (unique, case-insensitive)")
    password: str = Field(..., min_length=6, max_length=72, description="Plaintext password, at most 72 UTF-8 bytes")
    phone: Optional[str] = Field(None, max_length=50)
    country: Optional[str] = Field(None, max_length=100)

    @field_validator("password")
    @classmethod
    def check_password_bytes(cls, value: str) -> str:
        return _check_password_length(value)


class LoginRequest(BaseModel):
    """Request schema for login."""

    email: EmailStr = Field(..., description="Email address")
    password: str = Field(..., min_length=1, description="Plaintext password")


class ForgotPasswordRequest(BaseModel):
    email: EmailStr = Field(..., description="Email address of the account")


class ResetPasswordRequest(BaseModel):
    token: str = Field(..., min_length=10, description="Token received by email")
    password: str = Field(..., min_length=6, max_length=72, description="New password, at most 72 UTF-8 bytes")

    @field_validator("password")
    @classmethod
    def check_password_bytes(cls, value: str) -> str:
        return _check_password_length(value)


class ProfileUpdateRequest(BaseModel):
    """Whitelisted self-service profile fields."""

    first_name: Optional[str] = Field(None, min_length=2, max_length=50)
    last_name: Optional[str] = Field(None, min_length=2, max_length=50)
    phone: Optional[str] = Field(None, max_length=50)
    country: Optional[str] = Field(None, max_length=100)
    preferences: Optional[PreferencesUpdate] = None
    profile: Optional[ProfileUpdate] = None


class CreateUserRequest(RegisterRequest):
    """Request schema for admin/hr account creation."""

    role: Role = Field(Role.CUSTOMER, description="Account role")


class UserUpdateRequest(ProfileUpdateRequest):
    """Whitelisted admin/hr account fields."""

    email: Optional[EmailStr] = None
    role: Optional[Role] = None
    is_active: Optional[bool] = None


class AccountResponse(BaseModel):
    """Account response schema; never carries credentials."""

    id: UUID = Field(..., description="Unique account ID")
    first_name: str
    last_name: str
    email: str
    role: Role
    phone: Optional[str] = None
    country: Optional[str] = None
    preferences: dict = Field(default_factory=dict)
    profile: dict = Field(default_factory=dict)
    is_active: bool
    email_verified: bool = False
    last_login: Optional[datetime] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class AuthResponse(BaseModel):
    """Response for register/login."""

    message: str
    token: str
    user: AccountResponse


class MeResponse(BaseModel):
    user: AccountResponse


class AccountMessageResponse(BaseModel):
    message: str
    user: AccountResponse


class UserListResponse(BaseModel):
    users: List[AccountResponse]
    pagination: Pagination


class RoleBreakdown(BaseModel):
    role: str
    count: int
    active: int
    inactive: int


class UserStatsResponse(BaseModel):
    total_users: int
    active_users: int
    inactive_users: int
    role_breakdown: List[RoleBreakdown]


class UserFilters(BaseModel):
    role: Optional[Role] = None
    is_active: Optional[bool] = None
    search: Optional[str] = Field(None, max_length=100)
    page: int = Field(1, ge=1)
    limit: int = Field(20, ge=1, le=100)
