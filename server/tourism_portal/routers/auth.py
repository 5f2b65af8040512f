"""Authentication router: registration, login and self-service profile."""

import logging
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.database import get_db
from ..core.dependencies import CURRENT_ACCOUNT, get_notifier
from ..models.account import Account
from ..schemas.account import (
    AccountMessageResponse,
    AccountResponse,
    AuthResponse,
    ForgotPasswordRequest,
    LoginRequest,
    MeResponse,
    RegisterRequest,
    ResetPasswordRequest,
)
from ..schemas.common import Message
from ..services.account_service import AccountService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])

# Define dependencies to avoid B008 linting errors
DB_DEPENDENCY = Depends(get_db)
NOTIFIER_DEPENDENCY = Depends(get_notifier)
UPDATES_BODY = Body(..., description="Fields to change")

RESET_REQUESTED = "If an account exists for this email, a reset link has been sent"


def account_to_schema(account: Account) -> AccountResponse:
    """Convert account model to schema."""
    return AccountResponse.model_validate(account)


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(
    request: RegisterRequest,
    db: AsyncSession = DB_DEPENDENCY,
) -> AuthResponse:
    """
    Register a customer account.

    The response carries a bearer token so the client is signed in at once.
    """
    account, token = await AccountService(db).register(request)
    return AuthResponse(
        message="User registered successfully",
        token=token,
        user=account_to_schema(account),
    )


@router.post("/login", response_model=AuthResponse)
async def login(
    request: LoginRequest,
    db: AsyncSession = DB_DEPENDENCY,
) -> AuthResponse:
    account, token = await AccountService(db).authenticate(request.email, request.password)
    return AuthResponse(
        message="Login successful",
        token=token,
        user=account_to_schema(account),
    )


@router.get("/me", response_model=MeResponse)
async def me(account: Account = CURRENT_ACCOUNT) -> MeResponse:
    return MeResponse(user=account_to_schema(account))


@router.put("/profile", response_model=AccountMessageResponse)
async def update_profile(
    updates: Dict[str, Any] = UPDATES_BODY,
    account: Account = CURRENT_ACCOUNT,
    db: AsyncSession = DB_DEPENDENCY,
) -> AccountMessageResponse:
    """
    Update the caller's own profile.

    Only first_name, last_name, phone, country, preferences and profile
    may be sent; any other key rejects the whole request.
    """
    updated = await AccountService(db).update_profile(account, updates)
    return AccountMessageResponse(
        message="Profile updated successfully",
        user=account_to_schema(updated),
    )


@router.post("/forgot-password", response_model=Message)
async def forgot_password(
    request: ForgotPasswordRequest,
    db: AsyncSession = DB_DEPENDENCY,
    notifier=NOTIFIER_DEPENDENCY,
) -> Message:
    """Email a reset token; the answer is the same whether or not the account exists."""
    await AccountService(db, notifier=notifier).request_password_reset(request.email)
    return Message(message=RESET_REQUESTED)


@router.post("/reset-password", response_model=Message)
async def reset_password(
    request: ResetPasswordRequest,
    db: AsyncSession = DB_DEPENDENCY,
) -> Message:
    await AccountService(db).reset_password(request.token, request.password)
    return Message(message="Password has been reset successfully")
