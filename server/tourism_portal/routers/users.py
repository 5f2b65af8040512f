"""User management router for staff account administration."""

import logging
from typing import Any, Dict
from uuid import UUID

from fastapi import APIRouter, Body, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.database import get_db
from ..core.dependencies import require_roles
from ..models.account import Account, Role
from ..schemas.account import (
    AccountMessageResponse,
    AccountResponse,
    CreateUserRequest,
    UserFilters,
    UserListResponse,
    UserStatsResponse,
)
from ..schemas.common import Pagination
from ..services.account_service import AccountService
from .auth import account_to_schema

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/users", tags=["users"])

# Define dependencies to avoid B008 linting errors
DB_DEPENDENCY = Depends(get_db)
FILTERS_QUERY = Query()
UPDATES_BODY = Body(..., description="Fields to change")
USER_VIEWERS = Depends(require_roles(Role.ADMIN, Role.MANAGER, Role.HR))
USER_ADMINS = Depends(require_roles(Role.ADMIN, Role.HR))


@router.get("", response_model=UserListResponse)
async def list_users(
    filters: UserFilters = FILTERS_QUERY,
    account: Account = USER_VIEWERS,
    db: AsyncSession = DB_DEPENDENCY,
) -> UserListResponse:
    users, total = await AccountService(db).list_users(
        role=filters.role,
        is_active=filters.is_active,
        search=filters.search,
        page=filters.page,
        limit=filters.limit,
    )
    return UserListResponse(
        users=[account_to_schema(user) for user in users],
        pagination=Pagination.build(filters.page, filters.limit, total),
    )


@router.get("/stats/overview", response_model=UserStatsResponse)
async def user_stats(
    account: Account = USER_ADMINS,
    db: AsyncSession = DB_DEPENDENCY,
) -> UserStatsResponse:
    """Account totals with a per-role active/inactive breakdown."""
    return UserStatsResponse(**await AccountService(db).user_stats())


@router.get("/{user_id}", response_model=AccountResponse)
async def get_user(
    user_id: UUID,
    account: Account = USER_VIEWERS,
    db: AsyncSession = DB_DEPENDENCY,
) -> AccountResponse:
    user = await AccountService(db).get_account(user_id)
    return account_to_schema(user)


@router.post("", response_model=AccountMessageResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    request: CreateUserRequest,
    account: Account = USER_ADMINS,
    db: AsyncSession = DB_DEPENDENCY,
) -> AccountMessageResponse:
    """Create an account with any role."""
    user = await AccountService(db).create_user(request)
    logger.info(
        "Staff account creation",
        extra={"actor_id": str(account.id), "account_id": str(user.id), "role": user.role}
    )
    return AccountMessageResponse(message="User created successfully", user=account_to_schema(user))


@router.put("/{user_id}", response_model=AccountMessageResponse)
async def update_user(
    user_id: UUID,
    updates: Dict[str, Any] = UPDATES_BODY,
    account: Account = USER_ADMINS,
    db: AsyncSession = DB_DEPENDENCY,
) -> AccountMessageResponse:
    user = await AccountService(db).update_user(user_id, updates)
    return AccountMessageResponse(message="User updated successfully", user=account_to_schema(user))


@router.patch("/{user_id}/activate", response_model=AccountMessageResponse)
async def activate_user(
    user_id: UUID,
    account: Account = USER_ADMINS,
    db: AsyncSession = DB_DEPENDENCY,
) -> AccountMessageResponse:
    user = await AccountService(db).set_active(user_id, True)
    return AccountMessageResponse(message="User activated successfully", user=account_to_schema(user))


@router.patch("/{user_id}/deactivate", response_model=AccountMessageResponse)
async def deactivate_user(
    user_id: UUID,
    account: Account = USER_ADMINS,
    db: AsyncSession = DB_DEPENDENCY,
) -> AccountMessageResponse:
    """Deactivate an account; its existing tokens stop working on the next request."""
    user = await AccountService(db).set_active(user_id, False)
    return AccountMessageResponse(message="User deactivated successfully", user=account_to_schema(user))
