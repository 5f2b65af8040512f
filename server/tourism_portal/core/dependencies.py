"""FastAPI dependencies for authentication, authorization and notifications."""

import logging
from typing import Callable, Optional

from fastapi import Depends, Header, Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.account import Account, Role
from .database import get_db
from .exceptions import AuthenticationError, AuthorizationError
from .security import InvalidTokenError, decode_access_token

logger = logging.getLogger(__name__)

# Define dependencies to avoid B008 linting errors
DB_DEPENDENCY = Depends(get_db)
AUTHORIZATION_HEADER = Header(None, alias="Authorization")


def _extract_bearer_token(authorization: Optional[str]) -> str:
    if not authorization:
        raise AuthenticationError("No token, authorization denied")

    try:
        scheme, token = authorization.split()
    except ValueError:
        raise AuthenticationError("Invalid authorization header format")

    if scheme.lower() != "bearer":
        raise AuthenticationError("Invalid authentication scheme")

    return token


async def get_current_account(
    authorization: Optional[str] = AUTHORIZATION_HEADER,
    db: AsyncSession = DB_DEPENDENCY,
) -> Account:
    """
    Authentication dependency that resolves the caller's account.

    The account is re-read on every request so role changes and
    deactivation apply immediately, whatever the token's expiry.

    Args:
        authorization: Authorization header with Bearer token
        db: Database session

    Returns:
        Account: The active account the token was issued to

    Raises:
        AuthenticationError: If the token is missing, invalid or expired
        AuthorizationError: If the account has been deactivated
    """
    token = _extract_bearer_token(authorization)

    try:
        payload = decode_access_token(token)
    except InvalidTokenError as e:
        logger.info("Rejected bearer token", extra={"reason": str(e)})
        raise AuthenticationError("Token is not valid")

    result = await db.execute(select(Account).where(Account.id == payload["sub"]))
    account = result.scalar_one_or_none()
    if account is None:
        raise AuthenticationError("Token is not valid")

    if not account.is_active:
        raise AuthorizationError("Account is deactivated")

    return account


CURRENT_ACCOUNT = Depends(get_current_account)


def require_roles(*roles: Role) -> Callable:
    """
    Build a dependency that only admits accounts holding one of ``roles``.

    Returns:
        Callable: Dependency returning the authorized account
    """
    allowed = [Role(role).value for role in roles]

    async def dependency(account: Account = CURRENT_ACCOUNT) -> Account:
        if account.role not in allowed:
            logger.info(
                "Role check failed",
                extra={"account_id": str(account.id), "role": account.role, "required_roles": allowed},
            )
            raise AuthorizationError(required_roles=allowed)
        return account

    return dependency


def get_notifier(request: Request):
    """Return the application's notification dispatcher."""
    return request.app.state.notifier
