"""Account service for registration, authentication and user management."""

import logging
from datetime import timedelta
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import case, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import settings
from ..core.exceptions import AuthenticationError, ConflictError, NotFoundError, ValidationError
from ..core.observability import metrics_collector
from ..core.security import create_access_token, generate_reset_token, hash_password, hash_reset_token, verify_password
from ..core.time_utils import utcnow
from ..models.account import Account, Role
from ..schemas.account import (
    CreateUserRequest,
    ProfileUpdateRequest,
    RegisterRequest,
    UserUpdateRequest,
)
from .updates import merge_document, validate_update

logger = logging.getLogger(__name__)

PROFILE_FIELDS = frozenset({"first_name", "last_name", "phone", "country", "preferences", "profile"})
ADMIN_UPDATE_FIELDS = PROFILE_FIELDS | {"email", "role", "is_active"}

INVALID_CREDENTIALS = "Invalid credentials"
DUPLICATE_EMAIL = "User already exists with this email"


class AccountService:
    """Service for account-related operations."""

    def __init__(self, db: AsyncSession, notifier=None):
        self.db = db
        self.notifier = notifier

    async def get_by_email(self, email: str) -> Optional[Account]:
        normalized = email.strip().lower()
        result = await self.db.execute(select(Account).where(func.lower(Account.email) == normalized))
        return result.scalar_one_or_none()

    async def get_account(self, account_id: UUID) -> Account:
        """
        Get an account by ID.

        Raises:
            NotFoundError: If the account does not exist
        """
        result = await self.db.execute(select(Account).where(Account.id == account_id))
        account = result.scalar_one_or_none()
        if not account:
            raise NotFoundError("User", str(account_id))
        return account

    async def _ensure_email_available(self, email: str, exclude_id: Optional[UUID] = None) -> None:
        existing = await self.get_by_email(email)
        if existing and existing.id != exclude_id:
            raise ConflictError(DUPLICATE_EMAIL)

    async def _create_account(self, request: RegisterRequest, role: Role) -> Account:
        await self._ensure_email_available(request.email)

        account = Account(
            first_name=request.first_name.strip(),
            last_name=request.last_name.strip(),
            email=request.email,
            password_hash=hash_password(request.password),
            role=role.value,
            phone=request.phone,
            country=request.country,
        )
        self.db.add(account)
        await self.db.commit()
        await self.db.refresh(account)
        return account

    async def register(self, request: RegisterRequest) -> Tuple[Account, str]:
        """
        Register a customer account and issue a token.

        Public registration never grants a staff role.

        Args:
            request: Registration request

        Returns:
            The created account and its bearer token

        Raises:
            ConflictError: If the email is already registered
        """
        account = await self._create_account(request, Role.CUSTOMER)

        logger.info(
            "Account registered",
            extra={"account_id": str(account.id), "role": account.role}
        )

        return account, create_access_token(account.id)

    async def authenticate(self, email: str, password: str) -> Tuple[Account, str]:
        """
        Check credentials and issue a token.

        Unknown email and wrong password fail with the same message.

        Raises:
            AuthenticationError: 400 "Invalid credentials" or "Account is deactivated"
        """
        account = await self.get_by_email(email)
        if account is None or not verify_password(password, account.password_hash):
            metrics_collector.record_login("invalid")
            logger.info("Login failed", extra={"reason": "invalid_credentials"})
            raise AuthenticationError(INVALID_CREDENTIALS, status_code=400)

        if not account.is_active:
            metrics_collector.record_login("inactive")
            logger.info("Login refused for deactivated account", extra={"account_id": str(account.id)})
            raise AuthenticationError("Account is deactivated", status_code=400)

        account.last_login = utcnow()
        await self.db.commit()
        await self.db.refresh(account)

        metrics_collector.record_login("success")
        logger.info("Login succeeded", extra={"account_id": str(account.id)})

        return account, create_access_token(account.id)

    def _apply_profile_changes(self, account: Account, request: ProfileUpdateRequest) -> None:
        changes = request.model_dump(exclude_unset=True)

        for name in ("first_name", "last_name"):
            if changes.get(name) is not None:
                setattr(account, name, changes[name].strip())
        for name in ("phone", "country"):
            if name in changes:
                setattr(account, name, changes[name])

        if changes.get("preferences") is not None:
            preference_changes = request.preferences.model_dump(exclude_unset=True, mode="json")
            account.preferences = merge_document(account.preferences, preference_changes)

        if changes.get("profile") is not None:
            profile_changes = request.profile.model_dump(exclude_unset=True, mode="json")
            account.profile = merge_document(account.profile, profile_changes)

    async def update_profile(self, account: Account, updates: Dict[str, Any]) -> Account:
        """
        Apply whitelisted self-service changes.

        The whole update is rejected before anything changes if any key is
        outside the whitelist; ``preferences`` and ``profile`` are merged
        shallowly into the stored documents.

        Raises:
            ValidationError: If a field is not updatable or a value is invalid
        """
        request = validate_update(ProfileUpdateRequest, updates, PROFILE_FIELDS)

        self._apply_profile_changes(account, request)
        await self.db.commit()
        await self.db.refresh(account)

        logger.info(
            "Profile updated",
            extra={"account_id": str(account.id), "fields": sorted(updates)}
        )
        return account

    async def request_password_reset(self, email: str) -> None:
        """Store a reset token digest and email the token, if the account exists."""
        account = await self.get_by_email(email)
        if account is None or not account.is_active:
            logger.info("Password reset requested for unknown account")
            return

        token, digest = generate_reset_token()
        account.reset_password_token = digest
        account.reset_password_expires = utcnow() + timedelta(minutes=settings.password_reset_ttl_minutes)
        await self.db.commit()

        if self.notifier is not None:
            self.notifier.password_reset(account, token)

        logger.info("Password reset token issued", extra={"account_id": str(account.id)})

    async def reset_password(self, token: str, new_password: str) -> Account:
        """
        Set a new password using an emailed reset token.

        Raises:
            ValidationError: If the token is unknown or expired
        """
        result = await self.db.execute(
            select(Account).where(
                Account.reset_password_token == hash_reset_token(token),
                Account.reset_password_expires > utcnow(),
            )
        )
        account = result.scalar_one_or_none()
        if account is None:
            raise ValidationError("Password reset token is invalid or has expired")

        account.password_hash = hash_password(new_password)
        account.reset_password_token = None
        account.reset_password_expires = None
        await self.db.commit()
        await self.db.refresh(account)

        logger.info("Password reset completed", extra={"account_id": str(account.id)})
        return account

    async def list_users(
        self,
        role: Optional[Role] = None,
        is_active: Optional[bool] = None,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = 20,
    ) -> Tuple[List[Account], int]:
        """List accounts, newest first, with the total matching count."""
        conditions = []
        if role is not None:
            conditions.append(Account.role == role.value)
        if is_active is not None:
            conditions.append(Account.is_active == is_active)
        if search:
            pattern = f"%{search}%"
            conditions.append(or_(
                Account.first_name.ilike(pattern),
                Account.last_name.ilike(pattern),
                Account.email.ilike(pattern),
            ))

        total = await self.db.scalar(select(func.count()).select_from(Account).where(*conditions))

        result = await self.db.execute(
            select(Account)
            .where(*conditions)
            .order_by(Account.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return list(result.scalars().all()), total or 0

    async def create_user(self, request: CreateUserRequest) -> Account:
        """
        Create an account with any role on behalf of admin or HR staff.

        Raises:
            ConflictError: If the email is already registered
        """
        account = await self._create_account(request, request.role)
        logger.info(
            "User created by staff",
            extra={"account_id": str(account.id), "role": account.role}
        )
        return account

    async def update_user(self, account_id: UUID, updates: Dict[str, Any]) -> Account:
        """
        Apply whitelisted staff changes to an account.

        Raises:
            ValidationError: If a field is not updatable or a value is invalid
            NotFoundError: If the account does not exist
            ConflictError: If the new email belongs to another account
        """
        request = validate_update(UserUpdateRequest, updates, ADMIN_UPDATE_FIELDS)

        account = await self.get_account(account_id)
        changes = request.model_dump(exclude_unset=True)

        if changes.get("email") is not None:
            await self._ensure_email_available(changes["email"], exclude_id=account.id)
            account.email = changes["email"]
        if changes.get("role") is not None:
            account.role = request.role.value
        if changes.get("is_active") is not None:
            account.is_active = changes["is_active"]

        self._apply_profile_changes(account, request)
        await self.db.commit()
        await self.db.refresh(account)

        logger.info(
            "User updated by staff",
            extra={"account_id": str(account.id), "fields": sorted(updates)}
        )
        return account

    async def set_active(self, account_id: UUID, is_active: bool) -> Account:
        """Activate or deactivate an account; accounts are never deleted."""
        account = await self.get_account(account_id)
        account.is_active = is_active
        await self.db.commit()
        await self.db.refresh(account)

        logger.info(
            "User activated" if is_active else "User deactivated",
            extra={"account_id": str(account.id)}
        )
        return account

    async def user_stats(self) -> Dict[str, Any]:
        """Totals plus a per-role breakdown of active and inactive accounts."""
        active_count = func.sum(case((Account.is_active.is_(True), 1), else_=0))
        result = await self.db.execute(
            select(Account.role, func.count(Account.id), active_count)
            .group_by(Account.role)
            .order_by(Account.role)
        )

        breakdown = []
        total = active = 0
        for role, count, role_active in result.all():
            role_active = int(role_active or 0)
            breakdown.append({
                "role": role,
                "count": count,
                "active": role_active,
                "inactive": count - role_active,
            })
            total += count
            active += role_active

        return {
            "total_users": total,
            "active_users": active,
            "inactive_users": total - active,
            "role_breakdown": breakdown,
        }


async def resolve_note_authors(db: AsyncSession, notes: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Replace author ids on stored notes with ``{id, first_name, last_name}``."""
    author_ids = {UUID(note["added_by"]) for note in notes if note.get("added_by")}
    authors: Dict[str, Account] = {}
    if author_ids:
        result = await db.execute(select(Account).where(Account.id.in_(author_ids)))
        authors = {str(account.id): account for account in result.scalars()}

    resolved = []
    for note in notes:
        entry = dict(note)
        author_id = note.get("added_by")
        if author_id:
            author = authors.get(author_id)
            entry["added_by"] = {
                "id": author_id,
                "first_name": author.first_name if author else None,
                "last_name": author.last_name if author else None,
            }
        resolved.append(entry)
    return resolved
