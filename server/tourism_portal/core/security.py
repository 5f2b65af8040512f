"""Password hashing and bearer token helpers."""

import hashlib
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any
from uuid import UUID

import bcrypt
import jwt
from jwt import PyJWTError

from .config import settings

JWT_ALGORITHM = "HS256"

# bcrypt only reads the first 72 bytes of its input
MAX_PASSWORD_BYTES = 72


class InvalidTokenError(Exception):
    """Raised when a bearer token cannot be verified."""


def password_too_long(password: str) -> bool:
    return len(password.encode("utf-8")) > MAX_PASSWORD_BYTES


def hash_password(password: str, rounds: int | None = None) -> str:
    """
    Hash a password with bcrypt using the configured cost factor.

    Raises:
        ValueError: If the password is longer than ``MAX_PASSWORD_BYTES``
    """
    if password_too_long(password):
        raise ValueError(f"Password cannot be longer than {MAX_PASSWORD_BYTES} bytes")
    salt = bcrypt.gensalt(rounds=rounds or settings.bcrypt_rounds)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Check a password against a stored bcrypt hash."""
    if password_too_long(password):
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False


def create_access_token(subject_id: UUID | str, expires_in: timedelta | None = None) -> str:
    """
    Issue a signed bearer token for an account.

    The payload carries the subject id, issue time and expiry only; role and
    active flag are re-read from the database on every request.
    """
    issued_at = datetime.now(timezone.utc)
    expires_at = issued_at + (expires_in or timedelta(days=settings.jwt_expire_days))
    payload = {
        "sub": str(subject_id),
        "iat": issued_at,
        "exp": expires_at,
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=JWT_ALGORITHM)


def decode_access_token(token: str) -> dict[str, Any]:
    """
    Verify a bearer token and return its payload.

    Raises:
        InvalidTokenError: If the signature, expiry or payload is invalid
    """
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[JWT_ALGORITHM],
            options={"require": ["sub", "exp"]},
        )
    except PyJWTError as e:
        raise InvalidTokenError(str(e)) from e

    try:
        payload["sub"] = UUID(payload["sub"])
    except (TypeError, ValueError) as e:
        raise InvalidTokenError("Invalid token subject") from e

    return payload


def generate_reset_token() -> tuple[str, str]:
    """Return a random reset token and the digest that gets stored."""
    token = secrets.token_urlsafe(32)
    return token, hash_reset_token(token)


def hash_reset_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()
