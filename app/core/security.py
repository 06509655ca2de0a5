"""Password hashing and JWT session token creation/verification."""

import logging
from datetime import UTC, datetime, timedelta
from typing import Any

import bcrypt
import jwt
from pydantic import ValidationError

from app.core.config import settings
from app.schemas.auth import TokenClaims

logger = logging.getLogger(__name__)

# Bcrypt cost (rounds).
BCRYPT_ROUNDS = 10

# bcrypt only looks at the first 72 bytes of a password.
BCRYPT_MAX_BYTES = 72


class HashingError(Exception):
    """Raised when bcrypt cannot hash or check a password (bad input or corrupt stored hash)."""

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        self.message = message
        self.cause = cause
        super().__init__(message)


class TokenError(Exception):
    """Raised when a session token cannot be signed."""

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        self.message = message
        self.cause = cause
        super().__init__(message)


class InvalidTokenError(Exception):
    """Raised when a session token is malformed, tampered with, or expired."""

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        self.message = message
        self.cause = cause
        super().__init__(message)


def _password_bytes(plain_password: str) -> bytes:
    return plain_password.encode("utf-8")[:BCRYPT_MAX_BYTES]


def hash_password(plain_password: str) -> str:
    """Hash a plain-text password for storage. Do not store plain passwords."""
    try:
        hashed = bcrypt.hashpw(
            _password_bytes(plain_password), bcrypt.gensalt(rounds=BCRYPT_ROUNDS)
        )
    except (ValueError, TypeError) as e:
        logger.error("Error hashing the password: %s", e.__class__.__name__)
        raise HashingError("Error hashing password", cause=e) from e
    return hashed.decode("utf-8")


def verify_password(plain_password: str, hashed: str) -> bool:
    """
    Verify a plain password against a stored hash.

    A stored hash that bcrypt cannot parse is an error, not a mismatch.
    """
    try:
        return bcrypt.checkpw(_password_bytes(plain_password), hashed.encode("utf-8"))
    except (ValueError, TypeError) as e:
        logger.error("Error comparing password: %s", e.__class__.__name__)
        raise HashingError("Error comparing password", cause=e) from e


def create_access_token(user_id: int, email: str, role: str) -> str:
    """Create a signed session token carrying id, email, role, iat and exp."""
    now = datetime.now(UTC)
    expire = now + timedelta(minutes=settings.JWT_EXPIRE_MINUTES)
    payload: dict[str, Any] = {
        "id": user_id,
        "email": email,
        "role": role,
        "iat": now,
        "exp": expire,
    }
    secret = settings.JWT_SECRET.get_secret_value()
    try:
        return jwt.encode(payload, secret, algorithm=settings.JWT_ALGORITHM)
    except (jwt.PyJWTError, NotImplementedError, TypeError, ValueError) as e:
        logger.error("Failed to sign session token", extra={"user_id": user_id})
        raise TokenError("Failed to sign session token", cause=e) from e


def decode_access_token(token: str) -> TokenClaims:
    """
    Verify signature and expiry; return the token claims.
    Raises InvalidTokenError on a bad signature, malformed token, missing claims or expiry.
    """
    secret = settings.JWT_SECRET.get_secret_value()
    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=[settings.JWT_ALGORITHM],
            options={"require": ["exp", "iat"]},
        )
    except jwt.ExpiredSignatureError as e:
        raise InvalidTokenError("Token has expired", cause=e) from e
    except jwt.PyJWTError as e:
        raise InvalidTokenError("Token is invalid", cause=e) from e
    try:
        return TokenClaims.model_validate(payload)
    except ValidationError as e:
        raise InvalidTokenError("Token payload is invalid", cause=e) from e
