"""Registration and credential checks, composed from the password hasher and the user repository."""

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.errors import AuthenticationError, ConflictError, NotFoundError
from app.core.security import hash_password, verify_password
from app.schemas.auth import AuthenticatedUser
from app.schemas.users import UserPublic
from app.services import users as users_repo

logger = logging.getLogger(__name__)


class InvalidCredentialsError(AuthenticationError):
    """Raised when the password does not match the stored hash."""


def register_user(
    db: Session,
    *,
    name: str,
    email: str,
    password: str,
    role: str = "user",
) -> UserPublic:
    """
    Create a user with a hashed password.

    Raises ConflictError if the email is already registered.
    """
    if users_repo.get_user_by_email(db, email) is not None:
        logger.info("Registration rejected: email already exists")
        raise ConflictError("Email already exists")

    try:
        user = users_repo.create_user(
            db,
            name=name,
            email=email,
            password_hash=hash_password(password),
            role=role,
        )
    except IntegrityError as e:
        # Lost a race with a concurrent registration for the same email.
        raise ConflictError("Email already exists") from e
    logger.info("Successfully created user", extra={"user_id": user.id})
    return user


def authenticate_user(db: Session, email: str, password: str) -> AuthenticatedUser:
    """
    Check credentials and return the identity to sign into a session token.

    Raises NotFoundError for an unknown email and InvalidCredentialsError for a wrong password.
    """
    user = users_repo.get_user_by_email(db, email)
    if user is None:
        raise NotFoundError("User not found")
    if not verify_password(password, user.password_hash):
        logger.info("Authentication failed: invalid password", extra={"user_id": user.id})
        raise InvalidCredentialsError("Invalid password")

    logger.info("User authenticated", extra={"user_id": user.id})
    return AuthenticatedUser.model_validate(user)
