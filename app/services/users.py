"""User repository: single-row CRUD on the users table, returning password-free projections."""

import logging
from datetime import UTC, datetime
from typing import Any

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.errors import ConflictError, NotFoundError
from app.models import User
from app.schemas.users import DeletedUser, UserPublic

logger = logging.getLogger(__name__)

# Columns a caller may change; id and timestamps are managed here.
UPDATABLE_FIELDS = frozenset({"name", "email", "role"})

# Largest id the users.id INTEGER column can hold; anything above cannot exist.
MAX_USER_ID = 2_147_483_647


def _id_in_range(user_id: int) -> bool:
    return 0 <= user_id <= MAX_USER_ID


def list_users(db: Session) -> list[UserPublic]:
    """Return every user ordered by id."""
    try:
        rows = db.query(User).order_by(User.id).all()
    except SQLAlchemyError:
        logger.error("Error getting all users", extra={"operation": "list_users"})
        raise
    return [UserPublic.model_validate(row) for row in rows]


def get_user_by_id(db: Session, user_id: int) -> UserPublic | None:
    if not _id_in_range(user_id):
        return None
    try:
        user = db.get(User, user_id)
    except SQLAlchemyError:
        logger.error(
            "Error getting user by id",
            extra={"operation": "get_user_by_id", "user_id": user_id},
        )
        raise
    return UserPublic.model_validate(user) if user is not None else None


def get_user_by_email(db: Session, email: str) -> User | None:
    """Return the ORM row (including password hash) for auth checks only."""
    try:
        return db.query(User).filter(User.email == email).first()
    except SQLAlchemyError:
        logger.error("Error getting user by email", extra={"operation": "get_user_by_email"})
        raise


def create_user(
    db: Session,
    *,
    name: str,
    email: str,
    password_hash: str,
    role: str = "user",
) -> UserPublic:
    user = User(name=name, email=email, password_hash=password_hash, role=role)
    db.add(user)
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.error("Error creating user", extra={"operation": "create_user"})
        raise
    db.refresh(user)
    return UserPublic.model_validate(user)


def update_user(db: Session, user_id: int, updates: dict[str, Any]) -> UserPublic:
    """
    Merge `updates` into the user row and refresh updated_at.

    Raises NotFoundError if the user does not exist and ConflictError if the
    new email already belongs to someone else. An empty `updates` only
    touches updated_at.
    """
    if not _id_in_range(user_id):
        raise NotFoundError("User not found")

    changes = {k: v for k, v in updates.items() if k in UPDATABLE_FIELDS}
    try:
        user = db.get(User, user_id)
        if user is None:
            raise NotFoundError("User not found")

        new_email = changes.get("email")
        if new_email is not None and new_email != user.email:
            clash = (
                db.query(User.id)
                .filter(User.email == new_email, User.id != user_id)
                .first()
            )
            if clash is not None:
                raise ConflictError("Email already exists")

        for key, value in changes.items():
            setattr(user, key, value)
        user.updated_at = datetime.now(UTC)
        db.commit()
    except IntegrityError as e:
        # Another request took the email between the clash check and the commit.
        db.rollback()
        logger.warning(
            "Email already exists on update",
            extra={"operation": "update_user", "user_id": user_id},
        )
        raise ConflictError("Email already exists") from e
    except SQLAlchemyError:
        db.rollback()
        logger.error(
            "Error updating user",
            extra={"operation": "update_user", "user_id": user_id},
        )
        raise
    db.refresh(user)
    return UserPublic.model_validate(user)


def delete_user(db: Session, user_id: int) -> DeletedUser | None:
    """Delete the user row; return its id, or None when there was nothing to delete."""
    if not _id_in_range(user_id):
        return None
    try:
        deleted_count = (
            db.query(User)
            .filter(User.id == user_id)
            .delete(synchronize_session=False)
        )
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.error(
            "Error deleting user",
            extra={"operation": "delete_user", "user_id": user_id},
        )
        raise
    if deleted_count == 0:
        return None
    return DeletedUser(id=user_id)
