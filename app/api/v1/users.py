"""Users endpoints: list, get, update and delete with ownership and role rules."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Request
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from app.api.v1.auth import authenticate, cookie_scheme
from app.core.database import get_db
from app.core.errors import AuthorizationError, NotFoundError
from app.core.validation import validate, validate_body
from app.schemas.auth import CurrentUser, MessageResponse
from app.schemas.users import (
    UserIdParams,
    UserResponse,
    UsersListResponse,
    UserUpdate,
)
from app.services.users import delete_user, get_user_by_id, list_users, update_user

logger = logging.getLogger(__name__)
router = APIRouter()


def _ensure_owner_or_admin(caller: CurrentUser, target_id: int, message: str) -> None:
    if caller.role != "admin" and caller.id != target_id:
        raise AuthorizationError(message)


@router.get("", response_model=UsersListResponse)
def list_all_users(db: Annotated[Session, Depends(get_db)]) -> UsersListResponse:
    """List every user (public fields only)."""
    logger.info("Getting users")
    users = list_users(db)
    return UsersListResponse(message="All users found", users=users, count=len(users))


@router.get("/{user_id}", response_model=UserResponse)
def get_user(user_id: str, db: Annotated[Session, Depends(get_db)]) -> UserResponse:
    params = validate(UserIdParams, {"id": user_id}).unwrap()
    logger.info("Getting user by id", extra={"user_id": params.user_id})

    user = get_user_by_id(db, params.user_id)
    if user is None:
        raise NotFoundError("User not found")
    return UserResponse(message="User found", user=user)


@router.api_route("/{user_id}", methods=["PATCH", "PUT"], response_model=UserResponse)
async def update_user_by_id(
    user_id: str,
    request: Request,
    db: Annotated[Session, Depends(get_db)],
    token: Annotated[str | None, Depends(cookie_scheme)],
) -> UserResponse:
    """
    Update name, email or role of a user.

    Input is validated before the caller is authenticated. Non-admins may only
    update their own record and may never send `role`.
    """
    params = validate(UserIdParams, {"id": user_id}).unwrap()
    body = (await validate_body(request, UserUpdate)).unwrap()
    updates = body.model_dump(exclude_unset=True)

    caller = authenticate(token)
    _ensure_owner_or_admin(
        caller, params.user_id, "Forbidden: You can only update your own information"
    )
    if "role" in updates and caller.role != "admin":
        raise AuthorizationError("Forbidden: Only admins can change user roles")

    logger.info(
        "Updating user",
        extra={"user_id": params.user_id, "caller_id": caller.id, "fields": sorted(updates)},
    )
    user = await run_in_threadpool(update_user, db, params.user_id, updates)
    return UserResponse(message="User updated successfully", user=user)


@router.delete("/{user_id}", response_model=MessageResponse)
def delete_user_by_id(
    user_id: str,
    db: Annotated[Session, Depends(get_db)],
    token: Annotated[str | None, Depends(cookie_scheme)],
) -> MessageResponse:
    """Delete a user. Non-admins may only delete their own account."""
    params = validate(UserIdParams, {"id": user_id}).unwrap()

    caller = authenticate(token)
    _ensure_owner_or_admin(
        caller, params.user_id, "Forbidden: You can only delete your own account"
    )

    logger.info("Deleting user", extra={"user_id": params.user_id, "caller_id": caller.id})
    if delete_user(db, params.user_id) is None:
        raise NotFoundError("User not found")
    return MessageResponse(message="User deleted successfully")
