"""Cookie-based sign-up/sign-in/sign-out and auth dependencies (get_current_user, require_role)."""

import logging
from collections.abc import Callable
from typing import Annotated

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.concurrency import run_in_threadpool
from fastapi.security import APIKeyCookie
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.database import get_db
from app.core.errors import AuthenticationError, AuthorizationError, NotFoundError
from app.core.security import InvalidTokenError, create_access_token, decode_access_token
from app.core.validation import validate_body
from app.schemas.auth import (
    CurrentUser,
    MessageResponse,
    SignInRequest,
    SignInResponse,
    SignUpRequest,
    SignUpResponse,
)
from app.services.auth import InvalidCredentialsError, authenticate_user, register_user

logger = logging.getLogger(__name__)

router = APIRouter()
cookie_scheme = APIKeyCookie(name=settings.AUTH_COOKIE_NAME, auto_error=False)


def authenticate(token: str | None) -> CurrentUser:
    """Turn the raw cookie value into the caller's identity. Raises 401 if missing or invalid."""
    if not token:
        raise AuthenticationError("Unauthorized: No token provided")
    try:
        claims = decode_access_token(token)
    except InvalidTokenError as e:
        logger.warning("Authentication failed: %s", e.message)
        raise AuthenticationError("Unauthorized: Invalid token") from e
    return CurrentUser(id=claims.id, email=claims.email, role=claims.role)


def get_current_user(
    request: Request,
    token: Annotated[str | None, Depends(cookie_scheme)],
) -> CurrentUser:
    """Dependency: require a valid session cookie and attach the identity to the request."""
    current_user = authenticate(token)
    request.state.user = current_user
    return current_user


def get_optional_user(
    request: Request,
    token: Annotated[str | None, Depends(cookie_scheme)],
) -> CurrentUser | None:
    """Dependency: identity if the session cookie is valid, else None. Never rejects."""
    if not token:
        return None
    try:
        current_user = authenticate(token)
    except AuthenticationError:
        return None
    request.state.user = current_user
    return current_user


def require_role(*roles: str) -> Callable[..., CurrentUser]:
    """Dependency factory: require an authenticated user whose role is in `roles`. Raises 403 otherwise."""
    allowed = frozenset(roles)

    def dependency(
        current_user: Annotated[CurrentUser, Depends(get_current_user)],
    ) -> CurrentUser:
        if current_user.role not in allowed:
            raise AuthorizationError("Forbidden: Insufficient permissions")
        return current_user

    return dependency


def _set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=settings.AUTH_COOKIE_NAME,
        value=token,
        max_age=settings.JWT_EXPIRE_MINUTES * 60,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="strict",
    )


@router.post("/sign-up", response_model=SignUpResponse, status_code=status.HTTP_201_CREATED)
async def sign_up(
    request: Request,
    response: Response,
    db: Annotated[Session, Depends(get_db)],
    caller: Annotated[CurrentUser | None, Depends(get_optional_user)],
) -> SignUpResponse:
    """
    Register a user and start a session (sets the token cookie).
    Only a signed-in admin may register another admin.
    """
    body = (await validate_body(request, SignUpRequest)).unwrap()
    if body.role == "admin" and (caller is None or caller.role != "admin"):
        raise AuthorizationError("Forbidden: Only admins can create admin accounts")

    user = await run_in_threadpool(
        register_user,
        db,
        name=body.name,
        email=body.email,
        password=body.password,
        role=body.role,
    )
    _set_session_cookie(response, create_access_token(user.id, user.email, user.role))
    logger.info("User registered", extra={"user_id": user.id})
    return SignUpResponse(message="User registered", user=user)


@router.post("/sign-in", response_model=SignInResponse)
async def sign_in(
    request: Request,
    response: Response,
    db: Annotated[Session, Depends(get_db)],
) -> SignInResponse:
    """
    Check email and password and start a session (sets the token cookie).
    Unknown email and wrong password both answer 401 so accounts cannot be probed.
    """
    body = (await validate_body(request, SignInRequest)).unwrap()

    try:
        user = await run_in_threadpool(authenticate_user, db, body.email, body.password)
    except (NotFoundError, InvalidCredentialsError) as e:
        raise AuthenticationError("Invalid credentials") from e

    _set_session_cookie(response, create_access_token(user.id, user.email, user.role))
    logger.info("User signed in", extra={"user_id": user.id})
    return SignInResponse(message="User signed in successfully", user=user)


@router.post("/sign-out", response_model=MessageResponse)
def sign_out(response: Response) -> MessageResponse:
    """Clear the session cookie. Tokens are stateless, so there is nothing to revoke server-side."""
    response.delete_cookie(
        key=settings.AUTH_COOKIE_NAME,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="strict",
    )
    return MessageResponse(message="User signed out successfully")
