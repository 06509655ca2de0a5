"""Pydantic request/response schemas."""

from app.schemas.auth import (
    AuthenticatedUser,
    CurrentUser,
    MessageResponse,
    SignInRequest,
    SignInResponse,
    SignUpRequest,
    SignUpResponse,
    TokenClaims,
)
from app.schemas.health import HealthResponse
from app.schemas.users import (
    DeletedUser,
    UserIdParams,
    UserPublic,
    UserResponse,
    UserRole,
    UsersListResponse,
    UserUpdate,
)

__all__ = [
    "AuthenticatedUser",
    "CurrentUser",
    "DeletedUser",
    "HealthResponse",
    "MessageResponse",
    "SignInRequest",
    "SignInResponse",
    "SignUpRequest",
    "SignUpResponse",
    "TokenClaims",
    "UserIdParams",
    "UserPublic",
    "UserResponse",
    "UserRole",
    "UsersListResponse",
    "UserUpdate",
]
