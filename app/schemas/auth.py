"""Request/response schemas for auth endpoints and session identity."""

from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, StringConstraints

from app.schemas.users import NormalizedEmail, UserPublic, UserRole

PASSWORD_MIN_LEN = 6
PASSWORD_MAX_LEN = 128


class SignUpRequest(BaseModel):
    """Registration payload. Role defaults to 'user'."""

    model_config = ConfigDict(extra="forbid")

    name: Annotated[str, StringConstraints(strip_whitespace=True, min_length=2, max_length=255)]
    email: NormalizedEmail
    password: str = Field(..., min_length=PASSWORD_MIN_LEN, max_length=PASSWORD_MAX_LEN)
    role: UserRole = "user"


class SignInRequest(BaseModel):
    """Credentials for sign-in."""

    email: NormalizedEmail
    password: str = Field(..., min_length=1, max_length=PASSWORD_MAX_LEN)


class TokenClaims(BaseModel):
    """Claims embedded in the signed session token."""

    id: int
    email: str
    role: UserRole
    iat: int
    exp: int


class CurrentUser(BaseModel):
    """Authenticated caller (decoded from the session token) for dependency injection."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    role: UserRole


class AuthenticatedUser(BaseModel):
    """Identity returned by a successful sign-in (no password)."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str
    role: UserRole


class SignUpResponse(BaseModel):
    message: str
    user: UserPublic


class SignInResponse(BaseModel):
    message: str
    user: AuthenticatedUser


class MessageResponse(BaseModel):
    message: str
