"""Pydantic schemas for the users resource: path params, update payload, public projection."""

from datetime import datetime
from typing import Annotated, Any, Literal

from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    EmailStr,
    StringConstraints,
    field_validator,
)

UserRole = Literal["user", "admin"]

EMAIL_MAX_LEN = 255


def normalize_email(value: Any) -> Any:
    """Trim and lowercase an email before format validation."""
    if not isinstance(value, str):
        return value
    value = value.strip().lower()
    if len(value) > EMAIL_MAX_LEN:
        raise ValueError(f"email must be at most {EMAIL_MAX_LEN} characters")
    return value


NormalizedEmail = Annotated[EmailStr, BeforeValidator(normalize_email)]
UserName = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=255)]


class UserIdParams(BaseModel):
    """Path parameters for /users/{id}."""

    id: str

    @field_validator("id")
    @classmethod
    def validate_id(cls, v: str) -> str:
        if not v.isascii() or not v.isdigit():
            raise ValueError("ID must be a valid integer")
        return v

    @property
    def user_id(self) -> int:
        return int(self.id)


class UserUpdate(BaseModel):
    """Partial update; every field optional, unknown fields rejected."""

    model_config = ConfigDict(extra="forbid")

    name: UserName | None = None
    email: NormalizedEmail | None = None
    role: UserRole | None = None

    @field_validator("name", "email", "role", mode="before")
    @classmethod
    def reject_null(cls, v: Any) -> Any:
        if v is None:
            raise ValueError("must not be null")
        return v


class UserPublic(BaseModel):
    """User as returned by the API; never includes the password hash."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str
    role: UserRole
    created_at: datetime | None = None
    updated_at: datetime | None = None


class DeletedUser(BaseModel):
    id: int


class UsersListResponse(BaseModel):
    """Response for GET /users."""

    message: str
    users: list[UserPublic]
    count: int


class UserResponse(BaseModel):
    message: str
    user: UserPublic
