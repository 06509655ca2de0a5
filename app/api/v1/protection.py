"""Rate/abuse gate: asks the protection service about every request before it reaches an endpoint."""

import logging
from typing import Annotated

from fastapi import Depends, Request

from app.api.v1.auth import get_optional_user
from app.core.errors import AppError, AuthorizationError
from app.schemas.auth import CurrentUser
from app.services.protection import (
    DenialReason,
    ProtectionClient,
    ProtectionServiceError,
    RequestDetails,
    resolve_caller_role,
)

logger = logging.getLogger(__name__)

DENIAL_MESSAGES = {
    DenialReason.BOT: "Automated requests are not allowed",
    DenialReason.SHIELD: "Request blocked by security policy",
    DenialReason.RATE_LIMIT: "Too many requests",
}

DENIAL_LOG_MESSAGES = {
    DenialReason.BOT: "Bot request blocked",
    DenialReason.SHIELD: "Shield request blocked",
    DenialReason.RATE_LIMIT: "Rate limit exceeded",
}


def get_protection_client(request: Request) -> ProtectionClient | None:
    """The client built at startup, or None when protection is disabled."""
    return getattr(request.app.state, "protection_client", None)


def _request_details(request: Request) -> RequestDetails:
    return RequestDetails(
        ip=request.client.host if request.client else "unknown",
        method=request.method,
        path=request.url.path,
        user_agent=request.headers.get("user-agent", ""),
    )


async def enforce_protection(
    request: Request,
    identity: Annotated[CurrentUser | None, Depends(get_optional_user)],
    client: Annotated[ProtectionClient | None, Depends(get_protection_client)],
) -> None:
    """
    Dependency: consume one token from the caller's per-role bucket.

    Role comes from the session cookie when it is valid, otherwise guest.
    Denials answer 403 with the reason; a failing protection service answers 500.
    """
    if client is None:
        return

    role = resolve_caller_role(identity)
    details = _request_details(request)
    try:
        decision = await client.protect(details, role)
    except ProtectionServiceError as e:
        logger.error(
            "Protection service error: %s",
            e.message,
            extra={"ip": details.ip, "path": details.path, "role": role.value},
        )
        raise AppError(
            "Internal server error",
            detail="Something went wrong with the security middleware",
        ) from e

    if decision.allowed:
        return

    reason = decision.reason or DenialReason.RATE_LIMIT
    logger.warning(
        DENIAL_LOG_MESSAGES[reason],
        extra={
            "ip": details.ip,
            "user_agent": details.user_agent,
            "path": details.path,
            "method": details.method,
            "role": role.value,
        },
    )
    raise AuthorizationError("Forbidden", detail=DENIAL_MESSAGES[reason])
