"""Client for the external protection service: per-role token buckets, shield and bot decisions."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Any

import httpx
from pydantic import BaseModel

if TYPE_CHECKING:
    from app.core.config import Settings
    from app.schemas.auth import CurrentUser

logger = logging.getLogger(__name__)

BUCKET_INTERVAL_SEC = 60

# Bot categories that are never blocked (e.g. search engine crawlers).
ALLOWED_BOT_CATEGORIES = ("CATEGORY:SEARCH_ENGINE",)


class CallerRole(StrEnum):
    ADMIN = "admin"
    USER = "user"
    GUEST = "guest"


class DenialReason(StrEnum):
    BOT = "bot"
    SHIELD = "shield"
    RATE_LIMIT = "rate_limit"


@dataclass(frozen=True)
class TokenBucket:
    """Bucket config sent to the service; capacity and refill rate are per interval."""

    capacity: int
    refill_rate: int
    interval: int = BUCKET_INTERVAL_SEC


RATE_LIMITS: dict[CallerRole, TokenBucket] = {
    CallerRole.ADMIN: TokenBucket(capacity=20, refill_rate=20),
    CallerRole.USER: TokenBucket(capacity=10, refill_rate=10),
    CallerRole.GUEST: TokenBucket(capacity=5, refill_rate=5),
}

# Service reason codes -> our denial reasons. Anything else is treated as a rate limit.
_REASON_CODES = {
    "BOT": DenialReason.BOT,
    "SHIELD": DenialReason.SHIELD,
    "RATE_LIMIT": DenialReason.RATE_LIMIT,
}


class AccessDecision(BaseModel):
    """Outcome for one request: allowed, or denied with a reason."""

    allowed: bool
    reason: DenialReason | None = None

    @classmethod
    def allow(cls) -> AccessDecision:
        return cls(allowed=True)

    @classmethod
    def deny(cls, reason: DenialReason) -> AccessDecision:
        return cls(allowed=False, reason=reason)


@dataclass(frozen=True)
class RequestDetails:
    """The parts of an HTTP request the service fingerprints and inspects."""

    ip: str
    method: str
    path: str
    user_agent: str = ""


class ProtectionServiceError(Exception):
    """Raised when the protection service is unreachable, times out, or returns an unusable response."""

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        self.message = message
        self.cause = cause
        super().__init__(message)


def resolve_caller_role(identity: CurrentUser | None) -> CallerRole:
    """Role of the caller for quota purposes; anonymous or unknown roles count as guest."""
    if identity is None:
        return CallerRole.GUEST
    try:
        return CallerRole(identity.role)
    except ValueError:
        return CallerRole.GUEST


def client_fingerprint(details: RequestDetails, role: CallerRole) -> str:
    """Bucket key: one bucket per client IP and role."""
    return f"{details.ip}:{role.value}"


def parse_decision(body: Any) -> AccessDecision:
    """Map the service's {conclusion, reason} body onto an AccessDecision."""
    if not isinstance(body, dict):
        raise ProtectionServiceError("Protection service response is not a JSON object.")
    conclusion = str(body.get("conclusion", "")).upper()
    if conclusion == "ALLOW":
        return AccessDecision.allow()
    if conclusion == "DENY":
        reason_code = str(body.get("reason") or "").upper()
        return AccessDecision.deny(_REASON_CODES.get(reason_code, DenialReason.RATE_LIMIT))
    raise ProtectionServiceError(
        f"Protection service returned an unknown conclusion: {conclusion or 'missing'}."
    )


class ProtectionClient:
    """
    Asks the protection service whether a request may proceed.

    The service owns bucket state and consumes tokens atomically; this client
    only describes the rules for the caller's role and interprets the answer.
    """

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient) -> None:
        self._settings = settings
        self._http = http_client

    @classmethod
    def from_settings(cls, settings: Settings) -> ProtectionClient:
        headers = {}
        if settings.PROTECTION_API_KEY is not None:
            headers["Authorization"] = f"Bearer {settings.PROTECTION_API_KEY.get_secret_value()}"
        http_client = httpx.AsyncClient(
            base_url=settings.PROTECTION_BASE_URL,
            headers=headers,
            timeout=httpx.Timeout(settings.PROTECTION_REQUEST_TIMEOUT_SEC),
        )
        return cls(settings, http_client)

    async def aclose(self) -> None:
        await self._http.aclose()

    def _build_payload(self, details: RequestDetails, role: CallerRole) -> dict[str, Any]:
        bucket = RATE_LIMITS[role]
        return {
            "key": client_fingerprint(details, role),
            "requested": 1,
            "rules": {
                "token_bucket": {
                    "capacity": bucket.capacity,
                    "refill_rate": bucket.refill_rate,
                    "interval": bucket.interval,
                },
                "shield": {"mode": "LIVE"},
                "detect_bot": {
                    # Only observe bots outside production.
                    "mode": "LIVE" if self._settings.APP_ENV == "prod" else "DRY_RUN",
                    "allow": list(ALLOWED_BOT_CATEGORIES),
                },
            },
            "request": {
                "ip": details.ip,
                "method": details.method,
                "path": details.path,
                "user_agent": details.user_agent,
            },
        }

    async def protect(self, details: RequestDetails, role: CallerRole) -> AccessDecision:
        """
        Consume one token from the caller's bucket and return the decision.

        Raises ProtectionServiceError on connection failure, timeout, non-200 status or bad JSON.
        """
        payload = self._build_payload(details, role)
        try:
            response = await self._http.post("/v1/decide", json=payload)
        except httpx.TimeoutException as e:
            raise ProtectionServiceError("Protection service request timed out.", cause=e) from e
        except httpx.ConnectError as e:
            raise ProtectionServiceError("Protection service is unreachable.", cause=e) from e
        except httpx.HTTPError as e:
            raise ProtectionServiceError("Protection service request failed.", cause=e) from e

        if response.status_code != 200:
            raise ProtectionServiceError(
                f"Protection service returned status {response.status_code}."
            )
        try:
            body = response.json()
        except ValueError as e:
            raise ProtectionServiceError(
                "Protection service response body is not valid JSON.", cause=e
            ) from e

        decision = parse_decision(body)
        logger.debug(
            "Protection decision",
            extra={"role": role.value, "allowed": decision.allowed, "reason": decision.reason},
        )
        return decision
