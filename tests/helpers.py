"""Shared test helpers: in-memory SQLite app client and a fake protection service."""

import json
import unittest
from collections import defaultdict
from collections.abc import Generator

import httpx
from fastapi.testclient import TestClient
from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.api.v1.protection import get_protection_client
from app.core.config import get_settings
from app.core.database import get_db
from app.core.security import create_access_token
from app.main import app
from app.models import Base
from app.schemas.users import UserPublic
from app.services.auth import register_user
from app.services.protection import ProtectionClient

API = get_settings().API_V1_PREFIX
COOKIE_NAME = get_settings().AUTH_COOKIE_NAME


def make_engine() -> Engine:
    """Fresh in-memory SQLite database with the users table created."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return engine


def session_cookie(user: UserPublic) -> dict[str, str]:
    """Cookie header carrying a valid session token for `user`."""
    token = create_access_token(user.id, user.email, user.role)
    return {"Cookie": f"{COOKIE_NAME}={token}"}


class FakeProtectionService:
    """
    Stand-in for the protection service behind httpx.MockTransport.

    Counts requests per bucket key against the capacity sent by the client.
    Set `deny_reason` to force a denial, or `fail` to simulate an outage.
    """

    def __init__(self) -> None:
        self.used: dict[str, int] = defaultdict(int)
        self.payloads: list[dict] = []
        self.deny_reason: str | None = None
        self.fail = False

    def handler(self, request: httpx.Request) -> httpx.Response:
        if self.fail:
            raise httpx.ConnectError("connection refused", request=request)
        payload = json.loads(request.content)
        self.payloads.append(payload)
        if self.deny_reason is not None:
            return httpx.Response(200, json={"conclusion": "DENY", "reason": self.deny_reason})
        key = payload["key"]
        capacity = payload["rules"]["token_bucket"]["capacity"]
        if self.used[key] + payload["requested"] > capacity:
            return httpx.Response(200, json={"conclusion": "DENY", "reason": "RATE_LIMIT"})
        self.used[key] += payload["requested"]
        return httpx.Response(200, json={"conclusion": "ALLOW"})

    def client(self) -> ProtectionClient:
        http_client = httpx.AsyncClient(
            transport=httpx.MockTransport(self.handler),
            base_url="http://protection.test",
        )
        return ProtectionClient(get_settings(), http_client)


class ApiTestCase(unittest.TestCase):
    """Runs the real app against an in-memory database; protection is off unless enabled."""

    def setUp(self) -> None:
        self.engine = make_engine()
        self.SessionTesting = sessionmaker(bind=self.engine, autocommit=False, autoflush=False)

        def override_get_db() -> Generator[Session, None, None]:
            db = self.SessionTesting()
            try:
                yield db
            finally:
                db.close()

        app.dependency_overrides[get_db] = override_get_db
        self.client = TestClient(app)

    def tearDown(self) -> None:
        app.dependency_overrides.clear()
        self.engine.dispose()

    def enable_protection(self) -> FakeProtectionService:
        service = FakeProtectionService()
        protection_client = service.client()
        app.dependency_overrides[get_protection_client] = lambda: protection_client
        return service

    def create_user(
        self,
        name: str = "Alice",
        email: str = "alice@example.com",
        password: str = "password123",
        role: str = "user",
    ) -> UserPublic:
        with self.SessionTesting() as db:
            return register_user(db, name=name, email=email, password=password, role=role)
