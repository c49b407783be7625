from __future__ import annotations

import jwt
import pytest
from fastapi.testclient import TestClient

from taskpilot.core.config import Settings
from taskpilot.main import create_app

CLAIMS_NS = "https://taskpilot-api/"
TOKEN_SECRET = "taskpilot-test-signing-secret-0123456789"


def make_token(
    sub: str = "auth0|alice",
    email: str | None = "alice@example.com",
    name: str | None = "Alice",
    tenant: str | None = "tenant-test-a",
    roles: tuple[str, ...] = ("user",),
) -> str:
    claims: dict = {"sub": sub}
    if email:
        claims["email"] = email
    if name:
        claims["name"] = name
    if tenant:
        claims[f"{CLAIMS_NS}tenant"] = tenant
    if roles:
        claims[f"{CLAIMS_NS}roles"] = list(roles)
    return jwt.encode(claims, TOKEN_SECRET, algorithm="HS256")


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        database_url="sqlite+aiosqlite://",
        create_tables=True,
        auth_mode="mock",
        gemini_api_key=None,
        log_level="DEBUG",
    )


@pytest.fixture
def app(settings: Settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def auth_headers():
    def build(**claims) -> dict[str, str]:
        return {"Authorization": f"Bearer {make_token(**claims)}"}

    return build


@pytest.fixture
def alice(auth_headers) -> dict[str, str]:
    return auth_headers()


@pytest.fixture
def bob(auth_headers) -> dict[str, str]:
    return auth_headers(sub="auth0|bob", email="bob@example.com", name="Bob")


@pytest.fixture
def other_family(auth_headers) -> dict[str, str]:
    return auth_headers(
        sub="auth0|carol", email="carol@example.com", name="Carol", tenant="tenant-test-b"
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
