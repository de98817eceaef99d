"""
tests/conftest.py -- Shared test fixtures for Bandstand tests.

This module provides:
  - FakeClock: a settable epoch clock for TokenAllowList
  - engine / store / allowlist / issuer / service: isolated unit-test stores
  - api_client: TestClient over the real app with a patched lifespan and
    seeded principals

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs sync route handlers and dependencies in a thread
pool. Plain :memory: DBs are per-connection and would present a blank schema
to each worker thread. The named URI format
(file:name?mode=memory&cache=shared&uri=true) shares one in-memory instance
across all connections in the same process. Each fixture uses a unique name
so tests never see each other's rows.

Environment variables must be set before any api/core import so
get_settings() picks them up: DEBUG drops the https-only flag on the session
cookie (TestClient speaks plain http), ALLOWED_HOSTS admits TestClient's
"testserver" host, and the login rate limit is raised so the suite never
trips it.
"""

from __future__ import annotations

import asyncio
import os
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager
from datetime import timedelta

os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("SECRET_KEY", "bandstand-test-secret-key-0123456789abcdef")
os.environ.setdefault("ALLOWED_HOSTS", '["testserver", "localhost"]')
os.environ.setdefault("LOGIN_RATE_LIMIT", "1000/minute")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.engine import Engine

from api.main import app, build_auth_service
from auth import db
from auth.allowlist import TokenAllowList
from auth.models import Principal, Role
from auth.service import AuthService
from auth.store import UserStore
from auth.tokens import TokenIssuer, hash_password

TEST_SECRET = "unit-test-secret-key-0123456789abcdef"
WINDOW = timedelta(minutes=60)

USER_EMAIL = "user@example.com"
USER_PASSWORD = "password123!A"
ADMIN_EMAIL = "admin@example.com"
ADMIN_PASSWORD = "AdminPass123!"
PHONE_NUMBER = "+380501234567"
PHONE_PASSWORD = "PhonePass123!"


class FakeClock:
    """Callable epoch clock that only moves when told to."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def _memory_engine(prefix: str) -> Engine:
    return db.connect(f"sqlite:///file:{prefix}_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true")


def _seed(store: UserStore) -> dict[str, str]:
    """Create the standard principals and return their ids by label."""
    return {
        "user": store.create_user(
            Principal(email=USER_EMAIL, role=Role.USER, hashed_password=hash_password(USER_PASSWORD))
        ),
        "admin": store.create_user(
            Principal(email=ADMIN_EMAIL, role=Role.ADMIN, hashed_password=hash_password(ADMIN_PASSWORD))
        ),
        "phone": store.create_user(
            Principal(phone_number=PHONE_NUMBER, role=Role.USER, hashed_password=hash_password(PHONE_PASSWORD))
        ),
    }


# ---------------------------------------------------------------------------
# Unit fixtures -- one fresh database per test
# ---------------------------------------------------------------------------


@pytest.fixture
def engine() -> Generator[Engine, None, None]:
    eng = _memory_engine("unit")
    yield eng
    eng.dispose()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(engine: Engine) -> UserStore:
    return UserStore(engine)


@pytest.fixture
def seeded(store: UserStore) -> dict[str, str]:
    return _seed(store)


@pytest.fixture
def allowlist(engine: Engine, clock: FakeClock) -> TokenAllowList:
    return TokenAllowList(engine, clock=clock)


@pytest.fixture
def issuer() -> TokenIssuer:
    return TokenIssuer(TEST_SECRET)


@pytest.fixture
def service(store: UserStore, allowlist: TokenAllowList, issuer: TokenIssuer) -> AuthService:
    return AuthService(store, allowlist, issuer, WINDOW)


# ---------------------------------------------------------------------------
# Integration fixture -- one TestClient per test module for speed
# ---------------------------------------------------------------------------


def _patch_lifespan(engine: Engine, service: AuthService):
    """Return an async context manager that replaces the real lifespan.

    Wires the pre-built test service into app.state so TestClient routes see
    the isolated test DB rather than the configured database.

    The purge_task is a long-sleeping coroutine (a real asyncio.Task is
    required; MagicMock would fail on .cancel()).
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.engine = engine
        app.state.auth_service = service
        app.state.purge_task = asyncio.create_task(asyncio.sleep(99999))
        yield
        app.state.purge_task.cancel()

    return test_lifespan


@pytest.fixture(scope="module")
def api_client() -> Generator[tuple[TestClient, AuthService, dict[str, str]], None, None]:
    """Yield (client, service, ids) for API integration tests.

    The TestClient uses the real FastAPI app with a patched lifespan so
    tests hit real route handlers, dependencies, and exception handlers.
    ids maps "user", "admin", and "phone" to the seeded principal ids.
    """
    eng = _memory_engine("api")
    service = build_auth_service(eng)
    ids = _seed(service.store)

    app.router.lifespan_context = _patch_lifespan(eng, service)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, service, ids

    eng.dispose()
