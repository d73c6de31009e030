"""
tests/conftest.py -- Shared test fixtures for the portfolio backend.

This module provides:
  - FakeClock: a settable clock injected into TokenSigner/AuthService so lock
    and token expiry can be simulated without waiting
  - store / signer / service: unit-level fixtures on a private in-memory DB
  - _make_test_store(): isolated shared-memory DB for the HTTP app
  - _patch_lifespan(): wires the test store into app.state, bypassing real startup
  - api_client: TestClient with an admin bearer token for route tests

Design: Named shared-memory SQLite URIs (not plain :memory:) are required for
the HTTP app because TestClient runs sync route handlers in a thread pool.
Plain :memory: DBs are per-connection and would present a blank schema to
each worker thread. Unit fixtures run on one thread, so :memory: is enough.

The DEBUG env var must be set before any api/core import so get_settings()
auto-generates JWT_SECRET in dev mode rather than raising ValueError.
"""

from __future__ import annotations

import os
from collections.abc import Generator
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone

# CRITICAL: Set DEBUG before any api/core import so get_settings() can
# auto-generate JWT_SECRET in dev mode instead of raising ValueError.
os.environ.setdefault("DEBUG", "true")

import pytest
from fastapi.testclient import TestClient

from api.limiter import limiter
from api.main import app
from auth.service import AuthService
from auth.store import AdminStore
from auth.tokens import TokenSigner

TEST_SECRET = "test-signing-key-" + "x" * 32
ADMIN_EMAIL = "admin@example.com"
ADMIN_PASSWORD = "testpass123"


class FakeClock:
    """Callable clock that only moves when a test tells it to."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


# ---------------------------------------------------------------------------
# Unit fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def signing_key() -> str:
    return TEST_SECRET


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> Generator[AdminStore, None, None]:
    s = AdminStore("sqlite:///:memory:")
    yield s
    s.close()


@pytest.fixture
def signer(clock: FakeClock) -> TokenSigner:
    return TokenSigner(secret_key=TEST_SECRET, clock=clock)


@pytest.fixture
def service(store: AdminStore, signer: TokenSigner, clock: FakeClock) -> AuthService:
    return AuthService(store, signer, clock=clock)


# ---------------------------------------------------------------------------
# HTTP app helpers
# ---------------------------------------------------------------------------


def _make_test_store(db_suffix: str) -> AdminStore:
    """Create an isolated named shared-memory SQLite store.

    Args:
        db_suffix: Unique string appended to the DB name so test modules
                   don't share state.
    """
    return AdminStore(db_url=f"sqlite:///file:test_auth_{db_suffix}?mode=memory&cache=shared&uri=true")


def _patch_lifespan(store: AdminStore, service: AuthService):
    """Return an async context manager that replaces the real lifespan."""

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.admin_store = store
        app.state.auth_service = service
        yield

    return test_lifespan


@pytest.fixture(scope="module")
def api_client(request) -> Generator[tuple[TestClient, str, int], None, None]:
    """Yield (client, token, admin_id) for API integration tests.

    The TestClient uses the real FastAPI app with a patched lifespan so tests
    hit real route handlers against an isolated store signed with TEST_SECRET.
    The IP rate limiter is disabled: lockout tests make more than ten login
    attempts a minute.
    """
    store = _make_test_store(request.module.__name__.rsplit(".", 1)[-1])
    service = AuthService(store, TokenSigner(secret_key=TEST_SECRET))

    admin = store.create(ADMIN_EMAIL, ADMIN_PASSWORD, "Test Admin")
    token = service.issue_token(admin)

    app.router.lifespan_context = _patch_lifespan(store, service)
    limiter.enabled = False

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, token, admin.id

    limiter.enabled = True
    store.close()
