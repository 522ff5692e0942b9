"""
tests/conftest.py -- Shared test fixtures for Keeper.

This module provides:
  - settings:      Settings pointing at an isolated in-memory DB, fast bcrypt
  - clock:         a controllable clock for token time-travel tests
  - services:      every component built by api.wiring.build_services()
  - make_account:  register an account directly in the store and mint a token
  - api_client:    TestClient on the real app with a patched lifespan

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs route handlers in a thread pool. Plain :memory: DBs
are per-connection and would present a blank schema to each worker thread.
The named URI format (file:name?mode=memory&cache=shared&uri=true) shares
one in-memory instance across all connections in the same process. Each
test gets its own name, so no state leaks between tests.

Environment variables must be set before any api/ import: api.main and
api.limiter read get_settings() at import time.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Callable, Generator
from contextlib import asynccontextmanager

# CRITICAL: set before any api/auth/core import.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("ALLOWED_HOSTS", '["testserver", "localhost"]')
os.environ.setdefault("DATABASE_URL", "sqlite:///file:keeper_import?mode=memory&cache=shared&uri=true")

import pytest
from fastapi.testclient import TestClient

from api.main import app
from api.wiring import Services, attach, build_services
from auth.models import Role
from core.config import Settings

TEST_SECRET = "test-secret-key-0123456789abcdef-0123456789abcdef"
START_TIME = 1_700_000_000.0


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: float = START_TIME) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def memory_db_url() -> str:
    return f"sqlite:///file:keeper_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true"


@pytest.fixture
def settings() -> Settings:
    return Settings(
        debug=True,
        secret_key=TEST_SECRET,
        bcrypt_rounds=4,
        database_url=memory_db_url(),
        token_expire_seconds=3600,
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def services(settings: Settings, clock: FakeClock) -> Generator[Services, None, None]:
    svc = build_services(settings, clock=clock)
    yield svc
    svc.close()


@pytest.fixture
def make_account(services: Services) -> Callable[..., tuple[int, str]]:
    """Return a factory: make_account(email, role=Role.USER) -> (account_id, bearer token)."""

    def factory(email: str, role: Role = Role.USER, password: str = "password123") -> tuple[int, str]:
        account_id = services.accounts.register(email, email.split("@")[0].title(), password, role=role)
        token = services.issuer.issue(account_id, email.lower(), role).token
        return account_id, token

    return factory


def _patch_lifespan(services: Services):
    """Return an async context manager that replaces the real lifespan.

    Wires pre-built test services into app.state so TestClient routes see
    the isolated test DB and the controllable clock.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        attach(app, services)
        yield

    return test_lifespan


@pytest.fixture
def api_client(services: Services) -> Generator[TestClient, None, None]:
    """Yield a TestClient on the real FastAPI app backed by the test services."""
    original = app.router.lifespan_context
    app.router.lifespan_context = _patch_lifespan(services)
    with TestClient(app, raise_server_exceptions=True) as client:
        yield client
    app.router.lifespan_context = original
