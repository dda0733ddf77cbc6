"""
tests/conftest.py -- Shared test fixtures for SentinelOps unit and integration tests.

This module provides:
  - settings: a Settings instance built with explicit values (no .env)
  - FixedClock: a settable clock for the engines' clock= parameter
  - _make_user_store(): an isolated named shared-memory user database
  - _patch_lifespan(): wires test engines into app.state, bypassing real startup
  - api_client: TestClient with admin JWT for API integration tests
  - role_token: factory fixture issuing JWTs for analyst / viewer users

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs route handlers in a thread pool. Plain :memory: DBs
are per-connection and would present a blank schema to each worker thread.

DEBUG and ALLOWED_HOSTS must be set before any api/auth import:
get_settings() is cached on first call, DEBUG lets it auto-generate the
SECRET_KEY, and TrustedHostMiddleware must accept the "testserver" host
that TestClient sends.
"""

from __future__ import annotations

import os
from collections.abc import Callable, Generator
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone

# CRITICAL: Set before any auth/core import -- see module docstring.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("ALLOWED_HOSTS", "testserver,localhost,127.0.0.1")

import pytest
from fastapi.testclient import TestClient

from api.limiter import limiter
from api.main import app
from audit.trail import AuditTrail
from auth.models import ROLE_ADMIN, User
from auth.store import UserStore
from auth.tokens import create_access_token, hash_password
from compliance.checks import FixedOutcomeComplianceChecker
from compliance.monitor import ComplianceMonitor
from core.config import Settings, get_settings
from core.events import EventEmitter
from detection.engine import ThreatDetectionEngine

TEST_SECRET = "x" * 64

# ---------------------------------------------------------------------------
# Unit-test helpers
# ---------------------------------------------------------------------------


class FixedClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def settings() -> Settings:
    """Settings with explicit values so unit tests ignore the environment."""
    return Settings(
        secret_key=TEST_SECRET,
        debug=False,
        admin_password="unused-in-unit-tests",
        confidence_threshold=0.85,
        enable_auto_response=False,
    )


# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------


def _make_user_store(db_suffix: str) -> UserStore:
    """Create an isolated named shared-memory user store.

    Args:
        db_suffix: Unique string appended to the DB name so test modules
                   don't share users.
    """
    return UserStore(db_url=f"sqlite:///file:test_users_{db_suffix}?mode=memory&cache=shared&uri=true")


def _patch_lifespan(user_store: UserStore):
    """Return an async context manager that replaces the real lifespan.

    Builds fresh engines per test module. Periodic jobs are not started --
    tests drive process_log_buffer() and friends directly. Every compliance
    check passes, so assessment results are deterministic.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        settings = get_settings()
        app.state.events = EventEmitter()
        app.state.audit = AuditTrail(app.state.events)
        app.state.user_store = user_store
        app.state.threat_engine = ThreatDetectionEngine(settings, audit=app.state.audit, events=app.state.events)
        app.state.compliance_monitor = ComplianceMonitor(
            settings,
            audit=app.state.audit,
            checker=FixedOutcomeComplianceChecker(passed=True),
        )
        yield
        app.state.events.close()

    return test_lifespan


# ---------------------------------------------------------------------------
# Module-scoped fixtures -- one TestClient per test module for speed
# ---------------------------------------------------------------------------


@pytest.fixture(scope="module")
def api_client(request) -> Generator[tuple[TestClient, str, int], None, None]:
    """Yield (client, token, user_id) for API integration tests.

    The TestClient uses the real FastAPI app with a patched lifespan so
    tests hit real route handlers against isolated engines. The admin user
    is created before the client starts; the rate limiter is reset so
    limits consumed by one module never leak into the next.
    """
    user_store = _make_user_store(request.module.__name__.rsplit(".", 1)[-1])

    admin = User(
        username="testadmin",
        hashed_password=hash_password("testpass123"),
        role=ROLE_ADMIN,
    )
    uid = user_store.create_user(admin)
    token = create_access_token(user_id=uid, username="testadmin", role=ROLE_ADMIN, expire_seconds=3600)

    limiter.reset()
    app.router.lifespan_context = _patch_lifespan(user_store)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, token, uid

    user_store.close()


@pytest.fixture(scope="module")
def role_token(api_client) -> Callable[[str], str]:
    """Return a factory: role -> JWT for a user with that role.

    Users are created on first request and reused within the module.
    """
    tokens: dict[str, str] = {}

    def _token(role: str) -> str:
        if role not in tokens:
            store: UserStore = app.state.user_store
            username = f"test{role}"
            uid = store.create_user(User(username=username, role=role, hashed_password=hash_password("rolepass123")))
            tokens[role] = create_access_token(user_id=uid, username=username, role=role, expire_seconds=3600)
        return tokens[role]

    return _token
