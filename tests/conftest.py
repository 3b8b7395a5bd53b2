"""
tests/conftest.py - Shared Test Fixtures
=========================================
"""

from __future__ import annotations

import asyncio
import os

# ---------------------------------------------------------------------------
# Ensure a valid JWT_SECRET is always set for test runs.
# This must happen before any import of tekron.api.deps which validates
# the secret at module-load time.
# ---------------------------------------------------------------------------
_TEST_JWT_SECRET = "test-secret-for-pytest-only-" + "x" * 40  # > 32 chars
os.environ.setdefault("JWT_SECRET", _TEST_JWT_SECRET)

from unittest.mock import AsyncMock, MagicMock  # noqa: E402

import pytest  # noqa: E402
from sqlalchemy import Engine, create_engine  # noqa: E402

# ---------------------------------------------------------------------------
# Make JSONB columns work in SQLite for testing.
# SQLite doesn't support JSONB natively, so it is rendered as TEXT.
# ---------------------------------------------------------------------------
from sqlalchemy.dialects.postgresql import JSONB as PG_JSONB  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from tekron.config import TekronConfig  # noqa: E402
from tekron.database.models import (  # noqa: E402
    Admin,
    Base,
    Event,
    EventParticipant,
    Participant,
    Role,
    Volunteer,
)
from tekron.services.auth_service import hash_password  # noqa: E402

_jsonb_sqlite_registered = False


def _register_jsonb_sqlite_compat():
    """Register SQLite compilation for PG JSONB type (idempotent)."""
    global _jsonb_sqlite_registered
    if _jsonb_sqlite_registered:
        return
    from sqlalchemy.ext.compiler import compiles

    @compiles(PG_JSONB, "sqlite")
    def _compile_jsonb_as_text(type_, compiler, **kw):
        return "TEXT"

    _jsonb_sqlite_registered = True


_register_jsonb_sqlite_compat()

PASSWORD = "correct-horse-battery"
_PASSWORD_HASH = hash_password(PASSWORD)


def run_async(coro):
    """Run an async coroutine in a fresh event loop (no pytest-asyncio)."""
    return asyncio.run(coro)


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------
@pytest.fixture
def db_engine() -> Engine:
    """In-memory SQLite engine with all Tekron tables.

    Uses StaticPool so all threads share the same in-memory database
    (required by ``asyncio.to_thread`` inside ``run_db``).
    """
    engine = create_engine(
        "sqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return engine


@pytest.fixture
def db_session(db_engine: Engine):
    """Provide a session that rolls back after each test."""
    with Session(db_engine) as session:
        yield session
        session.rollback()


# ---------------------------------------------------------------------------
# Row factories
# ---------------------------------------------------------------------------
def make_participant(
    engine: Engine,
    *,
    email: str = "ada@example.com",
    name: str = "Ada",
    approved: bool = False,
    checked_in: bool = False,
    xp: int = 0,
    push_token: str | None = None,
    qr_code: str | None = None,
) -> int:
    with Session(engine) as session:
        p = Participant(
            email=email,
            name=name,
            password_hash=_PASSWORD_HASH,
            approved=approved,
            checked_in=checked_in,
            xp=xp,
            level=1 + xp // 100,
            push_token=push_token,
            qr_code=qr_code,
        )
        session.add(p)
        session.commit()
        if p.qr_code is None:
            p.qr_code = f"TKR-{p.id}-test"
            session.commit()
        return p.id


def make_admin(
    engine: Engine,
    *,
    email: str = "admin@example.com",
    name: str = "Admin",
    role: Role = Role.ADMIN,
    push_token: str | None = None,
) -> int:
    with Session(engine) as session:
        a = Admin(
            email=email,
            name=name,
            password_hash=_PASSWORD_HASH,
            role=role.value,
            push_token=push_token,
        )
        session.add(a)
        session.commit()
        return a.id


def make_volunteer(
    engine: Engine,
    *,
    email: str = "vol@example.com",
    name: str = "Vol",
    assigned_event_id: int | None = None,
) -> int:
    with Session(engine) as session:
        v = Volunteer(
            email=email,
            name=name,
            password_hash=_PASSWORD_HASH,
            assigned_event_id=assigned_event_id,
        )
        session.add(v)
        session.commit()
        return v.id


def make_event(engine: Engine, *, title: str = "Hackathon", status: str = "SCHEDULED") -> int:
    with Session(engine) as session:
        e = Event(title=title, location="Hall A", status=status)
        session.add(e)
        session.commit()
        return e.id


def enroll(engine: Engine, event_id: int, participant_id: int, score: int = 0) -> None:
    with Session(engine) as session:
        session.add(EventParticipant(event_id=event_id, participant_id=participant_id, score=score))
        session.commit()


# ---------------------------------------------------------------------------
# API
# ---------------------------------------------------------------------------
@pytest.fixture
def test_config() -> TekronConfig:
    return TekronConfig(
        event_name="Tekron Test",
        venue_name="Test Campus",
        venue_instructions="Go to the front desk.",
        map_embed_url="https://maps.example/embed",
        token_ttl_hours=1,
    )


@pytest.fixture
def notifier() -> MagicMock:
    """Stand-in push notifier; ``send`` is an AsyncMock."""
    mock = MagicMock()
    mock.send = AsyncMock(return_value=0)
    return mock


@pytest.fixture
def alert_bus():
    from tekron.services.alert_bus import AlertBus

    return AlertBus()


@pytest.fixture
def client(db_engine, test_config, notifier, alert_bus):
    """FastAPI TestClient wired to the in-memory database.

    Not used as a context manager, so the lifespan (which needs a real
    ``DATABASE_URL``) never runs.
    """
    from fastapi.testclient import TestClient

    from tekron.api.deps import get_alert_bus, get_config, get_engine, get_notifier
    from tekron.api.main import app

    app.dependency_overrides[get_engine] = lambda: db_engine
    app.dependency_overrides[get_config] = lambda: test_config
    app.dependency_overrides[get_notifier] = lambda: notifier
    app.dependency_overrides[get_alert_bus] = lambda: alert_bus
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()


def make_token(principal_id: int, role: Role, *, ttl_hours: int = 1) -> str:
    """Issue a bearer token exactly as ``/auth/login`` would."""
    from tekron.api.auth import issue_token
    from tekron.services.auth_service import Account

    token, _ = issue_token(Account(principal_id, role, "n", "e@example.com"), ttl_hours)
    return token


def auth(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}
