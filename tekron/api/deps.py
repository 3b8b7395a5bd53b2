"""
tekron.api.deps - FastAPI dependency injection
===============================================

Bearer credentials are turned into an explicit :class:`SessionContext` on
every request.  The context is rebuilt from storage each time, so an
approval takes effect on the participant's next request and a signed-out
(revoked) token stops working immediately.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import UTC, datetime
from functools import lru_cache
from typing import Annotated

import jwt
from fastapi import Depends, Header
from jwt.exceptions import InvalidTokenError
from sqlalchemy import Engine
from sqlalchemy.orm import Session

from tekron.config import TekronConfig, load_config
from tekron.database.engine import create_db_engine
from tekron.database.models import Admin, Participant, Role, Volunteer
from tekron.engine.access import AccessDecision, Principal, RouteGroup, decide_any
from tekron.errors import Forbidden, Unauthorized
from tekron.services.alert_bus import AlertBus
from tekron.services.auth_service import is_revoked
from tekron.services.notifications import ExpoPushNotifier, PushNotifier

_WEAK_SECRETS = frozenset({
    "tekron-dev-secret-change-me",
    "change-me",
    "secret",
    "dev",
    "",
})

_MIN_SECRET_LENGTH = 32

JWT_ALGORITHM = "HS256"


def _load_jwt_secret() -> str:
    """Load and validate JWT_SECRET from the environment.

    Raises RuntimeError at import time if the secret is missing, blank,
    too short (< 32 chars), or a known weak default.
    """
    secret = os.getenv("JWT_SECRET", "")
    if not secret:
        raise RuntimeError(
            "JWT_SECRET environment variable is not set. "
            "Generate one with: python -c \"import secrets; print(secrets.token_urlsafe(64))\""
        )
    if secret in _WEAK_SECRETS:
        raise RuntimeError(
            f"JWT_SECRET is set to a known weak default ('{secret}'). "
            "Please set a strong, unique secret."
        )
    if len(secret) < _MIN_SECRET_LENGTH:
        raise RuntimeError(
            f"JWT_SECRET is too short ({len(secret)} chars). "
            f"Minimum length is {_MIN_SECRET_LENGTH} characters."
        )
    return secret


JWT_SECRET: str = _load_jwt_secret()


# ---------------------------------------------------------------------------
# Process-wide singletons
# ---------------------------------------------------------------------------
@lru_cache(maxsize=1)
def get_engine() -> Engine:
    return create_db_engine()


@lru_cache(maxsize=1)
def get_config() -> TekronConfig:
    return load_config()


@lru_cache(maxsize=1)
def get_notifier() -> PushNotifier:
    cfg = get_config()
    return ExpoPushNotifier(cfg.push_gateway_url, timeout=cfg.push_timeout_seconds)


@lru_cache(maxsize=1)
def get_alert_bus() -> AlertBus:
    return AlertBus()


def get_session(engine: Annotated[Engine, Depends(get_engine)]):
    with Session(engine) as session:
        yield session


# ---------------------------------------------------------------------------
# Session context
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class SessionContext:
    """The authenticated principal for the current request."""

    principal_id: int
    role: Role
    name: str
    email: str
    jti: str
    expires_at: datetime
    approved: bool = False

    @property
    def principal(self) -> Principal:
        return Principal(self.role, self.approved)

    @property
    def is_staff(self) -> bool:
        return self.role in (Role.ADMIN, Role.SUPERADMIN)


def decode_token(token: str) -> dict:
    try:
        payload = jwt.decode(
            token,
            JWT_SECRET,
            algorithms=[JWT_ALGORITHM],
            options={"require": ["sub", "role", "jti", "exp"]},
        )
    except InvalidTokenError:
        raise Unauthorized("Invalid or expired token") from None
    try:
        payload["role"] = Role(payload["role"])
        payload["sub"] = int(payload["sub"])
    except (TypeError, ValueError):
        raise Unauthorized("Invalid token claims") from None
    return payload


def load_context(session: Session, payload: dict) -> SessionContext:
    """Resolve decoded claims against storage."""
    if is_revoked(session, payload["jti"]):
        raise Unauthorized("Session has been signed out")

    role: Role = payload["role"]
    principal_id: int = payload["sub"]
    expires_at = datetime.fromtimestamp(payload["exp"], UTC)

    if role == Role.PARTICIPANT:
        row = session.get(Participant, principal_id)
        if row is None:
            raise Unauthorized("Account no longer exists")
        return SessionContext(
            principal_id, role, row.name, row.email, payload["jti"], expires_at,
            approved=row.approved,
        )
    if role == Role.VOLUNTEER:
        row = session.get(Volunteer, principal_id)
        if row is None:
            raise Unauthorized("Account no longer exists")
        return SessionContext(principal_id, role, row.name, row.email, payload["jti"], expires_at)

    row = session.get(Admin, principal_id)
    if row is None or row.role != role:
        raise Unauthorized("Account no longer exists")
    return SessionContext(principal_id, role, row.name, row.email, payload["jti"], expires_at)


def get_session_context(
    authorization: Annotated[str | None, Header()] = None,
    session: Session = Depends(get_session),
) -> SessionContext:
    """Validate the bearer JWT and return the caller's context. 401 if invalid."""
    if not authorization or not authorization.startswith("Bearer "):
        raise Unauthorized("Missing token")
    payload = decode_token(authorization.split(" ", 1)[1].strip())
    return load_context(session, payload)


def require(*groups: RouteGroup):
    """Dependency factory gating a route on the access table.

    Usage::

        @router.get("/admin/participants")
        def list_all(ctx: SessionContext = Depends(require(RouteGroup.ADMIN))): ...
    """
    if not groups:
        raise ValueError("require() needs at least one route group")

    def dependency(ctx: SessionContext = Depends(get_session_context)) -> SessionContext:
        if decide_any(ctx.principal, groups) is not AccessDecision.ALLOW:
            if ctx.role == Role.PARTICIPANT and not ctx.approved:
                raise Forbidden("Account pending approval")
            raise Forbidden("Insufficient permissions")
        return ctx

    return dependency


# Shorthands used across routers
participant_limited = require(RouteGroup.PARTICIPANT_LIMITED)
participant_restricted = require(RouteGroup.PARTICIPANT_RESTRICTED)
admin_only = require(RouteGroup.ADMIN)
superadmin_only = require(RouteGroup.SUPERADMIN)
volunteer_only = require(RouteGroup.VOLUNTEER)
staff = require(RouteGroup.ADMIN, RouteGroup.SUPERADMIN)
