"""
tekron.api.auth - Login, Registration & JWT issuance
=====================================================

A successful login creates the session: a signed HS256 JWT carrying
``sub``, ``role``, ``jti`` and ``exp``.  Logout tears it down by recording
the ``jti`` in ``revoked_tokens`` until the token would have expired anyway.
"""

from __future__ import annotations

import logging
import secrets
from datetime import UTC, datetime, timedelta

import jwt
from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from tekron.api.deps import (
    JWT_ALGORITHM,
    JWT_SECRET,
    SessionContext,
    get_config,
    get_engine,
    get_session_context,
)
from tekron.config import TekronConfig
from tekron.database.engine import run_db
from tekron.database.models import Role
from tekron.services import auth_service, participant_service
from tekron.services.auth_service import Account

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/auth", tags=["auth"])


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------
class LoginBody(BaseModel):
    email: str = Field(min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")
    password: str = Field(min_length=1)


class RegisterBody(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    email: str = Field(min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")
    password: str = Field(min_length=8)
    event_ids: list[int] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Token helpers
# ---------------------------------------------------------------------------
def issue_token(account: Account, ttl_hours: int) -> tuple[str, datetime]:
    expires_at = datetime.now(UTC) + timedelta(hours=ttl_hours)
    payload = {
        "sub": str(account.id),
        "role": account.role.value,
        "jti": secrets.token_hex(16),
        "exp": expires_at,
    }
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM), expires_at


def _session_body(account: Account, cfg: TekronConfig) -> dict:
    token, expires_at = issue_token(account, cfg.token_ttl_hours)
    return {
        "token": token,
        "token_type": "bearer",
        "expires_at": expires_at.isoformat(),
        "user": account.to_dict(),
    }


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------
@router.post("/login")
async def login(
    body: LoginBody,
    cfg: TekronConfig = Depends(get_config),
    engine=Depends(get_engine),
):
    """Exchange email + password for a bearer token."""
    account = await run_db(auth_service.authenticate, engine, body.email, body.password)
    logger.info("Login: %s %d", account.role.value, account.id)
    return _session_body(account, cfg)


@router.post("/register", status_code=201)
async def register(
    body: RegisterBody,
    cfg: TekronConfig = Depends(get_config),
    engine=Depends(get_engine),
):
    """Self-service participant signup.  The account starts unapproved."""
    created = await run_db(
        participant_service.register,
        engine,
        name=body.name,
        email=body.email,
        password=body.password,
        event_ids=body.event_ids,
    )
    account = Account(
        created["id"],
        Role.PARTICIPANT,
        created["name"],
        created["email"],
        approved=False,
        qr_code=created["qr_code"],
    )
    return _session_body(account, cfg)


@router.post("/logout")
async def logout(
    ctx: SessionContext = Depends(get_session_context),
    engine=Depends(get_engine),
):
    await run_db(auth_service.revoke_token, engine, ctx.jti, ctx.expires_at)
    logger.info("Logout: %s %d", ctx.role.value, ctx.principal_id)
    return {"status": "signed_out"}


@router.get("/me")
def me(ctx: SessionContext = Depends(get_session_context)):
    """Return the current principal as stored right now."""
    data = {
        "id": ctx.principal_id,
        "name": ctx.name,
        "email": ctx.email,
        "role": ctx.role.value,
    }
    if ctx.role == Role.PARTICIPANT:
        data["approved"] = ctx.approved
    return data
