"""
tekron.services.auth_service - Credential Checks & Token Revocation
====================================================================

Password hashing, the unified login lookup across the three account tables,
and the revocation list that ends a session before its JWT expires.
JWT encoding/decoding itself lives in :mod:`tekron.api`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime

from sqlalchemy import Engine, delete, select
from sqlalchemy.orm import Session
from werkzeug.security import check_password_hash, generate_password_hash

from tekron.database.engine import get_session
from tekron.database.models import Admin, Participant, RevokedToken, Role, Volunteer
from tekron.errors import Unauthorized

logger = logging.getLogger(__name__)


def hash_password(password: str) -> str:
    return generate_password_hash(password)


def verify_password(password_hash: str, password: str) -> bool:
    return check_password_hash(password_hash, password)


@dataclass(frozen=True, slots=True)
class Account:
    """The identity a login resolved to."""

    id: int
    role: Role
    name: str
    email: str
    approved: bool = False
    qr_code: str | None = None

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role.value,
        }
        if self.role == Role.PARTICIPANT:
            data["approved"] = self.approved
            data["qr_code"] = self.qr_code
        return data


def authenticate(engine: Engine, email: str, password: str) -> Account:
    """Resolve *email* to an account and verify *password*.

    Staff accounts are checked first, then volunteers, then participants.
    Raises :class:`Unauthorized` with a uniform message on any mismatch so
    callers cannot probe which emails exist.
    """
    email = email.strip().lower()
    with Session(engine) as session:
        admin = session.scalar(select(Admin).where(Admin.email == email))
        if admin is not None and verify_password(admin.password_hash, password):
            return Account(admin.id, Role(admin.role), admin.name, admin.email)

        volunteer = session.scalar(select(Volunteer).where(Volunteer.email == email))
        if volunteer is not None and verify_password(volunteer.password_hash, password):
            return Account(volunteer.id, Role.VOLUNTEER, volunteer.name, volunteer.email)

        participant = session.scalar(select(Participant).where(Participant.email == email))
        if participant is not None and verify_password(participant.password_hash, password):
            return Account(
                participant.id,
                Role.PARTICIPANT,
                participant.name,
                participant.email,
                approved=participant.approved,
                qr_code=participant.qr_code,
            )

    logger.info("Failed login for %s", email)
    raise Unauthorized("Invalid credentials")


# ---------------------------------------------------------------------------
# Revocation (session teardown)
# ---------------------------------------------------------------------------
def revoke_token(engine: Engine, jti: str, expires_at: datetime) -> None:
    """Record *jti* as signed out and prune entries that already expired."""
    now = datetime.now(UTC)
    with get_session(engine) as session:
        session.execute(delete(RevokedToken).where(RevokedToken.expires_at < now))
        if session.get(RevokedToken, jti) is None:
            session.add(RevokedToken(jti=jti, expires_at=expires_at))


def is_revoked(session: Session, jti: str) -> bool:
    return session.get(RevokedToken, jti) is not None
