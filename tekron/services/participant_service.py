"""
tekron.services.participant_service - Registration, Approval & Check-in
========================================================================

Owns the participant lifecycle::

    register -> Unapproved --approve--> Approved --check_in--> CheckedIn

Approval and check-in are **conditional updates** (``WHERE approved =
false`` / ``WHERE checked_in = false``), so when two staff members act on
the same participant at once exactly one UPDATE matches a row.  Only that
caller writes the audit entry, awards XP, and gets ``changed=True`` back
(the API layer sends the approval push only in that case).
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import UTC, datetime

from sqlalchemy import Engine, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from tekron.constants import XpAward
from tekron.database.engine import get_session
from tekron.database.models import (
    Admin,
    AuditActionType,
    Event,
    EventParticipant,
    Participant,
    Volunteer,
)
from tekron.engine.lifecycle import ensure_can_check_in, new_qr_code
from tekron.errors import Conflict, NotFound
from tekron.services import audit, xp_service
from tekron.services.auth_service import hash_password

logger = logging.getLogger(__name__)


def participant_dict(p: Participant) -> dict:
    return {
        "id": p.id,
        "name": p.name,
        "email": p.email,
        "approved": p.approved,
        "approved_at": p.approved_at.isoformat() if p.approved_at else None,
        "checked_in": p.checked_in,
        "checked_in_at": p.checked_in_at.isoformat() if p.checked_in_at else None,
        "xp": p.xp,
        "level": p.level,
        "qr_code": p.qr_code,
    }


def _get_or_404(session: Session, participant_id: int) -> Participant:
    participant = session.get(Participant, participant_id)
    if participant is None:
        raise NotFound(f"Participant {participant_id} not found")
    return participant


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------
def register(
    engine: Engine,
    *,
    name: str,
    email: str,
    password: str,
    event_ids: Iterable[int] = (),
) -> dict:
    """Create an unapproved participant enrolled in *event_ids*.

    Raises :class:`Conflict` for a taken email and :class:`NotFound` for an
    unknown event; nothing is written in either case.
    """
    email = email.strip().lower()
    wanted = list(dict.fromkeys(event_ids))

    with get_session(engine) as session:
        for model in (Participant, Admin, Volunteer):
            if session.scalar(select(model.id).where(model.email == email)) is not None:
                raise Conflict("Email is already registered", fields={"email": email})

        for event_id in wanted:
            if session.get(Event, event_id) is None:
                raise NotFound(f"Event {event_id} not found")

        participant = Participant(
            name=name.strip(),
            email=email,
            password_hash=hash_password(password),
        )
        try:
            with session.begin_nested():
                session.add(participant)
                session.flush()
        except IntegrityError:
            raise Conflict("Email is already registered", fields={"email": email}) from None

        participant.qr_code = new_qr_code(participant.id)
        for event_id in wanted:
            session.add(EventParticipant(event_id=event_id, participant_id=participant.id))
        session.flush()

        logger.info("Registered participant %d (%d events)", participant.id, len(wanted))
        return participant_dict(participant)


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------
def get_participant(engine: Engine, participant_id: int) -> dict:
    with Session(engine) as session:
        return participant_dict(_get_or_404(session, participant_id))


def list_participants(engine: Engine, *, approved: bool | None = None) -> list[dict]:
    stmt = select(Participant).order_by(Participant.created_at, Participant.id)
    if approved is not None:
        stmt = stmt.where(Participant.approved.is_(approved))
    with Session(engine) as session:
        return [participant_dict(p) for p in session.scalars(stmt).all()]


def list_pending(engine: Engine) -> list[dict]:
    return list_participants(engine, approved=False)


def find_by_qr(engine: Engine, code: str) -> dict:
    """Resolve a scanned desk code to its participant."""
    with Session(engine) as session:
        participant = session.scalar(
            select(Participant).where(Participant.qr_code == code.strip())
        )
        if participant is None:
            raise NotFound("Invalid QR code")
        return participant_dict(participant)


def get_status(engine: Engine, participant_id: int) -> dict:
    with Session(engine) as session:
        p = _get_or_404(session, participant_id)
        return {
            "id": p.id,
            "approved": p.approved,
            "checked_in": p.checked_in,
            "mode": "full" if p.approved else "limited",
        }


def enrolled_events(engine: Engine, participant_id: int) -> list[dict]:
    with Session(engine) as session:
        _get_or_404(session, participant_id)
        rows = session.execute(
            select(Event, EventParticipant)
            .join(EventParticipant, EventParticipant.event_id == Event.id)
            .where(EventParticipant.participant_id == participant_id)
            .order_by(Event.starts_at, Event.id)
        ).all()
        return [
            {
                "id": event.id,
                "title": event.title,
                "location": event.location,
                "starts_at": event.starts_at.isoformat() if event.starts_at else None,
                "status": event.status,
                "score": link.score,
                "is_winner": link.is_winner,
            }
            for event, link in rows
        ]


def stats(engine: Engine) -> dict:
    with Session(engine) as session:
        total = session.scalar(select(func.count(Participant.id))) or 0
        approved = session.scalar(
            select(func.count(Participant.id)).where(Participant.approved.is_(True))
        ) or 0
        checked_in = session.scalar(
            select(func.count(Participant.id)).where(Participant.checked_in.is_(True))
        ) or 0
        return {
            "total": total,
            "approved": approved,
            "pending": total - approved,
            "checked_in": checked_in,
            "total_xp": xp_service.total_xp(session),
        }


# ---------------------------------------------------------------------------
# Approval
# ---------------------------------------------------------------------------
def approve(
    engine: Engine,
    participant_id: int,
    *,
    actor_id: int,
    actor_role: str,
) -> tuple[dict, bool]:
    """Approve a participant.

    Returns ``(participant, changed)``.  ``changed`` is ``False`` when the
    participant was already approved; no audit row is written then.
    """
    now = datetime.now(UTC)
    with get_session(engine) as session:
        participant = _get_or_404(session, participant_id)
        before = audit.row_to_dict(participant)

        result = session.execute(
            update(Participant)
            .where(Participant.id == participant_id, Participant.approved.is_(False))
            .values(approved=True, approved_at=now, approved_by_id=actor_id)
            .execution_options(synchronize_session=False)
        )
        changed = result.rowcount == 1
        session.refresh(participant)

        if changed:
            audit.log_action(
                session,
                actor_id=actor_id,
                actor_role=actor_role,
                action_type=AuditActionType.APPROVE,
                target_table="participants",
                target_id=participant_id,
                before=before,
                after=audit.row_to_dict(participant),
            )
            logger.info("Participant %d approved by %s %d", participant_id, actor_role, actor_id)
        return participant_dict(participant), changed


# ---------------------------------------------------------------------------
# Check-in
# ---------------------------------------------------------------------------
def check_in(
    engine: Engine,
    participant_id: int,
    *,
    actor_id: int,
    actor_role: str,
) -> dict:
    """Check a participant in and award ``CHECK_IN`` XP on the first call.

    Raises :class:`InvalidTransition` for an unapproved participant.  A
    repeated check-in returns ``checked_in_now=False`` and ``xp=None``.
    """
    now = datetime.now(UTC)
    with get_session(engine) as session:
        participant = _get_or_404(session, participant_id)
        ensure_can_check_in(participant.approved)
        before = audit.row_to_dict(participant)

        result = session.execute(
            update(Participant)
            .where(
                Participant.id == participant_id,
                Participant.approved.is_(True),
                Participant.checked_in.is_(False),
            )
            .values(checked_in=True, checked_in_at=now)
            .execution_options(synchronize_session=False)
        )
        xp_result = None
        if result.rowcount == 1:
            xp_result = xp_service.apply_xp(session, participant_id, XpAward.CHECK_IN)
            session.refresh(participant)
            audit.log_action(
                session,
                actor_id=actor_id,
                actor_role=actor_role,
                action_type=AuditActionType.CHECK_IN,
                target_table="participants",
                target_id=participant_id,
                before=before,
                after=audit.row_to_dict(participant),
            )
            logger.info("Participant %d checked in by %s %d", participant_id, actor_role, actor_id)

        return {
            "participant": participant_dict(participant),
            "checked_in_now": xp_result is not None,
            "xp": xp_result.to_dict() if xp_result else None,
        }


def check_in_by_qr(engine: Engine, code: str, *, actor_id: int, actor_role: str) -> dict:
    participant = find_by_qr(engine, code)
    return check_in(engine, participant["id"], actor_id=actor_id, actor_role=actor_role)
