"""
tekron.services.event_service - Events, Scores & Winners
=========================================================

Event CRUD (superadmin), status transitions (staff), per-event scores and
winner declaration.  Every mutation is audited.

Status changes are applied with ``WHERE status = <current>`` so that two
staff members completing the same event cannot both award completion XP.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import Engine, select, update
from sqlalchemy.orm import Session

from tekron.constants import XpAward
from tekron.database.engine import get_session
from tekron.database.models import (
    AuditActionType,
    Event,
    EventParticipant,
    EventStatus,
    Participant,
)
from tekron.engine.lifecycle import ensure_event_transition
from tekron.errors import Conflict, NotFound, ValidationError
from tekron.services import audit, xp_service

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("title", "description", "location", "starts_at", "ends_at")
REQUIRED_FIELDS = ("title",)


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _as_utc(value: datetime) -> datetime:
    """Naive timestamps are taken to be UTC (SQLite drops the offset)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def _ensure_ordered(starts_at: datetime | None, ends_at: datetime | None) -> None:
    if starts_at and ends_at and _as_utc(ends_at) < _as_utc(starts_at):
        raise ValidationError("Event ends before it starts", fields={"ends_at": "before starts_at"})


def event_dict(event: Event) -> dict:
    return {
        "id": event.id,
        "title": event.title,
        "description": event.description,
        "location": event.location,
        "starts_at": _iso(event.starts_at),
        "ends_at": _iso(event.ends_at),
        "status": event.status,
    }


def parse_status(value: str) -> EventStatus:
    try:
        return EventStatus(value.upper())
    except ValueError:
        raise ValidationError(
            f"Unknown event status {value!r}",
            fields={"status": f"must be one of {[s.value for s in EventStatus]}"},
        ) from None


def _get_or_404(session: Session, event_id: int) -> Event:
    event = session.get(Event, event_id)
    if event is None:
        raise NotFound(f"Event {event_id} not found")
    return event


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------
def get_event(engine: Engine, event_id: int) -> dict:
    with Session(engine) as session:
        return event_dict(_get_or_404(session, event_id))


def list_events(engine: Engine, *, status: str | None = None) -> list[dict]:
    stmt = select(Event).order_by(Event.starts_at, Event.id)
    if status is not None:
        stmt = stmt.where(Event.status == parse_status(status).value)
    with Session(engine) as session:
        return [event_dict(e) for e in session.scalars(stmt).all()]


def list_live(engine: Engine) -> list[dict]:
    return list_events(engine, status=EventStatus.ACTIVE)


def event_leaderboard(engine: Engine, event_id: int) -> list[dict]:
    """Enrolled participants ranked by event score (descending)."""
    with Session(engine) as session:
        _get_or_404(session, event_id)
        rows = session.execute(
            select(EventParticipant, Participant)
            .join(Participant, Participant.id == EventParticipant.participant_id)
            .where(EventParticipant.event_id == event_id)
            .order_by(EventParticipant.score.desc(), Participant.id)
        ).all()
        return [
            {
                "rank": i,
                "participant_id": p.id,
                "name": p.name,
                "score": link.score,
                "is_winner": link.is_winner,
            }
            for i, (link, p) in enumerate(rows, start=1)
        ]


# ---------------------------------------------------------------------------
# Superadmin CRUD
# ---------------------------------------------------------------------------
def create_event(
    engine: Engine,
    *,
    title: str,
    actor_id: int,
    actor_role: str,
    description: str | None = None,
    location: str | None = None,
    starts_at: datetime | None = None,
    ends_at: datetime | None = None,
) -> dict:
    _ensure_ordered(starts_at, ends_at)
    with get_session(engine) as session:
        event = Event(
            title=title,
            description=description,
            location=location,
            starts_at=starts_at,
            ends_at=ends_at,
            status=EventStatus.SCHEDULED.value,
        )
        session.add(event)
        session.flush()
        audit.log_action(
            session,
            actor_id=actor_id,
            actor_role=actor_role,
            action_type=AuditActionType.CREATE,
            target_table="events",
            target_id=event.id,
            after=audit.row_to_dict(event),
        )
        logger.info("Event %d %r created", event.id, title)
        return event_dict(event)


def update_event(
    engine: Engine,
    event_id: int,
    *,
    actor_id: int,
    actor_role: str,
    **changes: Any,
) -> dict:
    """Edit descriptive fields.  Status moves only via :func:`update_status`."""
    unknown = set(changes) - set(EDITABLE_FIELDS)
    if unknown:
        raise ValidationError(
            "Unsupported event fields", fields={k: "not editable" for k in sorted(unknown)}
        )
    missing = [k for k in REQUIRED_FIELDS if k in changes and changes[k] is None]
    if missing:
        raise ValidationError("Required event fields", fields={k: "required" for k in missing})
    with get_session(engine) as session:
        event = _get_or_404(session, event_id)
        before = audit.row_to_dict(event)
        for key, value in changes.items():
            setattr(event, key, value)
        _ensure_ordered(event.starts_at, event.ends_at)
        session.flush()
        audit.log_action(
            session,
            actor_id=actor_id,
            actor_role=actor_role,
            action_type=AuditActionType.UPDATE,
            target_table="events",
            target_id=event_id,
            before=before,
            after=audit.row_to_dict(event),
        )
        return event_dict(event)


def delete_event(engine: Engine, event_id: int, *, actor_id: int, actor_role: str) -> None:
    with get_session(engine) as session:
        event = _get_or_404(session, event_id)
        before = audit.row_to_dict(event)
        session.delete(event)
        audit.log_action(
            session,
            actor_id=actor_id,
            actor_role=actor_role,
            action_type=AuditActionType.DELETE,
            target_table="events",
            target_id=event_id,
            before=before,
        )
        logger.info("Event %d deleted by %s %d", event_id, actor_role, actor_id)


# ---------------------------------------------------------------------------
# Status lifecycle
# ---------------------------------------------------------------------------
def update_status(
    engine: Engine,
    event_id: int,
    status: str,
    *,
    actor_id: int,
    actor_role: str,
) -> dict:
    """Move an event to *status*.

    Reaching ``COMPLETED`` awards ``EVENT_COMPLETION`` XP to every enrolled
    participant who checked in.  The returned dict carries the event and the
    list of awards made.
    """
    target = parse_status(status)
    with get_session(engine) as session:
        event = _get_or_404(session, event_id)
        current = event.status
        ensure_event_transition(current, target)
        before = audit.row_to_dict(event)

        result = session.execute(
            update(Event)
            .where(Event.id == event_id, Event.status == current)
            .values(status=target.value)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise Conflict("Event status changed concurrently; retry")
        session.refresh(event)

        awards = []
        if target == EventStatus.COMPLETED:
            attendee_ids = session.scalars(
                select(EventParticipant.participant_id)
                .join(Participant, Participant.id == EventParticipant.participant_id)
                .where(
                    EventParticipant.event_id == event_id,
                    Participant.checked_in.is_(True),
                )
                .order_by(EventParticipant.participant_id)
            ).all()
            for pid in attendee_ids:
                awards.append(
                    xp_service.apply_xp(session, pid, XpAward.EVENT_COMPLETION).to_dict()
                )

        audit.log_action(
            session,
            actor_id=actor_id,
            actor_role=actor_role,
            action_type=AuditActionType.STATUS_CHANGE,
            target_table="events",
            target_id=event_id,
            before=before,
            after=audit.row_to_dict(event),
        )
        logger.info(
            "Event %d: %s -> %s (%d completion awards)",
            event_id, current, target.value, len(awards),
        )
        return {"event": event_dict(event), "awards": awards}


# ---------------------------------------------------------------------------
# Scores & winners
# ---------------------------------------------------------------------------
def _get_enrollment(session: Session, event_id: int, participant_id: int) -> EventParticipant:
    _get_or_404(session, event_id)
    link = session.get(EventParticipant, (event_id, participant_id))
    if link is None:
        raise NotFound(f"Participant {participant_id} is not enrolled in event {event_id}")
    return link


def update_score(
    engine: Engine,
    event_id: int,
    participant_id: int,
    score: int,
    *,
    actor_id: int,
    actor_role: str,
) -> dict:
    if score < 0:
        raise ValidationError("Score cannot be negative", fields={"score": str(score)})
    with get_session(engine) as session:
        link = _get_enrollment(session, event_id, participant_id)
        before = {"score": link.score}
        link.score = score
        audit.log_action(
            session,
            actor_id=actor_id,
            actor_role=actor_role,
            action_type=AuditActionType.UPDATE,
            target_table="event_participants",
            target_id=f"{event_id}:{participant_id}",
            before=before,
            after={"score": score},
        )
        return {"event_id": event_id, "participant_id": participant_id, "score": score}


def declare_winner(
    engine: Engine,
    event_id: int,
    participant_id: int,
    *,
    actor_id: int,
    actor_role: str,
) -> dict:
    """Mark a winner and award ``WINNING_EVENT`` XP once.

    Raises :class:`NotFound` when the participant is not enrolled and
    :class:`Conflict` when they were already declared the winner.
    """
    with get_session(engine) as session:
        _get_enrollment(session, event_id, participant_id)
        result = session.execute(
            update(EventParticipant)
            .where(
                EventParticipant.event_id == event_id,
                EventParticipant.participant_id == participant_id,
                EventParticipant.is_winner.is_(False),
            )
            .values(is_winner=True)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise Conflict("Participant is already a winner of this event")

        xp_result = xp_service.apply_xp(session, participant_id, XpAward.WINNING_EVENT)
        audit.log_action(
            session,
            actor_id=actor_id,
            actor_role=actor_role,
            action_type=AuditActionType.DECLARE_WINNER,
            target_table="event_participants",
            target_id=f"{event_id}:{participant_id}",
            before={"is_winner": False},
            after={"is_winner": True},
        )
        logger.info("Participant %d won event %d", participant_id, event_id)
        return {
            "event_id": event_id,
            "participant_id": participant_id,
            "xp": xp_result.to_dict(),
        }
