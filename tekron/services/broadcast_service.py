"""
tekron.services.broadcast_service - Push Fan-out to an Audience
================================================================

Computes the token set for an audience, removes duplicates, and hands the
whole batch to the notifier in **one** call.  The reported count is the
number of distinct tokens targeted; delivery failures are logged by
:func:`_deliver` and never turn a broadcast into an error for the caller.
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

from sqlalchemy import Engine, select
from sqlalchemy.orm import Session

from tekron.database.engine import run_db
from tekron.database.models import Admin, Event, EventParticipant, Participant
from tekron.errors import NotFound, ValidationError

if TYPE_CHECKING:
    from tekron.services.notifications import PushNotifier

logger = logging.getLogger(__name__)


class Audience(enum.StrEnum):
    PARTICIPANTS = "participants"
    ADMINS = "admins"
    ALL = "all"


def parse_audience(value: str) -> Audience:
    try:
        return Audience(value)
    except ValueError:
        raise ValidationError(
            f"Unknown targets {value!r}",
            fields={"targets": "must be one of participants, admins, all"},
        ) from None


def dedupe(tokens: Iterable[str | None]) -> list[str]:
    """Drop empties and duplicates, keeping first-seen order."""
    seen: set[str] = set()
    result: list[str] = []
    for token in tokens:
        if token and token not in seen:
            seen.add(token)
            result.append(token)
    return result


# ---------------------------------------------------------------------------
# Token collection (sync - run via run_db)
# ---------------------------------------------------------------------------
def collect_tokens(engine: Engine, audience: Audience) -> list[str]:
    tokens: list[str | None] = []
    with Session(engine) as session:
        if audience in (Audience.PARTICIPANTS, Audience.ALL):
            tokens.extend(session.scalars(
                select(Participant.push_token)
                .where(Participant.push_token.is_not(None))
                .order_by(Participant.id)
            ).all())
        if audience in (Audience.ADMINS, Audience.ALL):
            tokens.extend(session.scalars(
                select(Admin.push_token)
                .where(Admin.push_token.is_not(None))
                .order_by(Admin.id)
            ).all())
    return dedupe(tokens)


def collect_event_tokens(engine: Engine, event_id: int) -> tuple[str, list[str]]:
    """Return (event title, tokens of its enrolled participants)."""
    with Session(engine) as session:
        event = session.get(Event, event_id)
        if event is None:
            raise NotFound(f"Event {event_id} not found")
        tokens = session.scalars(
            select(Participant.push_token)
            .join(EventParticipant, EventParticipant.participant_id == Participant.id)
            .where(
                EventParticipant.event_id == event_id,
                Participant.push_token.is_not(None),
            )
        ).all()
        return event.title, dedupe(tokens)


def collect_participant_token(engine: Engine, participant_id: int) -> list[str]:
    with Session(engine) as session:
        token = session.scalar(
            select(Participant.push_token).where(Participant.id == participant_id)
        )
    return dedupe([token])


# ---------------------------------------------------------------------------
# Delivery
# ---------------------------------------------------------------------------
async def _deliver(
    notifier: PushNotifier,
    tokens: list[str],
    title: str,
    body: str,
    data: dict[str, Any] | None = None,
) -> None:
    if not tokens:
        return
    try:
        await notifier.send(tokens, title, body, data)
    except Exception:
        logger.exception("Push delivery failed for %d tokens", len(tokens))


async def broadcast(
    engine: Engine,
    notifier: PushNotifier,
    *,
    title: str,
    message: str,
    targets: Audience | str = Audience.ALL,
    data: dict[str, Any] | None = None,
) -> int:
    """Notify every device in *targets*; return the number of tokens."""
    audience = targets if isinstance(targets, Audience) else parse_audience(targets)
    tokens = await run_db(collect_tokens, engine, audience)
    await _deliver(notifier, tokens, title, message, data)
    logger.info("Broadcast %r to %s: %d tokens", title, audience.value, len(tokens))
    return len(tokens)


async def notify_event_participants(
    engine: Engine,
    notifier: PushNotifier,
    *,
    event_id: int,
    title: str | None,
    message: str,
) -> int:
    """Notify participants enrolled in *event_id*; ``NotFound`` if absent."""
    event_title, tokens = await run_db(collect_event_tokens, engine, event_id)
    await _deliver(
        notifier,
        tokens,
        title or f"Event Update: {event_title}",
        message,
        {"eventId": event_id},
    )
    return len(tokens)


async def notify_participant(
    engine: Engine,
    notifier: PushNotifier,
    *,
    participant_id: int,
    title: str,
    message: str,
    data: dict[str, Any] | None = None,
) -> int:
    tokens = await run_db(collect_participant_token, engine, participant_id)
    await _deliver(notifier, tokens, title, message, data)
    return len(tokens)
