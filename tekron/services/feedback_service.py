"""
tekron.services.feedback_service - Event Ratings
=================================================

One rating (1-5) per participant per event.  The uniqueness is enforced by
``uq_feedback_participant_event``; the insert runs inside a SAVEPOINT so a
duplicate surfaces as :class:`Conflict` and no XP is awarded for it.
"""

from __future__ import annotations

import logging

from sqlalchemy import Engine, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from tekron.constants import MAX_RATING, MIN_RATING, XpAward
from tekron.database.engine import get_session
from tekron.database.models import Event, Feedback
from tekron.errors import Conflict, NotFound, ValidationError
from tekron.services import xp_service

logger = logging.getLogger(__name__)


def feedback_dict(fb: Feedback) -> dict:
    return {
        "id": fb.id,
        "participant_id": fb.participant_id,
        "participant_name": fb.participant.name if fb.participant else None,
        "event_id": fb.event_id,
        "rating": fb.rating,
        "comment": fb.comment,
        "created_at": fb.created_at.isoformat() if fb.created_at else None,
    }


def submit(
    engine: Engine,
    *,
    participant_id: int,
    event_id: int,
    rating: int,
    comment: str | None = None,
) -> dict:
    if isinstance(rating, bool) or not isinstance(rating, int) or not MIN_RATING <= rating <= MAX_RATING:
        raise ValidationError(
            f"Rating must be between {MIN_RATING} and {MAX_RATING}",
            fields={"rating": str(rating)},
        )

    with get_session(engine) as session:
        if session.get(Event, event_id) is None:
            raise NotFound(f"Event {event_id} not found")

        feedback = Feedback(
            participant_id=participant_id,
            event_id=event_id,
            rating=rating,
            comment=comment,
        )
        try:
            with session.begin_nested():
                session.add(feedback)
                session.flush()
        except IntegrityError:
            raise Conflict("Feedback already submitted for this event") from None

        xp_result = xp_service.apply_xp(session, participant_id, XpAward.FEEDBACK_SUBMISSION)
        logger.info("Feedback %d for event %d (rating %d)", feedback.id, event_id, rating)
        return {"feedback": feedback_dict(feedback), "xp": xp_result.to_dict()}


def summary(engine: Engine, event_id: int) -> dict:
    """Total, mean rating (0 when none) and the individual entries."""
    with Session(engine) as session:
        if session.get(Event, event_id) is None:
            raise NotFound(f"Event {event_id} not found")
        items = session.scalars(
            select(Feedback)
            .where(Feedback.event_id == event_id)
            .order_by(Feedback.created_at.desc(), Feedback.id.desc())
        ).all()
        total = len(items)
        average = sum(f.rating for f in items) / total if total else 0
        return {
            "event_id": event_id,
            "total": total,
            "average_rating": average,
            "feedback": [feedback_dict(f) for f in items],
        }
