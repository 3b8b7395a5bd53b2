"""
tekron.services.xp_service - Atomic XP Awards
==============================================

The only writer of ``participants.xp`` and ``participants.level``.

The increment and the recomputed level are applied in **one** SQL statement::

    UPDATE participants
       SET xp = xp + :amount,
           level = (xp + :amount) / 100 + 1
     WHERE id = :id
    RETURNING xp

Both right-hand sides see the pre-update row, so the level always matches
the new XP, and two concurrent awards serialize on the row lock instead of
overwriting each other (no read-modify-write in Python).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import Engine, func, select, update
from sqlalchemy.orm import Session

from tekron.constants import XP_PER_LEVEL, calculate_level
from tekron.database.models import Participant
from tekron.errors import NotFound, ValidationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class XpResult:
    """Outcome of one award."""

    participant_id: int
    amount: int
    xp: int
    old_level: int
    new_level: int

    @property
    def leveled_up(self) -> bool:
        return self.new_level > self.old_level

    def to_dict(self) -> dict:
        return {
            "participant_id": self.participant_id,
            "amount": self.amount,
            "xp": self.xp,
            "old_level": self.old_level,
            "new_level": self.new_level,
            "leveled_up": self.leveled_up,
        }


def apply_xp(session: Session, participant_id: int, amount: int) -> XpResult:
    """Award *amount* inside the caller's transaction.

    Lets check-in, feedback and event completion commit their own state
    change and the XP award together.
    """
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise ValidationError(
            "XP amount must be a positive integer", fields={"amount": str(amount)}
        )

    new_xp = session.scalar(
        update(Participant)
        .where(Participant.id == participant_id)
        .values(
            xp=Participant.xp + amount,
            level=(Participant.xp + amount) // XP_PER_LEVEL + 1,
        )
        .returning(Participant.xp)
        .execution_options(synchronize_session=False)
    )
    if new_xp is None:
        raise NotFound(f"Participant {participant_id} not found")

    result = XpResult(
        participant_id=participant_id,
        amount=amount,
        xp=new_xp,
        old_level=calculate_level(new_xp - amount),
        new_level=calculate_level(new_xp),
    )
    if result.leveled_up:
        logger.info(
            "Participant %d leveled up %d -> %d", participant_id,
            result.old_level, result.new_level,
        )
    return result


def add_xp(engine: Engine, participant_id: int, amount: int) -> XpResult:
    """Award *amount* XP to a participant in its own transaction."""
    with Session(engine) as session:
        result = apply_xp(session, participant_id, amount)
        session.commit()
        return result


def get_progress(session: Session, participant_id: int) -> Participant:
    participant = session.get(Participant, participant_id)
    if participant is None:
        raise NotFound(f"Participant {participant_id} not found")
    return participant


def leaderboard(session: Session, limit: int = 50) -> list[dict]:
    """Approved participants ranked by XP (ties broken by earliest signup)."""
    rows = session.scalars(
        select(Participant)
        .where(Participant.approved.is_(True))
        .order_by(Participant.xp.desc(), Participant.id)
        .limit(limit)
    ).all()
    return [
        {"rank": i, "id": p.id, "name": p.name, "xp": p.xp, "level": p.level}
        for i, p in enumerate(rows, start=1)
    ]


def total_xp(session: Session) -> int:
    return session.scalar(select(func.coalesce(func.sum(Participant.xp), 0))) or 0
