"""
tekron.services.badge_service - Badge Catalogue & Awards
=========================================================

Superadmins define badges; staff award them to participants.  A badge can
be held once per participant (``uq_participant_badge``), so a repeated award
surfaces as :class:`Conflict`.  The push notification for a new badge is
sent by the route after the award commits.
"""

from __future__ import annotations

import logging

from sqlalchemy import Engine, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from tekron.database.engine import get_session
from tekron.database.models import AuditActionType, Badge, Participant, ParticipantBadge
from tekron.errors import Conflict, NotFound, ValidationError
from tekron.services import audit

logger = logging.getLogger(__name__)

DEFAULT_BADGE_TYPE = "ACHIEVEMENT"


def badge_dict(badge: Badge) -> dict:
    return {
        "id": badge.id,
        "name": badge.name,
        "description": badge.description,
        "icon_url": badge.icon_url,
        "type": badge.type,
    }


def award_dict(award: ParticipantBadge) -> dict:
    return {
        "id": award.id,
        "participant_id": award.participant_id,
        "badge": badge_dict(award.badge),
        "awarded_at": award.awarded_at.isoformat() if award.awarded_at else None,
    }


def create_badge(
    engine: Engine,
    *,
    name: str,
    actor_id: int,
    actor_role: str,
    description: str | None = None,
    icon_url: str | None = None,
    type: str | None = None,
) -> dict:
    name = name.strip()
    if not name:
        raise ValidationError("Badge name is required", fields={"name": "required"})
    badge_type = (type or DEFAULT_BADGE_TYPE).strip().upper() or DEFAULT_BADGE_TYPE

    with get_session(engine) as session:
        badge = Badge(name=name, description=description, icon_url=icon_url, type=badge_type)
        try:
            with session.begin_nested():
                session.add(badge)
                session.flush()
        except IntegrityError:
            raise Conflict(f"Badge {name!r} already exists") from None

        audit.log_action(
            session,
            actor_id=actor_id,
            actor_role=actor_role,
            action_type=AuditActionType.CREATE,
            target_table="badges",
            target_id=badge.id,
            after=audit.row_to_dict(badge),
        )
        logger.info("Badge %d %r created", badge.id, name)
        return badge_dict(badge)


def list_badges(engine: Engine) -> list[dict]:
    with Session(engine) as session:
        badges = session.scalars(select(Badge).order_by(Badge.id)).all()
        return [badge_dict(b) for b in badges]


def award_badge(
    engine: Engine,
    *,
    participant_id: int,
    badge_id: int,
    actor_id: int,
    actor_role: str,
) -> dict:
    """Award *badge_id* to a participant; :class:`Conflict` if already held."""
    with get_session(engine) as session:
        if session.get(Participant, participant_id) is None:
            raise NotFound(f"Participant {participant_id} not found")
        badge = session.get(Badge, badge_id)
        if badge is None:
            raise NotFound(f"Badge {badge_id} not found")

        award = ParticipantBadge(
            participant_id=participant_id,
            badge_id=badge_id,
            awarded_by_id=actor_id,
        )
        try:
            with session.begin_nested():
                session.add(award)
                session.flush()
        except IntegrityError:
            raise Conflict("Badge already awarded to this participant") from None

        session.refresh(award)
        audit.log_action(
            session,
            actor_id=actor_id,
            actor_role=actor_role,
            action_type=AuditActionType.AWARD_BADGE,
            target_table="participant_badges",
            target_id=award.id,
            after=audit.row_to_dict(award),
        )
        logger.info("Badge %d awarded to participant %d", badge_id, participant_id)
        return award_dict(award)


def participant_badges(engine: Engine, participant_id: int) -> list[dict]:
    """Badges held by a participant, most recent first."""
    with Session(engine) as session:
        awards = session.scalars(
            select(ParticipantBadge)
            .where(ParticipantBadge.participant_id == participant_id)
            .order_by(ParticipantBadge.awarded_at.desc(), ParticipantBadge.id.desc())
        ).all()
        return [award_dict(a) for a in awards]
