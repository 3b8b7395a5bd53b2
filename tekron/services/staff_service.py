"""
tekron.services.staff_service - Admins, Volunteers & Push Tokens
=================================================================

Account management for the staff side: superadmins create admins, staff
create volunteers and bind them to an event, and any signed-in principal
registers the device token used for push notifications.
"""

from __future__ import annotations

import logging

from sqlalchemy import Engine, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from tekron.database.engine import get_session
from tekron.database.models import (
    Admin,
    AuditActionType,
    Event,
    EventParticipant,
    Participant,
    Role,
    Volunteer,
)
from tekron.errors import Conflict, NotFound, ValidationError
from tekron.services import audit
from tekron.services.auth_service import hash_password
from tekron.services.participant_service import participant_dict

logger = logging.getLogger(__name__)


def admin_dict(admin: Admin) -> dict:
    return {"id": admin.id, "name": admin.name, "email": admin.email, "role": admin.role}


def volunteer_dict(volunteer: Volunteer) -> dict:
    return {
        "id": volunteer.id,
        "name": volunteer.name,
        "email": volunteer.email,
        "assigned_event_id": volunteer.assigned_event_id,
    }


def _email_taken(session: Session, email: str) -> bool:
    """Emails are unique across every account table (login is by email)."""
    for model in (Admin, Volunteer, Participant):
        if session.scalar(select(model.id).where(model.email == email)) is not None:
            return True
    return False


def _insert_account(session: Session, row, email: str) -> None:
    if _email_taken(session, email):
        raise Conflict("Email is already registered", fields={"email": email})
    try:
        with session.begin_nested():
            session.add(row)
            session.flush()
    except IntegrityError:
        raise Conflict("Email is already registered", fields={"email": email}) from None


# ---------------------------------------------------------------------------
# Admins
# ---------------------------------------------------------------------------
def create_admin(
    engine: Engine,
    *,
    name: str,
    email: str,
    password: str,
    actor_id: int,
    actor_role: str,
    role: str = Role.ADMIN,
) -> dict:
    if role not in (Role.ADMIN, Role.SUPERADMIN):
        raise ValidationError("Invalid staff role", fields={"role": "must be admin or superadmin"})
    email = email.strip().lower()
    with get_session(engine) as session:
        admin = Admin(
            name=name.strip(),
            email=email,
            password_hash=hash_password(password),
            role=str(role),
        )
        _insert_account(session, admin, email)
        audit.log_action(
            session,
            actor_id=actor_id,
            actor_role=actor_role,
            action_type=AuditActionType.CREATE,
            target_table="admins",
            target_id=admin.id,
            after=audit.row_to_dict(admin),
        )
        logger.info("Admin %d (%s) created by %s %d", admin.id, role, actor_role, actor_id)
        return admin_dict(admin)


def list_admins(engine: Engine) -> list[dict]:
    with Session(engine) as session:
        return [admin_dict(a) for a in session.scalars(select(Admin).order_by(Admin.id)).all()]


# ---------------------------------------------------------------------------
# Volunteers
# ---------------------------------------------------------------------------
def create_volunteer(
    engine: Engine,
    *,
    name: str,
    email: str,
    password: str,
    actor_id: int,
    actor_role: str,
    assigned_event_id: int | None = None,
) -> dict:
    email = email.strip().lower()
    with get_session(engine) as session:
        if assigned_event_id is not None and session.get(Event, assigned_event_id) is None:
            raise NotFound(f"Event {assigned_event_id} not found")
        volunteer = Volunteer(
            name=name.strip(),
            email=email,
            password_hash=hash_password(password),
            assigned_event_id=assigned_event_id,
        )
        _insert_account(session, volunteer, email)
        audit.log_action(
            session,
            actor_id=actor_id,
            actor_role=actor_role,
            action_type=AuditActionType.CREATE,
            target_table="volunteers",
            target_id=volunteer.id,
            after=audit.row_to_dict(volunteer),
        )
        return volunteer_dict(volunteer)


def assign_volunteer(
    engine: Engine,
    volunteer_id: int,
    event_id: int | None,
    *,
    actor_id: int,
    actor_role: str,
) -> dict:
    """Bind a volunteer to *event_id* (``None`` clears the assignment)."""
    with get_session(engine) as session:
        volunteer = session.get(Volunteer, volunteer_id)
        if volunteer is None:
            raise NotFound(f"Volunteer {volunteer_id} not found")
        if event_id is not None and session.get(Event, event_id) is None:
            raise NotFound(f"Event {event_id} not found")
        before = audit.row_to_dict(volunteer)
        volunteer.assigned_event_id = event_id
        session.flush()
        audit.log_action(
            session,
            actor_id=actor_id,
            actor_role=actor_role,
            action_type=AuditActionType.UPDATE,
            target_table="volunteers",
            target_id=volunteer_id,
            before=before,
            after=audit.row_to_dict(volunteer),
        )
        return volunteer_dict(volunteer)


def volunteer_event(engine: Engine, volunteer_id: int) -> dict:
    """The volunteer's assigned event with its enrolled participants."""
    with Session(engine) as session:
        volunteer = session.get(Volunteer, volunteer_id)
        if volunteer is None:
            raise NotFound(f"Volunteer {volunteer_id} not found")
        if volunteer.assigned_event_id is None:
            raise NotFound("No event assigned")
        event = session.get(Event, volunteer.assigned_event_id)
        if event is None:
            raise NotFound("No event assigned")
        participants = session.scalars(
            select(Participant)
            .join(EventParticipant, EventParticipant.participant_id == Participant.id)
            .where(EventParticipant.event_id == event.id)
            .order_by(Participant.name, Participant.id)
        ).all()
        return {
            "id": event.id,
            "title": event.title,
            "location": event.location,
            "status": event.status,
            "participants": [participant_dict(p) for p in participants],
        }


# ---------------------------------------------------------------------------
# Push tokens
# ---------------------------------------------------------------------------
def set_push_token(engine: Engine, *, role: Role, principal_id: int, token: str) -> None:
    if role == Role.PARTICIPANT:
        model = Participant
    elif role in (Role.ADMIN, Role.SUPERADMIN):
        model = Admin
    else:
        raise ValidationError("Push notifications are not available for this role")
    with get_session(engine) as session:
        row = session.get(model, principal_id)
        if row is None:
            raise NotFound("Account not found")
        row.push_token = token.strip() or None
    logger.debug("Push token registered for %s %d", role, principal_id)
