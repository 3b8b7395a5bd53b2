"""
tekron.engine.lifecycle - Participant & Event State Rules
==========================================================

Pure rules consulted by the services before they touch the database.

Participant::

    Unapproved --approve--> Approved            (never regresses)
    NotCheckedIn --check_in--> CheckedIn        (requires Approved)

Event::

    SCHEDULED --> ACTIVE | CANCELLED
    ACTIVE    --> COMPLETED | CANCELLED
    COMPLETED, CANCELLED are terminal
"""

from __future__ import annotations

import secrets

from tekron.database.models import EventStatus
from tekron.errors import InvalidTransition

EVENT_TRANSITIONS: dict[EventStatus, frozenset[EventStatus]] = {
    EventStatus.SCHEDULED: frozenset({EventStatus.ACTIVE, EventStatus.CANCELLED}),
    EventStatus.ACTIVE: frozenset({EventStatus.COMPLETED, EventStatus.CANCELLED}),
    EventStatus.COMPLETED: frozenset(),
    EventStatus.CANCELLED: frozenset(),
}


def ensure_can_check_in(approved: bool) -> None:
    """Check-in is only reachable from the Approved state."""
    if not approved:
        raise InvalidTransition("Participant must be approved before check-in")


def ensure_event_transition(current: str, target: str) -> None:
    """Raise :class:`InvalidTransition` unless *current* -> *target* is legal."""
    current_status = EventStatus(current)
    target_status = EventStatus(target)
    if target_status not in EVENT_TRANSITIONS[current_status]:
        raise InvalidTransition(
            f"Event cannot move from {current_status.value} to {target_status.value}"
        )


def new_qr_code(participant_id: int) -> str:
    """Opaque desk code shown by the participant app and scanned by staff."""
    return f"TKR-{participant_id}-{secrets.token_urlsafe(12)}"
