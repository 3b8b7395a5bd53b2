"""
tekron.engine.lost_found - Lost-and-Found Status Machine
=========================================================

::

    PENDING --staff--> OPEN | REJECTED
    OPEN    --reporter--> CLOSED

``PENDING -> CLOSED`` is not a valid shortcut.  Ownership is checked before
the transition, so a stranger closing someone else's item always gets
``Forbidden`` regardless of the item's state.
"""

from __future__ import annotations

from tekron.database.models import ItemStatus
from tekron.errors import Forbidden, InvalidTransition, ValidationError

MODERATION_TRANSITIONS: dict[ItemStatus, frozenset[ItemStatus]] = {
    ItemStatus.PENDING: frozenset({ItemStatus.OPEN, ItemStatus.REJECTED}),
}

CLOSE_TRANSITIONS: dict[ItemStatus, frozenset[ItemStatus]] = {
    ItemStatus.OPEN: frozenset({ItemStatus.CLOSED}),
}


def is_approved(status: str) -> bool:
    return status not in (ItemStatus.PENDING, ItemStatus.REJECTED)


def resolve_moderation_target(
    status: str | None, is_approved_flag: bool | None
) -> ItemStatus:
    """Turn a staff request into a target status.

    An explicit ``status`` wins; otherwise the legacy ``is_approved`` boolean
    maps ``True -> OPEN`` and ``False -> REJECTED``.
    """
    if status:
        try:
            return ItemStatus(status.upper())
        except ValueError:
            raise ValidationError(
                f"Unknown status {status!r}",
                fields={"status": f"must be one of {[s.value for s in ItemStatus]}"},
            ) from None
    if is_approved_flag is True:
        return ItemStatus.OPEN
    if is_approved_flag is False:
        return ItemStatus.REJECTED
    raise ValidationError("No status provided", fields={"status": "required"})


def ensure_moderation(current: str, target: ItemStatus) -> None:
    allowed = MODERATION_TRANSITIONS.get(ItemStatus(current), frozenset())
    if target not in allowed:
        raise InvalidTransition(f"Item cannot move from {current} to {target.value}")


def ensure_close(current: str, *, reporter_id: int, actor_id: int) -> None:
    if reporter_id != actor_id:
        raise Forbidden("Only the reporter can close this item")
    allowed = CLOSE_TRANSITIONS.get(ItemStatus(current), frozenset())
    if ItemStatus.CLOSED not in allowed:
        raise InvalidTransition(f"Item cannot move from {current} to CLOSED")
