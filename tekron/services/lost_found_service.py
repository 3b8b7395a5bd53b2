"""
tekron.services.lost_found_service - Lost & Found Reports
==========================================================

Participants report items (always created ``PENDING``), staff moderate them
(``OPEN`` / ``REJECTED``), and the reporter closes an ``OPEN`` item once it
is resolved.  Transition rules live in :mod:`tekron.engine.lost_found`.
"""

from __future__ import annotations

import logging

from sqlalchemy import Engine, or_, select
from sqlalchemy.orm import Session

from tekron.database.engine import get_session
from tekron.database.models import AuditActionType, ItemStatus, ItemType, LostFoundItem
from tekron.engine.lost_found import (
    ensure_close,
    ensure_moderation,
    is_approved,
    resolve_moderation_target,
)
from tekron.errors import NotFound, ValidationError
from tekron.services import audit

logger = logging.getLogger(__name__)


def item_dict(item: LostFoundItem) -> dict:
    return {
        "id": item.id,
        "type": item.type,
        "title": item.title,
        "description": item.description,
        "location": item.location,
        "category": item.category,
        "status": item.status,
        "is_approved": is_approved(item.status),
        "reported_by_id": item.reported_by_id,
        "created_at": item.created_at.isoformat() if item.created_at else None,
    }


def parse_type(value: str) -> ItemType:
    try:
        return ItemType(value.upper())
    except ValueError:
        raise ValidationError(
            f"Unknown item type {value!r}", fields={"type": "must be LOST or FOUND"}
        ) from None


def _get_or_404(session: Session, item_id: int) -> LostFoundItem:
    item = session.get(LostFoundItem, item_id)
    if item is None:
        raise NotFound(f"Item {item_id} not found")
    return item


def report_item(
    engine: Engine,
    *,
    reporter_id: int,
    type: str,
    title: str,
    description: str | None = None,
    location: str | None = None,
    category: str | None = None,
) -> dict:
    item_type = parse_type(type)
    with get_session(engine) as session:
        item = LostFoundItem(
            type=item_type.value,
            title=title,
            description=description,
            location=location,
            category=(category or "OTHER").upper(),
            status=ItemStatus.PENDING.value,
            reported_by_id=reporter_id,
        )
        session.add(item)
        session.flush()
        logger.info("Item %d reported (%s) by participant %d", item.id, item_type, reporter_id)
        return item_dict(item)


def list_items(
    engine: Engine,
    *,
    viewer_id: int | None = None,
    staff: bool = False,
    type: str | None = None,
) -> list[dict]:
    """Newest first.  Participants see approved items plus their own."""
    stmt = select(LostFoundItem).order_by(LostFoundItem.created_at.desc(), LostFoundItem.id.desc())
    if type:
        stmt = stmt.where(LostFoundItem.type == parse_type(type).value)
    if not staff:
        visible = LostFoundItem.status.in_([ItemStatus.OPEN.value, ItemStatus.CLOSED.value])
        if viewer_id is not None:
            visible = or_(visible, LostFoundItem.reported_by_id == viewer_id)
        stmt = stmt.where(visible)
    with Session(engine) as session:
        return [item_dict(i) for i in session.scalars(stmt).all()]


def moderate(
    engine: Engine,
    item_id: int,
    *,
    actor_id: int,
    actor_role: str,
    status: str | None = None,
    is_approved_flag: bool | None = None,
) -> dict:
    """Staff decision on a pending item (explicit status or legacy boolean)."""
    target = resolve_moderation_target(status, is_approved_flag)
    with get_session(engine) as session:
        item = _get_or_404(session, item_id)
        ensure_moderation(item.status, target)
        before = audit.row_to_dict(item)
        item.status = target.value
        session.flush()
        audit.log_action(
            session,
            actor_id=actor_id,
            actor_role=actor_role,
            action_type=AuditActionType.MODERATE,
            target_table="lost_found_items",
            target_id=item_id,
            before=before,
            after=audit.row_to_dict(item),
        )
        logger.info("Item %d moderated -> %s", item_id, target)
        return item_dict(item)


def close_item(engine: Engine, item_id: int, *, actor_id: int) -> dict:
    """Reporter marks an open item as resolved."""
    with get_session(engine) as session:
        item = _get_or_404(session, item_id)
        ensure_close(item.status, reporter_id=item.reported_by_id, actor_id=actor_id)
        item.status = ItemStatus.CLOSED.value
        session.flush()
        return item_dict(item)
