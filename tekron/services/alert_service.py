"""
tekron.services.alert_service - Announcements
==============================================

Creating an alert is three steps, in order:

  1. Persist the ``Alert`` row (append-only).
  2. Publish it on the in-process :class:`~tekron.services.alert_bus.AlertBus`.
  3. Push it to the requested audience via the broadcaster.

Steps 2 and 3 are best-effort; the stored row is the source of truth and
``list_alerts`` always reads it from the database.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy import Engine, select
from sqlalchemy.orm import Session

from tekron.database.engine import get_session, run_db
from tekron.database.models import Alert
from tekron.errors import ValidationError
from tekron.services import broadcast_service
from tekron.services.broadcast_service import Audience, parse_audience

if TYPE_CHECKING:
    from tekron.services.alert_bus import AlertBus
    from tekron.services.notifications import PushNotifier

logger = logging.getLogger(__name__)

EMERGENCY_TITLE = "Emergency Alert"
DEFAULT_TITLE = "Announcement"


def alert_dict(alert: Alert) -> dict:
    return {
        "id": alert.id,
        "title": alert.title,
        "message": alert.message,
        "sender_role": alert.sender_role,
        "sender_id": alert.sender_id,
        "is_emergency": alert.is_emergency,
        "created_at": alert.created_at.isoformat() if alert.created_at else None,
    }


def insert_alert(
    engine: Engine,
    *,
    message: str,
    sender_role: str,
    sender_id: int | None,
    title: str | None = None,
    is_emergency: bool = False,
) -> dict:
    if not message or not message.strip():
        raise ValidationError("Alert message is required", fields={"message": "required"})
    with get_session(engine) as session:
        alert = Alert(
            title=title,
            message=message.strip(),
            sender_role=str(sender_role),
            sender_id=sender_id,
            is_emergency=is_emergency,
        )
        session.add(alert)
        session.flush()
        session.refresh(alert)
        return alert_dict(alert)


def list_alerts(engine: Engine, *, limit: int = 100) -> list[dict]:
    """Newest first, straight from storage."""
    with Session(engine) as session:
        rows = session.scalars(
            select(Alert).order_by(Alert.created_at.desc(), Alert.id.desc()).limit(limit)
        ).all()
        return [alert_dict(a) for a in rows]


async def create_alert(
    engine: Engine,
    notifier: PushNotifier,
    bus: AlertBus,
    *,
    message: str,
    sender_role: str,
    sender_id: int | None,
    title: str | None = None,
    is_emergency: bool = False,
    targets: Audience | str = Audience.ALL,
) -> dict:
    """Persist, publish and push one alert; return it with the push count."""
    audience = targets if isinstance(targets, Audience) else parse_audience(targets)
    alert = await run_db(
        insert_alert,
        engine,
        message=message,
        sender_role=sender_role,
        sender_id=sender_id,
        title=title,
        is_emergency=is_emergency,
    )
    subscribers = bus.publish(alert)
    push_title = alert["title"] or (EMERGENCY_TITLE if is_emergency else DEFAULT_TITLE)
    recipients = await broadcast_service.broadcast(
        engine,
        notifier,
        title=push_title,
        message=alert["message"],
        targets=audience,
        data={"alertId": alert["id"], "isEmergency": is_emergency},
    )
    logger.info(
        "Alert %d sent by %s %s: %d live subscribers, %d push tokens",
        alert["id"], sender_role, sender_id, subscribers, recipients,
    )
    return {**alert, "recipients": recipients}
