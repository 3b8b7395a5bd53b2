"""
tekron.api.routes.alerts - Staff announcements & push broadcasts
=================================================================
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from tekron.api.deps import (
    SessionContext,
    get_alert_bus,
    get_engine,
    get_notifier,
    require,
    staff,
)
from tekron.database.engine import run_db
from tekron.engine.access import RouteGroup
from tekron.services import alert_service, broadcast_service, staff_service
from tekron.services.alert_bus import AlertBus
from tekron.services.notifications import PushNotifier

router = APIRouter(tags=["alerts"])

push_token_owner = require(
    RouteGroup.PARTICIPANT_LIMITED, RouteGroup.ADMIN, RouteGroup.SUPERADMIN
)


class AlertCreate(BaseModel):
    message: str = Field(min_length=1)
    title: str | None = Field(default=None, max_length=200)
    is_emergency: bool = False
    targets: str = "all"


class BroadcastBody(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    message: str = Field(min_length=1)
    targets: str = "all"


class EventNotifyBody(BaseModel):
    message: str = Field(min_length=1)
    title: str | None = None


class PushTokenBody(BaseModel):
    token: str = Field(min_length=1, max_length=255)


# ---------------------------------------------------------------------------
# Alerts
# ---------------------------------------------------------------------------
@router.post("/alerts/send", status_code=201)
async def send_alert(
    body: AlertCreate,
    ctx: SessionContext = Depends(staff),
    engine=Depends(get_engine),
    notifier: PushNotifier = Depends(get_notifier),
    bus: AlertBus = Depends(get_alert_bus),
):
    return await alert_service.create_alert(
        engine,
        notifier,
        bus,
        message=body.message,
        title=body.title,
        is_emergency=body.is_emergency,
        targets=body.targets,
        sender_role=ctx.role,
        sender_id=ctx.principal_id,
    )


@router.get("/alerts")
def list_alerts(
    _: SessionContext = Depends(staff),
    engine=Depends(get_engine),
    limit: int = Query(100, ge=1, le=500),
):
    return alert_service.list_alerts(engine, limit=limit)


# ---------------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------------
@router.post("/notifications/broadcast")
async def broadcast(
    body: BroadcastBody,
    _: SessionContext = Depends(staff),
    engine=Depends(get_engine),
    notifier: PushNotifier = Depends(get_notifier),
):
    recipients = await broadcast_service.broadcast(
        engine, notifier, title=body.title, message=body.message, targets=body.targets
    )
    return {"recipients": recipients}


@router.post("/notifications/events/{event_id}")
async def notify_event(
    event_id: int,
    body: EventNotifyBody,
    _: SessionContext = Depends(staff),
    engine=Depends(get_engine),
    notifier: PushNotifier = Depends(get_notifier),
):
    recipients = await broadcast_service.notify_event_participants(
        engine, notifier, event_id=event_id, title=body.title, message=body.message
    )
    return {"event_id": event_id, "recipients": recipients}


@router.post("/notifications/push-token")
async def register_push_token(
    body: PushTokenBody,
    ctx: SessionContext = Depends(push_token_owner),
    engine=Depends(get_engine),
):
    await run_db(
        staff_service.set_push_token,
        engine,
        role=ctx.role,
        principal_id=ctx.principal_id,
        token=body.token,
    )
    return {"status": "registered"}
