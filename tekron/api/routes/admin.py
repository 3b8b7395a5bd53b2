"""
tekron.api.routes.admin - Admin desk endpoints (JWT-protected)
===============================================================

Participant approval and check-in, QR validation, event operations (status,
scores, winners) and badge awards.  Approval pushes a notification to the
participant only when the call actually changed state.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from tekron.api.deps import SessionContext, admin_only, get_engine, get_notifier, staff
from tekron.database.engine import run_db
from tekron.database.models import EventStatus
from tekron.services import badge_service, broadcast_service, event_service, participant_service
from tekron.services.notifications import PushNotifier

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/admin", tags=["admin"])


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------
class QrBody(BaseModel):
    qr_code: str = Field(min_length=1)


class StatusBody(BaseModel):
    status: str


class ScoreBody(BaseModel):
    participant_id: int
    score: int = Field(ge=0)


class WinnerBody(BaseModel):
    participant_id: int


class BadgeAwardBody(BaseModel):
    participant_id: int
    badge_id: int


# ---------------------------------------------------------------------------
# Participants
# ---------------------------------------------------------------------------
@router.get("/participants")
def list_participants(_: SessionContext = Depends(admin_only), engine=Depends(get_engine)):
    return participant_service.list_participants(engine)


@router.get("/participants/pending")
def list_pending(_: SessionContext = Depends(admin_only), engine=Depends(get_engine)):
    return participant_service.list_pending(engine)


@router.get("/stats")
def stats(_: SessionContext = Depends(admin_only), engine=Depends(get_engine)):
    return participant_service.stats(engine)


@router.post("/participants/{participant_id}/approve")
async def approve(
    participant_id: int,
    ctx: SessionContext = Depends(admin_only),
    engine=Depends(get_engine),
    notifier: PushNotifier = Depends(get_notifier),
):
    participant, changed = await run_db(
        participant_service.approve,
        engine,
        participant_id,
        actor_id=ctx.principal_id,
        actor_role=ctx.role,
    )
    if changed:
        await broadcast_service.notify_participant(
            engine,
            notifier,
            participant_id=participant_id,
            title="You're approved!",
            message="Your registration has been approved. Welcome to the event!",
            data={"type": "approval"},
        )
    return {"participant": participant, "changed": changed}


@router.post("/participants/{participant_id}/check-in")
def check_in(
    participant_id: int,
    ctx: SessionContext = Depends(admin_only),
    engine=Depends(get_engine),
):
    return participant_service.check_in(
        engine, participant_id, actor_id=ctx.principal_id, actor_role=ctx.role
    )


@router.post("/validate-qr")
def validate_qr(body: QrBody, _: SessionContext = Depends(admin_only), engine=Depends(get_engine)):
    """Look up a scanned code without changing anything."""
    return participant_service.find_by_qr(engine, body.qr_code)


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------
@router.put("/events/{event_id}/status")
async def update_event_status(
    event_id: int,
    body: StatusBody,
    ctx: SessionContext = Depends(admin_only),
    engine=Depends(get_engine),
    notifier: PushNotifier = Depends(get_notifier),
):
    result = await run_db(
        event_service.update_status,
        engine,
        event_id,
        body.status,
        actor_id=ctx.principal_id,
        actor_role=ctx.role,
    )
    if result["event"]["status"] == EventStatus.COMPLETED:
        await broadcast_service.notify_event_participants(
            engine,
            notifier,
            event_id=event_id,
            title=None,
            message="This event has ended. Thanks for taking part!",
        )
    return result


@router.put("/events/{event_id}/score")
def update_score(
    event_id: int,
    body: ScoreBody,
    ctx: SessionContext = Depends(admin_only),
    engine=Depends(get_engine),
):
    return event_service.update_score(
        engine,
        event_id,
        body.participant_id,
        body.score,
        actor_id=ctx.principal_id,
        actor_role=ctx.role,
    )


@router.post("/events/{event_id}/winner")
async def declare_winner(
    event_id: int,
    body: WinnerBody,
    ctx: SessionContext = Depends(admin_only),
    engine=Depends(get_engine),
    notifier: PushNotifier = Depends(get_notifier),
):
    result = await run_db(
        event_service.declare_winner,
        engine,
        event_id,
        body.participant_id,
        actor_id=ctx.principal_id,
        actor_role=ctx.role,
    )
    await broadcast_service.notify_participant(
        engine,
        notifier,
        participant_id=body.participant_id,
        title="Congratulations!",
        message="You have been declared a winner!",
        data={"eventId": event_id, "type": "winner"},
    )
    return result


# ---------------------------------------------------------------------------
# Badges
# ---------------------------------------------------------------------------
@router.post("/badges/award", status_code=201)
async def award_badge(
    body: BadgeAwardBody,
    ctx: SessionContext = Depends(staff),
    engine=Depends(get_engine),
    notifier: PushNotifier = Depends(get_notifier),
):
    award = await run_db(
        badge_service.award_badge,
        engine,
        participant_id=body.participant_id,
        badge_id=body.badge_id,
        actor_id=ctx.principal_id,
        actor_role=ctx.role,
    )
    await broadcast_service.notify_participant(
        engine,
        notifier,
        participant_id=body.participant_id,
        title="New Badge Earned!",
        message=f'You have earned the "{award["badge"]["name"]}" badge!',
        data={"type": "badge", "badgeId": body.badge_id},
    )
    return award
