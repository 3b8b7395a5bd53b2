"""
tekron.api.routes.participant - Participant app endpoints
==========================================================

Two tiers:

* **limited** - reachable while the account awaits approval: profile,
  status, QR code, venue map, live events and XP.
* **restricted** - approved participants only: enrolled events,
  leaderboards, badges, alerts (including the live SSE stream).
"""

from __future__ import annotations

import asyncio
import json
import logging

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from tekron.api.deps import (
    SessionContext,
    get_alert_bus,
    get_config,
    get_engine,
    participant_limited,
    participant_restricted,
)
from tekron.config import TekronConfig
from tekron.constants import xp_progress
from tekron.services import (
    alert_service,
    badge_service,
    event_service,
    participant_service,
    xp_service,
)
from tekron.services.alert_bus import AlertBus

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/participant", tags=["participant"])

# Seconds between SSE keep-alive comments
STREAM_KEEPALIVE_SECONDS = 15


# ---------------------------------------------------------------------------
# Limited (unapproved allowed)
# ---------------------------------------------------------------------------
@router.get("/me")
def me(ctx: SessionContext = Depends(participant_limited), engine=Depends(get_engine)):
    return participant_service.get_participant(engine, ctx.principal_id)


@router.get("/status")
def status(ctx: SessionContext = Depends(participant_limited), engine=Depends(get_engine)):
    return participant_service.get_status(engine, ctx.principal_id)


@router.get("/qr")
def qr(ctx: SessionContext = Depends(participant_limited), engine=Depends(get_engine)):
    participant = participant_service.get_participant(engine, ctx.principal_id)
    return {
        "qr_code": participant["qr_code"],
        "name": participant["name"],
        "approved": participant["approved"],
    }


@router.get("/map")
def venue_map(
    ctx: SessionContext = Depends(participant_limited),
    cfg: TekronConfig = Depends(get_config),
):
    """Directions to the approval desk, shown in map-only mode."""
    return {
        "event_name": cfg.event_name,
        "venue_name": cfg.venue_name,
        "instructions": cfg.venue_instructions,
        "map_embed_url": cfg.map_embed_url,
        "approved": ctx.approved,
    }


@router.get("/events/live")
def live_events(_: SessionContext = Depends(participant_limited), engine=Depends(get_engine)):
    return event_service.list_live(engine)


@router.get("/xp")
def xp(ctx: SessionContext = Depends(participant_limited), engine=Depends(get_engine)):
    with Session(engine) as session:
        participant = xp_service.get_progress(session, ctx.principal_id)
        return xp_progress(participant.xp)


# ---------------------------------------------------------------------------
# Restricted (approved only)
# ---------------------------------------------------------------------------
@router.get("/events")
def my_events(ctx: SessionContext = Depends(participant_restricted), engine=Depends(get_engine)):
    return participant_service.enrolled_events(engine, ctx.principal_id)


@router.get("/events/{event_id}/leaderboard")
def event_leaderboard(
    event_id: int,
    _: SessionContext = Depends(participant_restricted),
    engine=Depends(get_engine),
):
    return event_service.event_leaderboard(engine, event_id)


@router.get("/leaderboard")
def leaderboard(
    _: SessionContext = Depends(participant_restricted),
    engine=Depends(get_engine),
    limit: int = Query(50, ge=1, le=200),
):
    with Session(engine) as session:
        return xp_service.leaderboard(session, limit=limit)


@router.get("/badges")
def badges(ctx: SessionContext = Depends(participant_restricted), engine=Depends(get_engine)):
    return badge_service.participant_badges(engine, ctx.principal_id)


@router.get("/alerts")
def alerts(
    _: SessionContext = Depends(participant_restricted),
    engine=Depends(get_engine),
    limit: int = Query(100, ge=1, le=500),
):
    return alert_service.list_alerts(engine, limit=limit)


@router.get("/alerts/stream")
async def alert_stream(
    request: Request,
    ctx: SessionContext = Depends(participant_restricted),
    bus: AlertBus = Depends(get_alert_bus),
):
    """Server-sent events: one ``alert`` event per newly created alert."""

    async def events():
        async with bus.subscription() as queue:
            logger.debug("Participant %d subscribed to alerts", ctx.principal_id)
            while not await request.is_disconnected():
                try:
                    alert = await asyncio.wait_for(queue.get(), STREAM_KEEPALIVE_SECONDS)
                except TimeoutError:
                    yield ": keep-alive\n\n"
                    continue
                yield f"event: alert\ndata: {json.dumps(alert)}\n\n"

    return StreamingResponse(events(), media_type="text/event-stream")
