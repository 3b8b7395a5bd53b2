"""
tekron.api.routes.community - Feedback and Lost & Found
========================================================

Participant-submitted content.  Submission requires an approved account;
moderation and summaries are staff-only.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from tekron.api.deps import (
    SessionContext,
    get_engine,
    participant_restricted,
    require,
    staff,
)
from tekron.engine.access import RouteGroup
from tekron.services import feedback_service, lost_found_service

router = APIRouter(tags=["community"])

item_viewer = require(
    RouteGroup.PARTICIPANT_RESTRICTED, RouteGroup.ADMIN, RouteGroup.SUPERADMIN
)


class FeedbackBody(BaseModel):
    event_id: int
    # 1..5, checked by feedback_service
    rating: int
    comment: str | None = Field(default=None, max_length=2000)


class ItemReport(BaseModel):
    type: str
    title: str = Field(min_length=1, max_length=200)
    description: str | None = None
    location: str | None = Field(default=None, max_length=200)
    category: str | None = Field(default=None, max_length=50)


class ModerationBody(BaseModel):
    status: str | None = None
    is_approved: bool | None = None


# ---------------------------------------------------------------------------
# Feedback
# ---------------------------------------------------------------------------
@router.post("/feedback", status_code=201)
def submit_feedback(
    body: FeedbackBody,
    ctx: SessionContext = Depends(participant_restricted),
    engine=Depends(get_engine),
):
    return feedback_service.submit(
        engine,
        participant_id=ctx.principal_id,
        event_id=body.event_id,
        rating=body.rating,
        comment=body.comment,
    )


@router.get("/feedback/event/{event_id}")
def event_feedback(event_id: int, _: SessionContext = Depends(staff), engine=Depends(get_engine)):
    return feedback_service.summary(engine, event_id)


# ---------------------------------------------------------------------------
# Lost & Found
# ---------------------------------------------------------------------------
@router.post("/lost-found/report", status_code=201)
def report_item(
    body: ItemReport,
    ctx: SessionContext = Depends(participant_restricted),
    engine=Depends(get_engine),
):
    return lost_found_service.report_item(
        engine,
        reporter_id=ctx.principal_id,
        type=body.type,
        title=body.title,
        description=body.description,
        location=body.location,
        category=body.category,
    )


@router.get("/lost-found")
def list_items(
    ctx: SessionContext = Depends(item_viewer),
    engine=Depends(get_engine),
    type: str | None = Query(None),
):
    return lost_found_service.list_items(
        engine,
        viewer_id=None if ctx.is_staff else ctx.principal_id,
        staff=ctx.is_staff,
        type=type,
    )


@router.post("/lost-found/{item_id}/claim")
def claim_item(
    item_id: int,
    ctx: SessionContext = Depends(participant_restricted),
    engine=Depends(get_engine),
):
    """Reporter marks their open item as resolved."""
    return lost_found_service.close_item(engine, item_id, actor_id=ctx.principal_id)


@router.put("/lost-found/{item_id}/status")
def moderate_item(
    item_id: int,
    body: ModerationBody,
    ctx: SessionContext = Depends(staff),
    engine=Depends(get_engine),
):
    return lost_found_service.moderate(
        engine,
        item_id,
        actor_id=ctx.principal_id,
        actor_role=ctx.role,
        status=body.status,
        is_approved_flag=body.is_approved,
    )
