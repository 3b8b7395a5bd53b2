"""
tekron.api.routes.volunteer - Volunteer desk & staff volunteer management
==========================================================================
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from tekron.api.deps import SessionContext, get_engine, staff, volunteer_only
from tekron.services import participant_service, staff_service

router = APIRouter(tags=["volunteer"])


class VolunteerCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    email: str = Field(min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")
    password: str = Field(min_length=8)
    assigned_event_id: int | None = None


class AssignmentBody(BaseModel):
    event_id: int | None = None


class QrBody(BaseModel):
    qr_code: str = Field(min_length=1)


# ---------------------------------------------------------------------------
# Volunteer-facing
# ---------------------------------------------------------------------------
@router.get("/volunteer/event")
def assigned_event(ctx: SessionContext = Depends(volunteer_only), engine=Depends(get_engine)):
    return staff_service.volunteer_event(engine, ctx.principal_id)


@router.post("/volunteer/check-in")
def check_in(
    body: QrBody,
    ctx: SessionContext = Depends(volunteer_only),
    engine=Depends(get_engine),
):
    """Check in an approved participant by scanning their QR code."""
    return participant_service.check_in_by_qr(
        engine, body.qr_code, actor_id=ctx.principal_id, actor_role=ctx.role
    )


# ---------------------------------------------------------------------------
# Staff-facing
# ---------------------------------------------------------------------------
@router.post("/volunteers", status_code=201)
def create_volunteer(
    body: VolunteerCreate,
    ctx: SessionContext = Depends(staff),
    engine=Depends(get_engine),
):
    return staff_service.create_volunteer(
        engine,
        name=body.name,
        email=body.email,
        password=body.password,
        assigned_event_id=body.assigned_event_id,
        actor_id=ctx.principal_id,
        actor_role=ctx.role,
    )


@router.put("/volunteers/{volunteer_id}/assignment")
def assign(
    volunteer_id: int,
    body: AssignmentBody,
    ctx: SessionContext = Depends(staff),
    engine=Depends(get_engine),
):
    return staff_service.assign_volunteer(
        engine, volunteer_id, body.event_id, actor_id=ctx.principal_id, actor_role=ctx.role
    )
