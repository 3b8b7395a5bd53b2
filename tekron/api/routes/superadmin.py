"""
tekron.api.routes.superadmin - Admin team, event & badge catalogues
===================================================================
"""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from tekron.api.deps import SessionContext, get_engine, superadmin_only
from tekron.services import badge_service, event_service, staff_service

router = APIRouter(prefix="/superadmin", tags=["superadmin"])


class AdminCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    email: str = Field(min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")
    password: str = Field(min_length=8)
    role: str = "admin"


class EventCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: str | None = None
    location: str | None = None
    starts_at: datetime | None = None
    ends_at: datetime | None = None


class EventUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = None
    location: str | None = None
    starts_at: datetime | None = None
    ends_at: datetime | None = None


class BadgeCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    description: str | None = None
    icon_url: str | None = Field(default=None, max_length=500)
    type: str | None = Field(default=None, max_length=50)


@router.post("/create-admin", status_code=201)
def create_admin(
    body: AdminCreate,
    ctx: SessionContext = Depends(superadmin_only),
    engine=Depends(get_engine),
):
    return staff_service.create_admin(
        engine,
        name=body.name,
        email=body.email,
        password=body.password,
        role=body.role,
        actor_id=ctx.principal_id,
        actor_role=ctx.role,
    )


@router.get("/admins")
def list_admins(_: SessionContext = Depends(superadmin_only), engine=Depends(get_engine)):
    return staff_service.list_admins(engine)


@router.post("/create-event", status_code=201)
def create_event(
    body: EventCreate,
    ctx: SessionContext = Depends(superadmin_only),
    engine=Depends(get_engine),
):
    return event_service.create_event(
        engine,
        actor_id=ctx.principal_id,
        actor_role=ctx.role,
        **body.model_dump(),
    )


@router.get("/events")
def list_events(_: SessionContext = Depends(superadmin_only), engine=Depends(get_engine)):
    return event_service.list_events(engine)


@router.put("/events/{event_id}")
def update_event(
    event_id: int,
    body: EventUpdate,
    ctx: SessionContext = Depends(superadmin_only),
    engine=Depends(get_engine),
):
    return event_service.update_event(
        engine,
        event_id,
        actor_id=ctx.principal_id,
        actor_role=ctx.role,
        **body.model_dump(exclude_unset=True),
    )


@router.delete("/events/{event_id}")
def delete_event(
    event_id: int,
    ctx: SessionContext = Depends(superadmin_only),
    engine=Depends(get_engine),
):
    event_service.delete_event(engine, event_id, actor_id=ctx.principal_id, actor_role=ctx.role)
    return {"deleted": event_id}


@router.post("/badges", status_code=201)
def create_badge(
    body: BadgeCreate,
    ctx: SessionContext = Depends(superadmin_only),
    engine=Depends(get_engine),
):
    return badge_service.create_badge(
        engine,
        actor_id=ctx.principal_id,
        actor_role=ctx.role,
        **body.model_dump(),
    )


@router.get("/badges")
def list_badges(_: SessionContext = Depends(superadmin_only), engine=Depends(get_engine)):
    return badge_service.list_badges(engine)
