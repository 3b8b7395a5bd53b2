"""
tekron.engine.access - Role x Approval -> Route Group Table
============================================================

Pure decision table.  No HTTP or DB I/O here; :mod:`tekron.api.deps`
resolves the principal and asks :func:`decide` whether the route is
reachable.

Every principal reaches exactly one primary group; an approved participant
additionally keeps the unapproved (limited) fallback.  Any pair missing from
the table is denied, so adding a role without a table row fails closed.
"""

from __future__ import annotations

import enum
from collections.abc import Iterable
from dataclasses import dataclass

from tekron.database.models import Role

__all__ = [
    "ACCESS_TABLE",
    "AccessDecision",
    "Principal",
    "RouteGroup",
    "decide",
    "decide_any",
    "reachable_groups",
]


class RouteGroup(enum.StrEnum):
    PARTICIPANT_RESTRICTED = "participant_restricted"
    PARTICIPANT_LIMITED = "participant_limited"
    ADMIN = "admin"
    SUPERADMIN = "superadmin"
    VOLUNTEER = "volunteer"


class AccessDecision(enum.StrEnum):
    ALLOW = "allow"
    FORBIDDEN = "forbidden"


@dataclass(frozen=True, slots=True)
class Principal:
    """Who is asking.  ``approved`` is only meaningful for participants."""

    role: Role
    approved: bool = False


# ---------------------------------------------------------------------------
# The table
# ---------------------------------------------------------------------------
# Key: (role, approved).  Staff and volunteers are listed under both flag
# values so lookups never depend on a flag that does not apply to them.
ACCESS_TABLE: dict[tuple[Role, bool], frozenset[RouteGroup]] = {
    (Role.PARTICIPANT, True): frozenset({
        RouteGroup.PARTICIPANT_RESTRICTED,
        RouteGroup.PARTICIPANT_LIMITED,
    }),
    (Role.PARTICIPANT, False): frozenset({RouteGroup.PARTICIPANT_LIMITED}),
    (Role.VOLUNTEER, True): frozenset({RouteGroup.VOLUNTEER}),
    (Role.VOLUNTEER, False): frozenset({RouteGroup.VOLUNTEER}),
    (Role.ADMIN, True): frozenset({RouteGroup.ADMIN}),
    (Role.ADMIN, False): frozenset({RouteGroup.ADMIN}),
    (Role.SUPERADMIN, True): frozenset({RouteGroup.SUPERADMIN}),
    (Role.SUPERADMIN, False): frozenset({RouteGroup.SUPERADMIN}),
}


def reachable_groups(principal: Principal) -> frozenset[RouteGroup]:
    """All route groups *principal* may enter."""
    approved = principal.approved if principal.role == Role.PARTICIPANT else False
    return ACCESS_TABLE.get((principal.role, approved), frozenset())


def decide(principal: Principal, group: RouteGroup) -> AccessDecision:
    """Decide whether *principal* reaches *group*."""
    if group in reachable_groups(principal):
        return AccessDecision.ALLOW
    return AccessDecision.FORBIDDEN


def decide_any(principal: Principal, groups: Iterable[RouteGroup]) -> AccessDecision:
    """Allow when at least one of *groups* is reachable.

    Used by endpoints shared between staff tiers (declared for both
    ``admin`` and ``superadmin``); the table itself is never widened.
    """
    allowed = reachable_groups(principal)
    if any(g in allowed for g in groups):
        return AccessDecision.ALLOW
    return AccessDecision.FORBIDDEN
