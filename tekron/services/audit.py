"""
tekron.services.audit - Staff Audit Trail Helpers
==================================================

Every staff mutation follows the same pattern inside one transaction:

  1. Read the "before" snapshot
  2. Apply the change
  3. Append an ``audit_log`` row with before/after JSON
  4. Commit

The helpers here only *stage* the audit row; the caller owns the commit.
"""

from __future__ import annotations

import enum
from datetime import datetime
from typing import Any

from sqlalchemy.orm import Session

from tekron.database.models import AuditLog


def row_to_dict(obj: Any, *, exclude: tuple[str, ...] = ("password_hash",)) -> dict | None:
    """Convert a model instance to a JSON-serializable dict."""
    if obj is None:
        return None
    result = {}
    for col in obj.__table__.columns:
        if col.name in exclude:
            continue
        val = getattr(obj, col.key, None)
        if isinstance(val, datetime):
            val = val.isoformat()
        elif isinstance(val, enum.Enum):
            val = val.value
        result[col.name] = val
    return result


def log_action(
    session: Session,
    *,
    actor_id: int,
    actor_role: str,
    action_type: str,
    target_table: str,
    target_id: int | str | None,
    before: dict | None = None,
    after: dict | None = None,
    reason: str | None = None,
) -> None:
    """Insert a row into audit_log within the current transaction."""
    session.add(AuditLog(
        actor_id=actor_id,
        actor_role=str(actor_role),
        action_type=str(action_type),
        target_table=target_table,
        target_id=None if target_id is None else str(target_id),
        before_snapshot=before,
        after_snapshot=after,
        reason=reason,
    ))
