"""
tekron.database.seed - Superadmin Bootstrap
============================================

Creates the first superadmin on startup so someone can log in and create
the admin team.  Credentials come from ``SUPERADMIN_EMAIL`` and
``SUPERADMIN_PASSWORD``; when either is blank nothing is seeded.

Idempotent - an existing account with that email is never overwritten.
"""

from __future__ import annotations

import logging
import os

from sqlalchemy import Engine, select
from sqlalchemy.orm import Session

from tekron.database.models import Admin, Role
from tekron.services.auth_service import hash_password

logger = logging.getLogger(__name__)


def seed_superadmin(
    engine: Engine,
    email: str | None = None,
    password: str | None = None,
    name: str = "Superadmin",
) -> bool:
    """Insert the bootstrap superadmin if missing.

    Returns ``True`` when a row was created.
    """
    email = (email if email is not None else os.getenv("SUPERADMIN_EMAIL", "")).strip().lower()
    password = password if password is not None else os.getenv("SUPERADMIN_PASSWORD", "")
    if not email or not password:
        logger.info("No SUPERADMIN_EMAIL/SUPERADMIN_PASSWORD set; skipping bootstrap.")
        return False

    with Session(engine) as session:
        existing = session.scalar(select(Admin).where(Admin.email == email))
        if existing is not None:
            return False
        session.add(Admin(
            email=email,
            name=name,
            password_hash=hash_password(password),
            role=Role.SUPERADMIN.value,
        ))
        session.commit()

    logger.info("Seeded superadmin account %s", email)
    return True
