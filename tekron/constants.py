"""
tekron.constants - Shared Constants & Helpers
==============================================

Single source of truth for the XP award table and the leveling formula.
Import from here instead of duplicating in services and routes.
"""

from __future__ import annotations

import enum

# ---------------------------------------------------------------------------
# XP awards
# ---------------------------------------------------------------------------
XP_PER_LEVEL = 100


class XpAward(enum.IntEnum):
    """Fixed XP amounts granted by participation milestones."""
    CHECK_IN = 20
    EVENT_COMPLETION = 50
    FEEDBACK_SUBMISSION = 10
    WINNING_EVENT = 100


# ---------------------------------------------------------------------------
# Leveling formula - THE single canonical implementation
# ---------------------------------------------------------------------------
def calculate_level(xp: int) -> int:
    """Level reached with *xp* points.

    Linear formula::

        level = 1 + floor(xp / 100)

    Negative input is clamped to zero so the minimum level is always 1.
    """
    return 1 + max(xp, 0) // XP_PER_LEVEL


def xp_progress(xp: int) -> dict[str, int]:
    """Progress within the current level, as served to the client XP bar."""
    xp = max(xp, 0)
    level = calculate_level(xp)
    return {
        "xp": xp,
        "level": level,
        "progress": xp - (level - 1) * XP_PER_LEVEL,
        "next_level_xp": XP_PER_LEVEL,
    }


# ---------------------------------------------------------------------------
# Feedback rating scale
# ---------------------------------------------------------------------------
MIN_RATING = 1
MAX_RATING = 5
