"""
tests/test_xp_service.py - Atomic XP awards
============================================

Uses the shared in-memory SQLite engine, plus a file-backed database for
the multi-threaded test (each thread needs its own connection).
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor

import pytest
from conftest import make_participant
from sqlalchemy import create_engine
from sqlalchemy.orm import Session

from tekron.constants import calculate_level
from tekron.database.models import Base, Participant
from tekron.errors import NotFound, ValidationError
from tekron.services import xp_service


def _reload(engine, pid) -> Participant:
    with Session(engine) as session:
        return session.get(Participant, pid)


class TestAddXp:
    def test_award_updates_xp_and_level(self, db_engine):
        pid = make_participant(db_engine, xp=90)
        result = xp_service.add_xp(db_engine, pid, 20)

        assert result.xp == 110
        assert result.old_level == 1
        assert result.new_level == 2
        assert result.leveled_up is True

        p = _reload(db_engine, pid)
        assert p.xp == 110
        assert p.level == 2

    def test_award_without_level_up(self, db_engine):
        pid = make_participant(db_engine, xp=0)
        result = xp_service.add_xp(db_engine, pid, 10)
        assert result.leveled_up is False
        assert result.new_level == 1

    def test_multi_level_jump(self, db_engine):
        pid = make_participant(db_engine, xp=95)
        result = xp_service.add_xp(db_engine, pid, 210)
        assert result.xp == 305
        assert result.old_level == 1
        assert result.new_level == 4

    def test_unknown_participant(self, db_engine):
        with pytest.raises(NotFound):
            xp_service.add_xp(db_engine, 999, 10)

    @pytest.mark.parametrize("amount", [0, -5, True, 2.5])
    def test_rejects_invalid_amount(self, db_engine, amount):
        pid = make_participant(db_engine)
        with pytest.raises(ValidationError):
            xp_service.add_xp(db_engine, pid, amount)
        assert _reload(db_engine, pid).xp == 0

    def test_to_dict(self, db_engine):
        pid = make_participant(db_engine)
        data = xp_service.add_xp(db_engine, pid, 20).to_dict()
        assert data == {
            "participant_id": pid,
            "amount": 20,
            "xp": 20,
            "old_level": 1,
            "new_level": 1,
            "leveled_up": False,
        }


class TestConcurrentAwards:
    def test_no_lost_updates(self, tmp_path):
        engine = create_engine(
            f"sqlite:///{tmp_path / 'xp.db'}",
            connect_args={"check_same_thread": False, "timeout": 30},
        )
        Base.metadata.create_all(engine)
        pid = make_participant(engine)

        awards = [10, 20, 50, 100] * 10
        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(lambda amt: xp_service.add_xp(engine, pid, amt), awards))

        p = _reload(engine, pid)
        assert p.xp == sum(awards)
        assert p.level == calculate_level(sum(awards))
        engine.dispose()

    def test_order_independent(self, db_engine):
        a = make_participant(db_engine, email="a@example.com")
        b = make_participant(db_engine, email="b@example.com")
        for amt in (10, 50, 20, 100):
            xp_service.add_xp(db_engine, a, amt)
        for amt in (100, 20, 50, 10):
            xp_service.add_xp(db_engine, b, amt)
        assert _reload(db_engine, a).xp == _reload(db_engine, b).xp == 180
        assert _reload(db_engine, a).level == _reload(db_engine, b).level == 2


class TestLeaderboard:
    def test_only_approved_ranked_by_xp(self, db_engine, db_session):
        make_participant(db_engine, email="low@example.com", name="Low", approved=True, xp=10)
        make_participant(db_engine, email="high@example.com", name="High", approved=True, xp=300)
        make_participant(db_engine, email="hidden@example.com", name="Hidden", approved=False, xp=999)

        board = xp_service.leaderboard(db_session)
        assert [row["name"] for row in board] == ["High", "Low"]
        assert board[0]["rank"] == 1
        assert board[0]["level"] == 4

    def test_total_xp(self, db_engine, db_session):
        make_participant(db_engine, email="a@example.com", xp=40)
        make_participant(db_engine, email="b@example.com", xp=60)
        assert xp_service.total_xp(db_session) == 100

    def test_total_xp_empty(self, db_session):
        assert xp_service.total_xp(db_session) == 0
