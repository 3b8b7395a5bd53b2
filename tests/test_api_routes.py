"""
tests/test_api_routes.py - FastAPI Route Integration Tests
===========================================================

Runs the real app against the in-memory database with the push notifier
mocked.  Verifies:
- Auth guards and the role/approval gate on every router
- Session creation (login/register) and teardown (logout)
- Error bodies for the domain error taxonomy
- End-to-end flows: approval, check-in, events, lost & found, volunteers
"""

from __future__ import annotations

import pytest
from conftest import (
    PASSWORD,
    auth,
    enroll,
    make_admin,
    make_event,
    make_participant,
    make_token,
    make_volunteer,
)

from tekron.database.models import Role


@pytest.fixture
def admin(db_engine) -> str:
    return make_token(make_admin(db_engine), Role.ADMIN)


@pytest.fixture
def superadmin(db_engine) -> str:
    sid = make_admin(db_engine, email="root@example.com", role=Role.SUPERADMIN)
    return make_token(sid, Role.SUPERADMIN)


# ===========================================================================
# Health
# ===========================================================================
class TestHealthEndpoint:
    def test_health_returns_ok(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}


# ===========================================================================
# Session lifecycle
# ===========================================================================
class TestAuth:
    def test_login_participant(self, client, db_engine):
        pid = make_participant(db_engine)
        resp = client.post("/auth/login", json={"email": "ADA@example.com", "password": PASSWORD})
        assert resp.status_code == 200
        body = resp.json()
        assert body["token_type"] == "bearer"
        assert body["user"] == {
            "id": pid,
            "name": "Ada",
            "email": "ada@example.com",
            "role": "participant",
            "approved": False,
            "qr_code": f"TKR-{pid}-test",
        }

    def test_login_admin_role(self, client, db_engine):
        make_admin(db_engine)
        resp = client.post("/auth/login", json={"email": "admin@example.com", "password": PASSWORD})
        assert resp.status_code == 200
        assert resp.json()["user"]["role"] == "admin"

    def test_bad_password(self, client, db_engine):
        make_participant(db_engine)
        resp = client.post("/auth/login", json={"email": "ada@example.com", "password": "nope"})
        assert resp.status_code == 401
        assert resp.json() == {"error": "unauthorized", "detail": "Invalid credentials"}

    def test_unknown_email(self, client):
        resp = client.post("/auth/login", json={"email": "ghost@example.com", "password": "x"})
        assert resp.status_code == 401

    def test_register_then_me(self, client, db_engine):
        eid = make_event(db_engine)
        resp = client.post("/auth/register", json={
            "name": "Grace", "email": "grace@example.com",
            "password": "longenough", "event_ids": [eid],
        })
        assert resp.status_code == 201
        token = resp.json()["token"]
        assert resp.json()["user"]["approved"] is False

        me = client.get("/auth/me", headers=auth(token))
        assert me.status_code == 200
        assert me.json()["email"] == "grace@example.com"
        assert me.json()["approved"] is False

    def test_register_duplicate(self, client, db_engine):
        make_participant(db_engine, email="dup@example.com")
        resp = client.post("/auth/register", json={
            "name": "Dup", "email": "dup@example.com", "password": "longenough",
        })
        assert resp.status_code == 409
        assert resp.json()["error"] == "conflict"

    def test_register_unknown_event(self, client):
        resp = client.post("/auth/register", json={
            "name": "X", "email": "x@example.com", "password": "longenough", "event_ids": [99],
        })
        assert resp.status_code == 404

    def test_logout_revokes_token(self, client, db_engine):
        token = make_token(make_participant(db_engine), Role.PARTICIPANT)
        assert client.get("/auth/me", headers=auth(token)).status_code == 200
        assert client.post("/auth/logout", headers=auth(token)).status_code == 200
        resp = client.get("/auth/me", headers=auth(token))
        assert resp.status_code == 401
        assert resp.json()["detail"] == "Session has been signed out"

    def test_missing_token(self, client):
        resp = client.get("/auth/me")
        assert resp.status_code == 401
        assert resp.json()["error"] == "unauthorized"

    def test_garbage_token(self, client):
        assert client.get("/auth/me", headers=auth("not.a.jwt")).status_code == 401

    def test_token_for_deleted_account(self, client):
        token = make_token(12345, Role.PARTICIPANT)
        assert client.get("/participant/me", headers=auth(token)).status_code == 401


# ===========================================================================
# Access gate
# ===========================================================================
class TestAccessGate:
    LIMITED = ["/participant/me", "/participant/status", "/participant/qr",
               "/participant/map", "/participant/events/live", "/participant/xp"]
    RESTRICTED = ["/participant/events", "/participant/alerts",
                  "/participant/leaderboard", "/lost-found"]

    @pytest.mark.parametrize("endpoint", LIMITED)
    def test_unapproved_reaches_limited(self, client, db_engine, endpoint):
        token = make_token(make_participant(db_engine), Role.PARTICIPANT)
        assert client.get(endpoint, headers=auth(token)).status_code == 200

    @pytest.mark.parametrize("endpoint", RESTRICTED)
    def test_unapproved_blocked_from_restricted(self, client, db_engine, endpoint):
        token = make_token(make_participant(db_engine), Role.PARTICIPANT)
        resp = client.get(endpoint, headers=auth(token))
        assert resp.status_code == 403
        assert resp.json() == {"error": "forbidden", "detail": "Account pending approval"}

    @pytest.mark.parametrize("endpoint", RESTRICTED)
    def test_approved_reaches_restricted(self, client, db_engine, endpoint):
        token = make_token(make_participant(db_engine, approved=True), Role.PARTICIPANT)
        assert client.get(endpoint, headers=auth(token)).status_code == 200

    def test_participant_blocked_from_admin(self, client, db_engine):
        token = make_token(make_participant(db_engine, approved=True), Role.PARTICIPANT)
        assert client.get("/admin/participants", headers=auth(token)).status_code == 403

    def test_admin_blocked_from_superadmin(self, client, admin):
        assert client.get("/superadmin/admins", headers=auth(admin)).status_code == 403

    def test_superadmin_blocked_from_admin_group(self, client, superadmin):
        assert client.get("/admin/participants", headers=auth(superadmin)).status_code == 403

    def test_admin_blocked_from_participant_routes(self, client, admin):
        assert client.get("/participant/me", headers=auth(admin)).status_code == 403

    @pytest.mark.parametrize("token_fixture", ["admin", "superadmin"])
    def test_staff_endpoints_accept_both_tiers(self, client, request, token_fixture):
        token = request.getfixturevalue(token_fixture)
        assert client.get("/alerts", headers=auth(token)).status_code == 200

    def test_volunteer_blocked_from_staff_endpoints(self, client, db_engine):
        token = make_token(make_volunteer(db_engine), Role.VOLUNTEER)
        assert client.get("/alerts", headers=auth(token)).status_code == 403

    def test_approval_applies_without_relogin(self, client, db_engine, admin, notifier):
        pid = make_participant(db_engine, push_token="ExponentPushToken[ada]")
        token = make_token(pid, Role.PARTICIPANT)
        assert client.get("/participant/alerts", headers=auth(token)).status_code == 403

        resp = client.post(f"/admin/participants/{pid}/approve", headers=auth(admin))
        assert resp.status_code == 200
        assert resp.json()["changed"] is True

        assert client.get("/participant/alerts", headers=auth(token)).status_code == 200


# ===========================================================================
# Admin desk
# ===========================================================================
class TestAdminDesk:
    def test_approval_notifies_once(self, client, db_engine, admin, notifier):
        pid = make_participant(db_engine, push_token="ExponentPushToken[ada]")

        first = client.post(f"/admin/participants/{pid}/approve", headers=auth(admin))
        second = client.post(f"/admin/participants/{pid}/approve", headers=auth(admin))

        assert first.json()["changed"] is True
        assert second.status_code == 200
        assert second.json()["changed"] is False
        assert notifier.send.await_count == 1
        assert notifier.send.await_args.args[0] == ["ExponentPushToken[ada]"]

    def test_pending_list(self, client, db_engine, admin):
        make_participant(db_engine, email="a@example.com")
        make_participant(db_engine, email="b@example.com", approved=True)
        resp = client.get("/admin/participants/pending", headers=auth(admin))
        assert [p["email"] for p in resp.json()] == ["a@example.com"]

    def test_check_in_unapproved_is_invalid_transition(self, client, db_engine, admin):
        pid = make_participant(db_engine)
        resp = client.post(f"/admin/participants/{pid}/check-in", headers=auth(admin))
        assert resp.status_code == 409
        assert resp.json()["error"] == "invalid_transition"

    def test_check_in_awards_xp(self, client, db_engine, admin):
        pid = make_participant(db_engine, approved=True)
        resp = client.post(f"/admin/participants/{pid}/check-in", headers=auth(admin))
        assert resp.status_code == 200
        assert resp.json()["xp"]["xp"] == 20

    def test_validate_qr(self, client, db_engine, admin):
        pid = make_participant(db_engine, qr_code="TKR-SCAN")
        resp = client.post("/admin/validate-qr", json={"qr_code": "TKR-SCAN"}, headers=auth(admin))
        assert resp.json()["id"] == pid
        missing = client.post("/admin/validate-qr", json={"qr_code": "nope"}, headers=auth(admin))
        assert missing.status_code == 404
        assert missing.json()["error"] == "not_found"

    def test_event_completion_flow(self, client, db_engine, admin, notifier):
        eid = make_event(db_engine)
        pid = make_participant(db_engine, approved=True, checked_in=True, push_token="ExponentPushToken[x]")
        enroll(db_engine, eid, pid)

        assert client.put(f"/admin/events/{eid}/status", json={"status": "ACTIVE"},
                          headers=auth(admin)).status_code == 200
        resp = client.put(f"/admin/events/{eid}/status", json={"status": "COMPLETED"},
                          headers=auth(admin))
        assert resp.status_code == 200
        assert resp.json()["awards"][0]["amount"] == 50
        assert notifier.send.await_args.args[1].startswith("Event Update: ")

        again = client.put(f"/admin/events/{eid}/status", json={"status": "ACTIVE"},
                           headers=auth(admin))
        assert again.status_code == 409

    def test_score_and_winner(self, client, db_engine, admin):
        eid = make_event(db_engine)
        pid = make_participant(db_engine, approved=True)
        enroll(db_engine, eid, pid)

        score = client.put(f"/admin/events/{eid}/score",
                           json={"participant_id": pid, "score": 42}, headers=auth(admin))
        assert score.json()["score"] == 42

        win = client.post(f"/admin/events/{eid}/winner", json={"participant_id": pid}, headers=auth(admin))
        assert win.status_code == 200
        dup = client.post(f"/admin/events/{eid}/winner", json={"participant_id": pid}, headers=auth(admin))
        assert dup.status_code == 409


# ===========================================================================
# Superadmin
# ===========================================================================
class TestSuperadmin:
    def test_create_admin_and_duplicate(self, client, superadmin):
        body = {"name": "New", "email": "new@example.com", "password": "longenough"}
        created = client.post("/superadmin/create-admin", json=body, headers=auth(superadmin))
        assert created.status_code == 201
        assert created.json()["role"] == "admin"

        dup = client.post("/superadmin/create-admin", json=body, headers=auth(superadmin))
        assert dup.status_code == 409

        admins = client.get("/superadmin/admins", headers=auth(superadmin)).json()
        assert {a["email"] for a in admins} == {"root@example.com", "new@example.com"}

    def test_event_crud(self, client, superadmin):
        created = client.post("/superadmin/create-event", json={"title": "Quiz"}, headers=auth(superadmin))
        assert created.status_code == 201
        eid = created.json()["id"]

        updated = client.put(f"/superadmin/events/{eid}", json={"location": "Hall C"},
                             headers=auth(superadmin))
        assert updated.json()["location"] == "Hall C"
        assert updated.json()["title"] == "Quiz"

        assert client.delete(f"/superadmin/events/{eid}", headers=auth(superadmin)).status_code == 200
        assert client.get("/superadmin/events", headers=auth(superadmin)).json() == []

    def test_null_title_is_validation_error(self, client, superadmin, db_engine):
        eid = make_event(db_engine, title="Quiz")
        resp = client.put(f"/superadmin/events/{eid}", json={"title": None}, headers=auth(superadmin))
        assert resp.status_code == 422
        assert resp.json()["fields"] == {"title": "required"}


# ===========================================================================
# Participant content
# ===========================================================================
class TestParticipantContent:
    def test_feedback(self, client, db_engine):
        eid = make_event(db_engine)
        token = make_token(make_participant(db_engine, approved=True), Role.PARTICIPANT)

        bad = client.post("/feedback", json={"event_id": eid, "rating": 9}, headers=auth(token))
        assert bad.status_code == 422
        assert bad.json()["error"] == "validation_error"
        assert "rating" in bad.json()["fields"]

        ok = client.post("/feedback", json={"event_id": eid, "rating": 5}, headers=auth(token))
        assert ok.status_code == 201
        dup = client.post("/feedback", json={"event_id": eid, "rating": 4}, headers=auth(token))
        assert dup.status_code == 409

    def test_feedback_summary_staff_only(self, client, db_engine, admin):
        eid = make_event(db_engine)
        token = make_token(make_participant(db_engine, approved=True), Role.PARTICIPANT)
        assert client.get(f"/feedback/event/{eid}", headers=auth(token)).status_code == 403
        resp = client.get(f"/feedback/event/{eid}", headers=auth(admin))
        assert resp.json()["average_rating"] == 0

    def test_lost_found_flow(self, client, db_engine, admin):
        owner = make_participant(db_engine, email="o@example.com", approved=True)
        stranger = make_participant(db_engine, email="s@example.com", approved=True)
        owner_token = make_token(owner, Role.PARTICIPANT)
        stranger_token = make_token(stranger, Role.PARTICIPANT)

        item = client.post("/lost-found/report", json={"type": "LOST", "title": "Wallet"},
                           headers=auth(owner_token)).json()
        assert item["status"] == "PENDING"
        assert item["is_approved"] is False
        assert client.get("/lost-found", headers=auth(stranger_token)).json() == []

        moderated = client.put(f"/lost-found/{item['id']}/status", json={"is_approved": True},
                               headers=auth(admin))
        assert moderated.json()["status"] == "OPEN"
        assert len(client.get("/lost-found", headers=auth(stranger_token)).json()) == 1

        forbidden = client.post(f"/lost-found/{item['id']}/claim", headers=auth(stranger_token))
        assert forbidden.status_code == 403
        closed = client.post(f"/lost-found/{item['id']}/claim", headers=auth(owner_token))
        assert closed.json()["status"] == "CLOSED"

    def test_map_uses_config(self, client, db_engine):
        token = make_token(make_participant(db_engine), Role.PARTICIPANT)
        body = client.get("/participant/map", headers=auth(token)).json()
        assert body["venue_name"] == "Test Campus"
        assert body["approved"] is False

    def test_xp_progress(self, client, db_engine):
        token = make_token(make_participant(db_engine, xp=130), Role.PARTICIPANT)
        body = client.get("/participant/xp", headers=auth(token)).json()
        assert body == {"xp": 130, "level": 2, "progress": 30, "next_level_xp": 100}


# ===========================================================================
# Alerts & notifications
# ===========================================================================
class TestAlertsAndNotifications:
    def test_send_alert(self, client, db_engine, admin, notifier, alert_bus):
        make_participant(db_engine, approved=True, push_token="ExponentPushToken[p]")
        resp = client.post("/alerts/send", json={"message": "Doors open", "targets": "participants"},
                           headers=auth(admin))
        assert resp.status_code == 201
        assert resp.json()["recipients"] == 1
        listed = client.get("/alerts", headers=auth(admin)).json()
        assert [a["message"] for a in listed] == ["Doors open"]

    def test_bad_targets(self, client, admin):
        resp = client.post("/notifications/broadcast",
                           json={"title": "x", "message": "y", "targets": "martians"},
                           headers=auth(admin))
        assert resp.status_code == 422

    def test_notify_unknown_event(self, client, admin):
        resp = client.post("/notifications/events/999", json={"message": "hi"}, headers=auth(admin))
        assert resp.status_code == 404

    def test_push_token_registration(self, client, db_engine, notifier, admin):
        pid = make_participant(db_engine)
        token = make_token(pid, Role.PARTICIPANT)
        resp = client.post("/notifications/push-token", json={"token": "ExponentPushToken[new]"},
                           headers=auth(token))
        assert resp.status_code == 200

        client.post("/notifications/broadcast",
                    json={"title": "x", "message": "y", "targets": "participants"},
                    headers=auth(admin))
        assert notifier.send.await_args.args[0] == ["ExponentPushToken[new]"]

    def test_volunteer_cannot_register_push_token(self, client, db_engine):
        token = make_token(make_volunteer(db_engine), Role.VOLUNTEER)
        resp = client.post("/notifications/push-token", json={"token": "t"}, headers=auth(token))
        assert resp.status_code == 403


# ===========================================================================
# Volunteers
# ===========================================================================
class TestVolunteers:
    def test_create_assign_and_check_in(self, client, db_engine, admin):
        eid = make_event(db_engine, title="Workshop")
        pid = make_participant(db_engine, approved=True, qr_code="TKR-VOL")
        enroll(db_engine, eid, pid)

        created = client.post("/volunteers", json={
            "name": "Val", "email": "val@example.com", "password": "longenough",
        }, headers=auth(admin))
        assert created.status_code == 201
        vid = created.json()["id"]
        vol_token = make_token(vid, Role.VOLUNTEER)

        assert client.get("/volunteer/event", headers=auth(vol_token)).status_code == 404

        assigned = client.put(f"/volunteers/{vid}/assignment", json={"event_id": eid}, headers=auth(admin))
        assert assigned.json()["assigned_event_id"] == eid

        event = client.get("/volunteer/event", headers=auth(vol_token)).json()
        assert event["title"] == "Workshop"
        assert [p["id"] for p in event["participants"]] == [pid]

        checked = client.post("/volunteer/check-in", json={"qr_code": "TKR-VOL"}, headers=auth(vol_token))
        assert checked.status_code == 200
        assert checked.json()["checked_in_now"] is True


# ===========================================================================
# Badges
# ===========================================================================
class TestBadges:
    def test_catalogue_award_and_listing(self, client, db_engine, admin, superadmin, notifier):
        pid = make_participant(db_engine, approved=True, push_token="ExponentPushToken[ada]")
        participant = make_token(pid, Role.PARTICIPANT)

        created = client.post("/superadmin/badges", json={"name": "Early Bird", "type": "special"},
                              headers=auth(superadmin))
        assert created.status_code == 201
        bid = created.json()["id"]
        assert client.get("/superadmin/badges", headers=auth(superadmin)).json() == [created.json()]

        awarded = client.post("/admin/badges/award", json={"participant_id": pid, "badge_id": bid},
                              headers=auth(admin))
        assert awarded.status_code == 201
        assert awarded.json()["badge"]["name"] == "Early Bird"

        tokens, title, body, data = notifier.send.await_args.args
        assert tokens == ["ExponentPushToken[ada]"]
        assert title == "New Badge Earned!"
        assert body == 'You have earned the "Early Bird" badge!'
        assert data == {"type": "badge", "badgeId": bid}

        dup = client.post("/admin/badges/award", json={"participant_id": pid, "badge_id": bid},
                          headers=auth(superadmin))
        assert dup.status_code == 409
        assert notifier.send.await_count == 1

        mine = client.get("/participant/badges", headers=auth(participant)).json()
        assert [b["badge"]["id"] for b in mine] == [bid]

    def test_only_superadmin_defines_badges(self, client, admin):
        resp = client.post("/superadmin/badges", json={"name": "Nope"}, headers=auth(admin))
        assert resp.status_code == 403

    def test_unknown_badge_is_not_found(self, client, db_engine, admin, notifier):
        pid = make_participant(db_engine, approved=True)
        resp = client.post("/admin/badges/award", json={"participant_id": pid, "badge_id": 42},
                           headers=auth(admin))
        assert resp.status_code == 404
        notifier.send.assert_not_awaited()

    def test_unapproved_participant_cannot_list_badges(self, client, db_engine):
        token = make_token(make_participant(db_engine), Role.PARTICIPANT)
        assert client.get("/participant/badges", headers=auth(token)).status_code == 403
