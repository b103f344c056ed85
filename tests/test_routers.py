"""End-to-end API tests through FastAPI's TestClient."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import json
import pytest
from app.models.user import UserRole


def as_user(user):
    return {"X-User-Id": str(user.id)}


def webhook_body(event_type, reference, session_id):
    return json.dumps({
        "type": event_type,
        "data": {"object": {"id": reference, "metadata": {"sessionId": str(session_id)}}},
    })


class TestPublicEndpoints:
    def test_health(self, client):
        body = client.get("/api/v1/health").json()
        assert body["database"] == "ok"
        assert body["payments"] == "demo"

    def test_list_and_search_zones(self, client, zone, make_zone):
        make_zone(zone_number="G-201")
        assert len(client.get("/api/v1/zones").json()) == 2
        found = client.get("/api/v1/zones", params={"q": "g-2"}).json()
        assert [z["zone_number"] for z in found] == ["G-201"]

    def test_zone_by_number(self, client, zone):
        assert client.get("/api/v1/zones/number/a-101").json()["id"] == zone.id
        assert client.get("/api/v1/zones/number/none").status_code == 404

    def test_unknown_zone_uses_error_body(self, client):
        resp = client.get("/api/v1/zones/999")
        assert resp.status_code == 404
        assert resp.json()["error"] == "not_found"

    def test_estimate(self, client, zone):
        body = client.get(f"/api/v1/zones/{zone.id}/estimate", params={"duration_hours": 2}).json()
        assert body["formatted_total"] == "$3.04"

    def test_restriction_check(self, client, restricted_zone):
        resp = client.get(f"/api/v1/zones/{restricted_zone.id}/restrictions/check",
                          params={"duration_hours": 1, "start": "2026-06-01T08:30:00"})
        body = resp.json()
        assert body["can_park"] is False
        assert body["restrictions"][0]["type"] == "RUSH_HOUR"
        assert body["restrictions"][0]["description"].startswith("🚗")

    def test_next_available(self, client, restricted_zone):
        body = client.get(f"/api/v1/zones/{restricted_zone.id}/next-available",
                          params={"after": "2026-06-01T08:00:00"}).json()
        assert body["next_available_time"].startswith("2026-06-01T09:00")
        assert body["available_now"] is False


class TestSessionFlow:
    def test_create_pay_and_terminate(self, client, user, vehicle, zone):
        created = client.post("/api/v1/sessions", headers=as_user(user),
                              json={"vehicle_id": vehicle.id, "zone_id": zone.id, "duration_hours": 2})
        assert created.status_code == 201
        session_id = created.json()["session"]["id"]
        assert created.json()["session"]["status"] == "PENDING"

        intent = client.post("/api/v1/payments/create-intent", headers=as_user(user),
                             json={"session_id": session_id}).json()
        assert intent["client_secret"]

        hook = client.post("/api/v1/payments/webhook",
                           content=webhook_body("payment_intent.succeeded", intent["payment_reference"], session_id))
        assert hook.status_code == 200

        session = client.get(f"/api/v1/sessions/{session_id}", headers=as_user(user)).json()
        assert session["status"] == "ACTIVE"

        ended = client.post(f"/api/v1/sessions/{session_id}/terminate", headers=as_user(user))
        assert ended.status_code == 200
        body = ended.json()
        assert body["session"]["status"] == "COMPLETED"
        assert body["refund_error"] is None
        assert body["message"].startswith("Session terminated. Refund of $1.99")

    def test_extend_active_session(self, client, user, vehicle, zone):
        session_id = client.post("/api/v1/sessions", headers=as_user(user), json={
            "vehicle_id": vehicle.id, "zone_id": zone.id, "duration_hours": 1}).json()["session"]["id"]
        client.post(f"/api/v1/sessions/{session_id}/confirm", headers=as_user(user),
                    json={"payment_reference": "pi_manual"})

        resp = client.post(f"/api/v1/sessions/{session_id}/extend", headers=as_user(user),
                           json={"additional_hours": 1})
        assert resp.status_code == 200
        assert resp.json()["session"]["status"] == "EXTENDED"
        assert resp.json()["session"]["duration_hours"] == 2.0

    def test_over_limit_extension(self, client, user, vehicle, zone):
        session_id = client.post("/api/v1/sessions", headers=as_user(user), json={
            "vehicle_id": vehicle.id, "zone_id": zone.id, "duration_hours": 3}).json()["session"]["id"]
        client.post(f"/api/v1/sessions/{session_id}/confirm", headers=as_user(user),
                    json={"payment_reference": "pi_manual"})

        resp = client.post(f"/api/v1/sessions/{session_id}/extend", headers=as_user(user),
                           json={"additional_hours": 2})
        assert resp.status_code == 400
        assert resp.json() == {
            "error": "limit_exceeded",
            "detail": "Total duration would exceed zone maximum of 4.0 hours",
            "max_additional_hours": 1.0,
        }

    def test_duplicate_session_conflicts(self, client, user, vehicle, zone):
        payload = {"vehicle_id": vehicle.id, "zone_id": zone.id, "duration_hours": 1}
        assert client.post("/api/v1/sessions", headers=as_user(user), json=payload).status_code == 201
        assert client.post("/api/v1/sessions", headers=as_user(user), json=payload).status_code == 409

    def test_failed_payment_webhook_cancels(self, client, user, vehicle, zone):
        session_id = client.post("/api/v1/sessions", headers=as_user(user), json={
            "vehicle_id": vehicle.id, "zone_id": zone.id, "duration_hours": 1}).json()["session"]["id"]
        intent = client.post("/api/v1/payments/create-intent", headers=as_user(user),
                             json={"session_id": session_id}).json()

        client.post("/api/v1/payments/webhook",
                    content=webhook_body("payment_intent.payment_failed", intent["payment_reference"], session_id))

        session = client.get(f"/api/v1/sessions/{session_id}", headers=as_user(user)).json()
        assert session["status"] == "CANCELLED"
        assert session["transactions"][0]["status"] == "FAILED"

    def test_succeeded_webhook_without_payment_id_is_acknowledged(self, client, user, vehicle, zone):
        session_id = client.post("/api/v1/sessions", headers=as_user(user), json={
            "vehicle_id": vehicle.id, "zone_id": zone.id, "duration_hours": 1}).json()["session"]["id"]

        hook = client.post("/api/v1/payments/webhook",
                           content=webhook_body("payment_intent.succeeded", None, session_id))

        assert hook.status_code == 200
        session = client.get(f"/api/v1/sessions/{session_id}", headers=as_user(user)).json()
        assert session["status"] == "PENDING"

    def test_malformed_webhook(self, client):
        assert client.post("/api/v1/payments/webhook", content="not json").status_code == 400

    def test_zero_duration_rejected(self, client, user, vehicle, zone):
        resp = client.post("/api/v1/sessions", headers=as_user(user),
                           json={"vehicle_id": vehicle.id, "zone_id": zone.id, "duration_hours": 0})
        assert resp.status_code == 422


class TestAccess:
    def test_missing_user_header(self, client):
        assert client.get("/api/v1/sessions").status_code == 401

    def test_other_users_session_is_hidden(self, client, make_user, user, vehicle, zone):
        session_id = client.post("/api/v1/sessions", headers=as_user(user), json={
            "vehicle_id": vehicle.id, "zone_id": zone.id, "duration_hours": 1}).json()["session"]["id"]
        other = make_user(email="other@example.com")
        assert client.get(f"/api/v1/sessions/{session_id}", headers=as_user(other)).status_code == 404

    def test_vehicle_registration(self, client, user, make_user):
        resp = client.post("/api/v1/vehicles", headers=as_user(user),
                           json={"license_plate": "new 123", "state": "ny"})
        assert resp.status_code == 201
        assert resp.json()["license_plate"] == "NEW 123"

        other = make_user(email="other@example.com")
        dup = client.post("/api/v1/vehicles", headers=as_user(other),
                          json={"license_plate": "NEW 123", "state": "NY"})
        assert dup.status_code == 409

    def test_drivers_cannot_use_enforcement(self, client, user):
        resp = client.get("/api/v1/enforcement/active-sessions", headers=as_user(user))
        assert resp.status_code == 403
        assert resp.json()["error"] == "permission_denied"

    def test_officer_validates_plate(self, client, make_user, zone):
        officer = make_user(email="officer@example.com", role=UserRole.ENFORCEMENT)
        resp = client.post("/api/v1/enforcement/validate-session", headers=as_user(officer),
                           json={"license_plate": "ABC1234", "state": "CT", "zone_number": "A-101"})
        assert resp.status_code == 200
        assert resp.json()["valid_session"] is False

    def test_admin_sweeps(self, client, make_user):
        admin = make_user(email="admin@example.com", role=UserRole.ADMIN)
        assert client.post("/api/v1/admin/sessions/expire", headers=as_user(admin)).json() == {"expired": 0}
        assert client.post("/api/v1/admin/sessions/reap-pending", headers=as_user(admin)).json() == {"cancelled": 0}

    def test_officers_cannot_run_admin_sweeps(self, client, make_user):
        officer = make_user(email="officer@example.com", role=UserRole.ENFORCEMENT)
        assert client.post("/api/v1/admin/sessions/expire", headers=as_user(officer)).status_code == 403

    def test_admin_overview(self, client, make_user, user, vehicle, zone):
        admin = make_user(email="admin@example.com", role=UserRole.ADMIN)
        client.post("/api/v1/sessions", headers=as_user(user),
                    json={"vehicle_id": vehicle.id, "zone_id": zone.id, "duration_hours": 1})

        pending = client.get("/api/v1/admin/sessions", params={"status": "PENDING"}, headers=as_user(admin))
        assert pending.status_code == 200
        assert [s["vehicle_id"] for s in pending.json()] == [vehicle.id]

        stats = client.get("/api/v1/admin/stats", headers=as_user(admin)).json()
        assert stats["total_sessions"] == 1
        assert stats["active_sessions"] == 1
        assert len(stats["recent_sessions"]) == 1

    def test_drivers_cannot_read_admin_stats(self, client, user):
        assert client.get("/api/v1/admin/stats", headers=as_user(user)).status_code == 403
