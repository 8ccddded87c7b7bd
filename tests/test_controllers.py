from __future__ import annotations

from datetime import timedelta

import pytest
from flask import Flask

from fakes import FAR_LAT, GYM_LAT, GYM_LON, active_membership, local_dt, make_member

from gym_attendance.attendance.controller import register as register_attendance
from gym_attendance.common.web import install_error_handlers
from gym_attendance.core.enums import MembershipStatus, Role
from gym_attendance.geofence.controller import register as register_geofence
from gym_attendance.members.controller import register as register_members
from gym_attendance.reconciliation.controller import register as register_jobs

NOW = local_dt(2026, 3, 4, 9, 5)


@pytest.fixture
def app(container, monkeypatch):
    monkeypatch.setattr("gym_attendance.attendance.service.now_utc", lambda: NOW)
    monkeypatch.setattr("gym_attendance.members.service.now_utc", lambda: NOW)

    app = Flask(__name__)
    app.secret_key = "test"
    app.config["TESTING"] = True
    install_error_handlers(app)
    register_members(app, container)
    register_attendance(app, container)
    register_geofence(app, container)
    register_jobs(app, container)
    return app


def _login(client, member_id: int, role: Role = Role.MEMBER):
    with client.session_transaction() as sess:
        sess["user_id"] = member_id
        sess["role"] = role.value


def test_requires_login(app):
    resp = app.test_client().post("/api/attendance/clock-in", json={"latitude": GYM_LAT, "longitude": GYM_LON})

    assert resp.status_code == 401
    assert resp.get_json()["success"] is False


def test_clock_in_and_today(app, stores):
    stores.members.add(make_member(1, active_membership(start=local_dt(2026, 3, 1), expiry=NOW + timedelta(days=1))))
    client = app.test_client()
    _login(client, 1)

    resp = client.post("/api/attendance/clock-in", json={"latitude": GYM_LAT, "longitude": GYM_LON})

    assert resp.status_code == 201
    body = resp.get_json()
    assert body["attendance"]["status"] == "on-time"
    assert body["warning"] == "Your membership expires in 1 days! Please renew soon."

    today = client.get("/api/attendance/today").get_json()
    assert today["checkedIn"] is True
    assert today["checkedOut"] is False

    again = client.post("/api/attendance/clock-in", json={"latitude": GYM_LAT, "longitude": GYM_LON})
    assert again.status_code == 409


def test_clock_in_out_of_range_is_a_typed_denial(app, stores):
    stores.members.add(make_member(1, active_membership(start=local_dt(2026, 3, 1), expiry=NOW + timedelta(days=20))))
    client = app.test_client()
    _login(client, 1)

    resp = client.post("/api/attendance/clock-in", json={"latitude": FAR_LAT, "longitude": GYM_LON})

    assert resp.status_code == 403
    assert "away from gym location" in resp.get_json()["message"]


def test_clock_in_without_coordinates(app, stores):
    stores.members.add(make_member(1, active_membership(start=local_dt(2026, 3, 1), expiry=NOW + timedelta(days=20))))
    client = app.test_client()
    _login(client, 1)

    resp = client.post("/api/attendance/clock-in", json={})

    assert resp.status_code == 400
    assert resp.get_json()["message"] == "Location coordinates are required"


def test_clock_out_and_history(app, stores):
    stores.members.add(make_member(1, active_membership(start=local_dt(2026, 3, 1), expiry=NOW + timedelta(days=20))))
    client = app.test_client()
    _login(client, 1)
    client.post("/api/attendance/clock-in", json={"latitude": GYM_LAT, "longitude": GYM_LON})

    resp = client.post("/api/attendance/clock-out", json={})

    assert resp.status_code == 200
    history = client.get("/api/attendance/history?limit=5").get_json()
    assert history["count"] == 1
    stats = client.get("/api/attendance/stats").get_json()["stats"]
    assert stats["totalSessions"] == 1


def test_membership_request_and_staff_approval(app, stores):
    stores.members.add(make_member(1))
    stores.members.add(make_member(2, role=Role.ADMIN))
    member = app.test_client()
    _login(member, 1)

    resp = member.post("/api/membership/request", json={"plan": "3-month"})
    assert resp.status_code == 201
    assert resp.get_json()["membership"]["status"] == "pending"

    assert member.post("/api/membership/1/approve").status_code == 403

    admin = app.test_client()
    _login(admin, 2, Role.ADMIN)
    resp = admin.post("/api/membership/1/approve")

    assert resp.status_code == 200
    assert stores.members.get_by_id(1).membership.status == MembershipStatus.ACTIVE
    assert member.get("/api/membership/status").get_json()["membership"]["plan"] == "3-month"


def test_membership_request_validation(app, stores):
    stores.members.add(make_member(1))
    client = app.test_client()
    _login(client, 1)

    assert client.post("/api/membership/request", json={"plan": "2-week"}).status_code == 400
    assert client.post("/api/membership/request", json={"plan": "1-month", "startDate": "04/03/2026"}).status_code == 400


def test_validate_location(app):
    client = app.test_client()
    _login(client, 1)

    inside = client.post("/api/locations/validate", json={"latitude": GYM_LAT, "longitude": GYM_LON}).get_json()
    outside = client.post("/api/locations/validate", json={"latitude": FAR_LAT, "longitude": GYM_LON}).get_json()

    assert inside["isValid"] is True
    assert inside["zoneId"] == 1
    assert outside["isValid"] is False
    assert outside["nearestLocation"]["name"] == "Main gym"


def test_staff_can_trigger_a_job(app, stores):
    stores.members.add(make_member(2, role=Role.MANAGER))
    client = app.test_client()
    _login(client, 2, Role.MANAGER)

    resp = client.post("/api/admin/jobs/expire_memberships/run")

    assert resp.status_code == 200
    assert resp.get_json()["affected"] == 0
    assert client.post("/api/admin/jobs/unknown/run").status_code == 404
