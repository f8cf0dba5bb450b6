from __future__ import annotations

import dataclasses
import threading
from datetime import datetime, timedelta

import pytest

from src.upastithi.upastithi.container import assemble
from src.upastithi.upastithi.core.enums import RequestStatus, RequestType
from src.upastithi.upastithi.geofence.model import GeoPoint
from src.upastithi.upastithi.main import create_app
from src.upastithi.upastithi.requests.model import AttendanceRequest, NewAttendanceRequest
from src.upastithi.upastithi.sessions.model import Session

T0 = datetime(2025, 9, 1, 9, 0, 0)
CENTER = {"lat": 28.6139, "lon": 77.209}
GEOFENCE = dict(CENTER, radius=100)


class Clock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


class FakeSessionsRepo:
    def __init__(self):
        self.rows: dict[str, Session] = {}

    def create(self, new):
        sid = f"s{len(self.rows) + 1}"
        self.rows[sid] = Session(session_id=sid, active=True, **{f.name: getattr(new, f.name) for f in dataclasses.fields(new)})
        return self.rows[sid]

    def get(self, session_id):
        return self.rows.get(session_id)

    def list_for_instructor(self, instructor_id, *, start_from=None, start_to=None, class_id=None, limit=500, offset=0):
        out = [s for s in self.rows.values() if s.instructor_id == instructor_id]
        if class_id:
            out = [s for s in out if s.class_id == class_id]
        return sorted(out, key=lambda s: s.start_time, reverse=True)[offset : offset + limit]

    def end(self, session_id, *, ended_at):
        s = self.rows.get(session_id)
        if not s or not s.active:
            return False
        self.rows[session_id] = dataclasses.replace(s, active=False, end_time=ended_at)
        return True


class FakeAttendanceRepo:
    def __init__(self):
        self.rows = {}

    def upsert(self, record):
        self.rows[(record.session_id, record.student_id)] = record
        return record

    def list_for_session(self, session_id):
        return [r for (sid, _), r in self.rows.items() if sid == session_id]

    def list_for_sessions(self, session_ids):
        out = {}
        for (sid, _), r in self.rows.items():
            if sid in session_ids:
                out.setdefault(sid, []).append(r)
        return out


class FakeRequestsRepo:
    def __init__(self, ledger: FakeAttendanceRepo):
        self._ledger = ledger
        self._lock = threading.Lock()
        self.rows: dict[str, AttendanceRequest] = {}

    def create(self, new):
        rid = f"r{len(self.rows) + 1}"
        self.rows[rid] = AttendanceRequest(
            request_id=rid, status=RequestStatus.PENDING, **{f.name: getattr(new, f.name) for f in dataclasses.fields(new)}
        )
        return self.rows[rid]

    def get(self, request_id):
        return self.rows.get(request_id)

    def list_for_faculty(self, faculty_id, *, submitted_from=None, submitted_to=None, limit=500, offset=0):
        out = [r for r in self.rows.values() if r.faculty_id == faculty_id]
        return sorted(out, key=lambda r: r.submitted_at, reverse=True)[offset : offset + limit]

    def decide(self, request_id, review, *, ledger_record=None):
        with self._lock:
            req = self.rows.get(request_id)
            if not req or req.status != RequestStatus.PENDING:
                return False
            self.rows[request_id] = dataclasses.replace(
                req,
                status=review.status,
                reviewed_at=review.reviewed_at,
                reviewed_by=review.reviewed_by,
                review_comments=review.comments,
                review_token=review.token,
            )
            if ledger_record is not None:
                self._ledger.upsert(ledger_record)
            return True


@pytest.fixture()
def env(monkeypatch):
    monkeypatch.setenv("APP_ENV", "testing")
    clock = Clock(T0)
    sessions = FakeSessionsRepo()
    ledger = FakeAttendanceRepo()
    requests = FakeRequestsRepo(ledger)
    app = create_app(container=assemble(sessions, ledger, requests, clock=clock))
    return app.test_client(), clock, sessions, ledger, requests


def _as(user_id: str) -> dict:
    return {"X-User-Id": user_id}


def _create_session(client, user="F", **overrides):
    body = {"class_id": "class1", "class_name": "Computer Science 101", "duration": 60, "geofence": GEOFENCE}
    body.update(overrides)
    return client.post("/api/sessions", json=body, headers=_as(user))


def test_requires_identity(env):
    client, *_ = env
    resp = client.get("/api/sessions")
    assert resp.status_code == 401
    assert resp.get_json()["error"] == "unauthenticated"


def test_create_and_view_session(env):
    client, clock, *_ = env
    resp = _create_session(client)
    assert resp.status_code == 201
    session = resp.get_json()["session"]
    assert session["active"] is True
    assert session["session_code"].startswith("COM")

    clock.now = T0 + timedelta(minutes=15)
    detail = client.get(f"/api/sessions/{session['id']}", headers=_as("F")).get_json()
    assert detail["remaining_minutes"] == 45
    assert detail["share_text"].startswith("Join session: Computer Science 101")
    assert detail["attendance"]["total"] == 0

    assert client.get(f"/api/sessions/{session['id']}", headers=_as("G")).status_code == 403
    assert client.get("/api/sessions/missing", headers=_as("F")).status_code == 404


def test_create_session_validation_errors(env):
    client, _, sessions, *_ = env
    resp = _create_session(client, duration=200)
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "invalid_duration"

    resp = _create_session(client, geofence=dict(CENTER, radius=1000))
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "invalid_geofence"
    assert sessions.rows == {}


def test_end_session_is_idempotent_unless_strict(env):
    client, *_ = env
    sid = _create_session(client).get_json()["session"]["id"]

    assert client.post(f"/api/sessions/{sid}/end", headers=_as("F")).status_code == 200
    again = client.post(f"/api/sessions/{sid}/end", headers=_as("F"))
    assert again.status_code == 200
    assert again.get_json()["session"]["active"] is False

    strict = client.post(f"/api/sessions/{sid}/end", json={"strict": True}, headers=_as("F"))
    assert strict.status_code == 409
    assert strict.get_json()["error"] == "already_ended"


def test_check_in_derives_status_from_geofence(env):
    client, _, _, ledger, _ = env
    sid = _create_session(client).get_json()["session"]["id"]

    inside = client.post(f"/api/sessions/{sid}/attendance", json={"location": CENTER}, headers=_as("stu-1"))
    assert inside.status_code == 201
    assert inside.get_json()["record"]["status"] == "present"
    assert inside.get_json()["within_geofence"] is True

    outside = client.post(
        f"/api/sessions/{sid}/attendance", json={"location": {"lat": 28.6170, "lon": 77.2140}}, headers=_as("stu-2")
    )
    assert outside.get_json()["record"]["status"] == "absent"
    assert outside.get_json()["distance_m"] > 100

    listing = client.get(f"/api/sessions/{sid}/attendance", headers=_as("F")).get_json()
    assert listing["summary"] == {"present": 1, "absent": 1, "total": 2, "rate": 50.0}
    assert client.get(f"/api/sessions/{sid}/attendance", headers=_as("stu-1")).status_code == 403


def test_check_in_rejected_after_session_ends(env):
    client, _, _, ledger, _ = env
    sid = _create_session(client).get_json()["session"]["id"]
    client.post(f"/api/sessions/{sid}/end", headers=_as("F"))

    resp = client.post(f"/api/sessions/{sid}/attendance", json={"location": CENTER}, headers=_as("stu-1"))
    assert resp.status_code == 400
    assert ledger.rows == {}

    missing_location = client.post(f"/api/sessions/{sid}/attendance", json={}, headers=_as("stu-1"))
    assert missing_location.status_code == 400


def test_session_qr_png(env):
    client, *_ = env
    sid = _create_session(client).get_json()["session"]["id"]
    resp = client.get(f"/api/sessions/{sid}/qr.png", headers=_as("F"))
    assert resp.status_code == 200
    assert resp.mimetype == "image/png"
    assert resp.data.startswith(b"\x89PNG")


def _seed_request(requests, sid: str, **overrides):
    values = dict(
        student_id="U",
        student_name="Kabir Singh",
        student_email="kabir@example.edu",
        session_id=sid,
        session_name="COM4821",
        class_name="Computer Science 101",
        faculty_id="F",
        request_type=RequestType.LOCATION_ISSUE,
        description="GPS drifted",
        submitted_at=T0 + timedelta(minutes=20),
        location=GeoPoint(lat=12.9, lon=77.6),
    )
    values.update(overrides)
    return requests.create(NewAttendanceRequest(**values))


def test_approve_flow(env):
    client, _, _, ledger, requests = env
    sid = _create_session(client).get_json()["session"]["id"]
    req = _seed_request(requests, sid)

    resp = client.post(f"/api/requests/{req.request_id}/approve", json={"comments": "ok"}, headers=_as("F"))
    assert resp.status_code == 200
    assert resp.get_json()["request"]["status"] == "approved"
    assert ledger.rows[(sid, "U")].approved_manually is True

    again = client.post(f"/api/requests/{req.request_id}/reject", headers=_as("F"))
    assert again.status_code == 409
    assert again.get_json()["error"] == "already_reviewed"

    stranger = _seed_request(requests, sid, student_id="V")
    assert client.post(f"/api/requests/{stranger.request_id}/approve", headers=_as("G")).status_code == 403


def test_request_listing_and_export(env):
    client, _, _, _, requests = env
    sid = _create_session(client).get_json()["session"]["id"]
    _seed_request(requests, sid)
    _seed_request(requests, sid, student_id="V", student_name="Diya Patel", request_type=RequestType.OTHER)

    body = client.get("/api/requests?status=pending&request_type=other", headers=_as("F")).get_json()
    assert [r["student_name"] for r in body["requests"]] == ["Diya Patel"]
    assert body["stats"]["total"] == 2
    assert body["stats"]["by_type"]["location_issue"] == 1

    assert client.get("/api/requests?status=unknown", headers=_as("F")).status_code == 400

    export = client.get("/api/requests/export.csv", headers=_as("F"))
    assert export.status_code == 200
    assert export.mimetype == "text/csv"
    text = export.data.decode("utf-8-sig")
    assert text.splitlines()[0] == "Student Name,Email,Session,Class,Type,Status,Submitted,Description"
    assert "Location Issue,PENDING" in text


def test_request_detail_includes_attempt_distance(env):
    client, _, _, _, requests = env
    sid = _create_session(client).get_json()["session"]["id"]
    req = _seed_request(requests, sid)

    body = client.get(f"/api/requests/{req.request_id}", headers=_as("F")).get_json()
    assert body["request"]["id"] == req.request_id
    assert body["attempt_distance"] is None


def test_analytics_and_history(env):
    client, clock, _, ledger, _ = env
    sid = _create_session(client).get_json()["session"]["id"]
    client.post(f"/api/sessions/{sid}/attendance", json={"location": CENTER}, headers=_as("stu-1"))
    client.post(f"/api/sessions/{sid}/end", headers=_as("F"))

    snap = client.get("/api/analytics", headers=_as("F")).get_json()["analytics"]
    assert snap["overview"]["total_sessions"] == 1
    assert snap["classes"][0]["rate"] == 100.0
    assert snap["hours"][0]["hour"] == 9

    history = client.get("/api/sessions/history?status=completed", headers=_as("F")).get_json()
    assert history["total_items"] == 1
    assert history["sessions"][0]["attendance_rate"] == 100.0

    csv_text = client.get("/api/sessions/history.csv", headers=_as("F")).data.decode("utf-8-sig")
    lines = csv_text.splitlines()
    assert lines[0] == "Session Code,Class,Date,Duration,Status,Attendees,Attendance Rate"
    assert lines[1].endswith("2025-09-01,60 min,Completed,1,100.0%")

    analytics_csv = client.get("/api/analytics/export.csv", headers=_as("F")).data.decode("utf-8-sig")
    assert analytics_csv.splitlines()[0] == "Metric,Value"
    assert "Class,Sessions,Avg Attendance,Attendance Rate" in analytics_csv
