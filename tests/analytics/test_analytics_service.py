from __future__ import annotations

from datetime import date, datetime, timedelta

import pytest

from src.upastithi.upastithi.analytics.service import AnalyticsService, analytics_export_rows, history_export_rows
from src.upastithi.upastithi.attendance.model import AttendanceRecord
from src.upastithi.upastithi.core.enums import AttendanceStatus, SessionState
from src.upastithi.upastithi.geofence.model import GeoPoint, Geofence
from src.upastithi.upastithi.sessions.model import Session, SessionFilters
from src.upastithi.upastithi.sessions.service import SessionService


def _session(sid: str, start: datetime, class_name: str, *, active: bool = False, code: str = "") -> Session:
    return Session(
        session_id=sid,
        instructor_id="F",
        class_id=class_name.lower(),
        class_name=class_name,
        start_time=start,
        end_time=start + timedelta(minutes=60),
        duration=60,
        geofence=Geofence(lat=28.6139, lon=77.209, radius=100),
        active=active,
        session_code=code or None,
    )


class FakeSessionsRepo:
    def __init__(self, sessions):
        self.rows = {s.session_id: s for s in sessions}

    def get(self, session_id):
        return self.rows.get(session_id)

    def list_for_instructor(self, instructor_id, *, start_from=None, start_to=None, class_id=None, limit=500, offset=0):
        out = [s for s in self.rows.values() if s.instructor_id == instructor_id]
        if start_from:
            out = [s for s in out if s.start_time >= start_from]
        if start_to:
            out = [s for s in out if s.start_time <= start_to]
        if class_id:
            out = [s for s in out if s.class_id == class_id]
        return sorted(out, key=lambda s: s.start_time, reverse=True)[offset : offset + limit]


class FakeAttendanceRepo:
    def __init__(self, records):
        self.records = list(records)
        self.batch_calls = 0

    def list_for_sessions(self, session_ids):
        self.batch_calls += 1
        out = {}
        for r in self.records:
            if r.session_id in session_ids:
                out.setdefault(r.session_id, []).append(r)
        return out


def _record(session_id: str, student_id: str, present: bool) -> AttendanceRecord:
    return AttendanceRecord(
        session_id=session_id,
        student_id=student_id,
        status=AttendanceStatus.PRESENT if present else AttendanceStatus.ABSENT,
        timestamp=datetime(2025, 9, 1, 9, 5),
        location=GeoPoint(lat=28.6139, lon=77.209),
    )


@pytest.fixture()
def service():
    sessions = [
        _session("a", datetime(2025, 9, 1, 9, 0), "CS101", code="CS11234"),
        _session("b", datetime(2025, 9, 2, 11, 0), "DSA", code="DSA5678"),
        _session("c", datetime(2025, 9, 3, 9, 0), "CS101", active=True, code="CS19999"),
    ]
    records = [
        _record("a", "u1", True),
        _record("a", "u2", True),
        _record("a", "u3", False),
        _record("b", "u1", True),
        _record("b", "u2", False),
    ]
    attendance = FakeAttendanceRepo(records)
    svc = AnalyticsService(SessionService(FakeSessionsRepo(sessions)), attendance)
    return svc, attendance


def test_snapshot_over_everything(service):
    svc, attendance = service
    snap = svc.snapshot(instructor_id="F")

    assert snap.overview.total_sessions == 3
    assert snap.overview.active_sessions == 1
    assert snap.overview.total_records == 5
    assert snap.overview.rate == pytest.approx(60.0)
    assert [c.class_name for c in snap.classes] == ["CS101", "DSA"]
    assert [p.date for p in snap.trend] == [date(2025, 9, 1), date(2025, 9, 2), date(2025, 9, 3)]
    assert attendance.batch_calls == 1


def test_snapshot_filters_window_but_not_overview(service):
    svc, _ = service
    snap = svc.snapshot(instructor_id="F", filters=SessionFilters(class_id="dsa"))

    assert snap.overview.total_sessions == 3
    assert [c.class_name for c in snap.classes] == ["DSA"]
    assert [h.hour for h in snap.hours] == [11]


def test_snapshot_for_instructor_without_sessions():
    svc = AnalyticsService(SessionService(FakeSessionsRepo([])), FakeAttendanceRepo([]))
    snap = svc.snapshot(instructor_id="nobody")
    assert snap.trend == [] and snap.classes == [] and snap.hours == []
    assert snap.overview.total_sessions == 0


def test_history_rows_and_export(service):
    svc, _ = service
    rows = svc.history(instructor_id="F", filters=SessionFilters(state=SessionState.COMPLETED))

    assert [r.session.session_id for r in rows] == ["b", "a"]
    assert rows[1].stats.total_attendees == 3
    assert rows[1].stats.present_count == 2

    exported = history_export_rows(rows)
    assert exported[1] == {
        "session_code": "CS11234",
        "class_name": "CS101",
        "date": "2025-09-01",
        "duration": "60 min",
        "status": "Completed",
        "attendees": 3,
        "attendance_rate": "66.7%",
    }


def test_analytics_export_sections(service):
    svc, _ = service
    sections = analytics_export_rows(svc.snapshot(instructor_id="F"))

    assert sections["summary"][0] == {"metric": "Total Sessions", "value": "3"}
    assert sections["summary"][2] == {"metric": "Overall Attendance Rate", "value": "60.0%"}
    assert sections["classes"][0] == {
        "class_name": "CS101",
        "sessions": "2",
        "avg_attendance": "1.5",
        "attendance_rate": "66.7%",
    }


def test_snapshot_counts_sessions_beyond_one_store_page():
    sessions = [_session(f"s{i}", datetime(2025, 9, 1, 9, 0) + timedelta(days=i), "CS101") for i in range(5)]
    svc = AnalyticsService(SessionService(FakeSessionsRepo(sessions), page_size=2), FakeAttendanceRepo([]))

    snap = svc.snapshot(instructor_id="F")

    assert snap.overview.total_sessions == 5
    assert len(svc.history(instructor_id="F")) == 5
