from __future__ import annotations

from typing import Optional, Sequence

from ..attendance.model import summarize
from ..attendance.repository import AttendanceRepository
from ..common.retry import retry_transient
from ..sessions.model import Session, SessionFilters, SessionHistoryRow, SessionStats
from ..sessions.service import SessionService, filter_sessions
from . import aggregator
from .model import AnalyticsSnapshot, SessionWithRecords


class AnalyticsService:
    """Read-only: loads an instructor's history and hands it to the aggregator."""

    def __init__(self, sessions: SessionService, attendance: AttendanceRepository):
        self._sessions = sessions
        self._attendance = attendance

    def _attach(self, sessions: Sequence[Session]) -> list[SessionWithRecords]:
        if not sessions:
            return []
        by_session = retry_transient(lambda: self._attendance.list_for_sessions([s.session_id for s in sessions]))
        return [SessionWithRecords(session=s, records=tuple(by_session.get(s.session_id, ()))) for s in sessions]

    def snapshot(self, *, instructor_id: str, filters: Optional[SessionFilters] = None) -> AnalyticsSnapshot:
        """Trend/class/hour series over the filtered window; overview over everything."""
        everything = self._attach(self._sessions.list_for_instructor(instructor_id=instructor_id))
        if filters:
            keep = {s.session_id for s in filter_sessions([i.session for i in everything], filters)}
            window = [i for i in everything if i.session.session_id in keep]
        else:
            window = everything

        return AnalyticsSnapshot(
            overview=aggregator.overview(everything),
            trend=aggregator.daily_trend(window),
            classes=aggregator.per_class(window),
            hours=aggregator.per_hour(window),
        )

    def history(self, *, instructor_id: str, filters: Optional[SessionFilters] = None) -> list[SessionHistoryRow]:
        sessions = self._sessions.list_for_instructor(instructor_id=instructor_id, filters=filters)
        rows = []
        for item in self._attach(sessions):
            s = summarize(item.records)
            rows.append(
                SessionHistoryRow(
                    session=item.session,
                    stats=SessionStats(total_attendees=s.total, present_count=s.present, attendance_rate=s.rate),
                )
            )
        return rows


def history_export_rows(rows: Sequence[SessionHistoryRow]) -> list[dict]:
    return [
        {
            "session_code": r.session.session_code or "",
            "class_name": r.session.class_name,
            "date": r.session.start_time.strftime("%Y-%m-%d"),
            "duration": f"{r.session.duration} min",
            "status": "Active" if r.session.active else "Completed",
            "attendees": r.stats.total_attendees,
            "attendance_rate": f"{r.stats.attendance_rate:.1f}%",
        }
        for r in rows
    ]


def analytics_export_rows(snapshot: AnalyticsSnapshot) -> dict[str, list[dict]]:
    """Two sections: headline metrics, then one row per class."""
    o = snapshot.overview
    return {
        "summary": [
            {"metric": "Total Sessions", "value": str(o.total_sessions)},
            {"metric": "Active Sessions", "value": str(o.active_sessions)},
            {"metric": "Overall Attendance Rate", "value": f"{o.rate:.1f}%"},
            {"metric": "Total Attendance Records", "value": str(o.total_records)},
        ],
        "classes": [
            {
                "class_name": c.class_name,
                "sessions": str(c.session_count),
                "avg_attendance": f"{c.avg_attendance:.1f}",
                "attendance_rate": f"{c.rate:.1f}%",
            }
            for c in snapshot.classes
        ],
    }
