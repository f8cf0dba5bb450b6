from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date

from ..attendance.model import AttendanceRecord
from ..sessions.model import Session


@dataclass(frozen=True)
class SessionWithRecords:
    """A session with its ledger entries attached by the caller."""

    session: Session
    records: tuple[AttendanceRecord, ...] = ()


@dataclass(frozen=True)
class TrendPoint:
    date: date
    present: int
    total: int
    rate: float

    def to_dict(self) -> dict:
        return {"date": self.date.isoformat(), "present": self.present, "total": self.total, "rate": round(self.rate, 1)}


@dataclass(frozen=True)
class ClassAnalytics:
    class_name: str
    session_count: int
    avg_attendance: float
    total_attendees: int
    rate: float

    def to_dict(self) -> dict:
        return {
            "class_name": self.class_name,
            "session_count": self.session_count,
            "avg_attendance": round(self.avg_attendance, 1),
            "total_attendees": self.total_attendees,
            "rate": round(self.rate, 1),
        }


@dataclass(frozen=True)
class HourAnalytics:
    hour: int
    session_count: int
    avg_attendance: float

    def to_dict(self) -> dict:
        return {"hour": self.hour, "session_count": self.session_count, "avg_attendance": round(self.avg_attendance, 1)}


@dataclass(frozen=True)
class Overview:
    total_sessions: int
    active_sessions: int
    total_records: int
    present_records: int
    rate: float

    def to_dict(self) -> dict:
        return {
            "total_sessions": self.total_sessions,
            "active_sessions": self.active_sessions,
            "total_records": self.total_records,
            "present_records": self.present_records,
            "rate": round(self.rate, 1),
        }


@dataclass(frozen=True)
class AnalyticsSnapshot:
    """Derived on every query; never persisted."""

    overview: Overview
    trend: list[TrendPoint] = field(default_factory=list)
    classes: list[ClassAnalytics] = field(default_factory=list)
    hours: list[HourAnalytics] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "overview": self.overview.to_dict(),
            "trend": [p.to_dict() for p in self.trend],
            "classes": [c.to_dict() for c in self.classes],
            "hours": [h.to_dict() for h in self.hours],
        }
