from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional

from ..core.enums import SessionState
from ..geofence.model import Geofence


@dataclass(frozen=True)
class Session:
    """Domain entity: one time- and location-bounded attendance window."""

    session_id: str
    instructor_id: str
    class_id: str
    class_name: str
    start_time: datetime
    end_time: datetime
    duration: int
    geofence: Geofence
    active: bool
    session_code: Optional[str] = None

    def is_expired(self, now: datetime) -> bool:
        """Advisory: the window has passed even if nobody ended the session."""
        return self.active and now > self.end_time

    def to_dict(self) -> dict:
        return {
            "id": self.session_id,
            "instructor_id": self.instructor_id,
            "class_id": self.class_id,
            "class_name": self.class_name,
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat(),
            "duration": self.duration,
            "geofence": self.geofence.to_dict(),
            "active": self.active,
            "session_code": self.session_code,
        }


@dataclass(frozen=True)
class NewSession:
    """Validated input for the store's create call."""

    instructor_id: str
    class_id: str
    class_name: str
    start_time: datetime
    end_time: datetime
    duration: int
    geofence: Geofence
    session_code: str


@dataclass(frozen=True)
class SessionFilters:
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    class_id: Optional[str] = None
    state: Optional[SessionState] = None
    search: Optional[str] = None


@dataclass(frozen=True)
class SessionStats:
    total_attendees: int
    present_count: int
    attendance_rate: float


@dataclass(frozen=True)
class SessionHistoryRow:
    """Read-model for history listings and exports."""

    session: Session
    stats: SessionStats = field(default_factory=lambda: SessionStats(0, 0, 0.0))

    def to_dict(self) -> dict:
        out = self.session.to_dict()
        out.update(
            {
                "total_attendees": self.stats.total_attendees,
                "present_count": self.stats.present_count,
                "attendance_rate": round(self.stats.attendance_rate, 1),
            }
        )
        return out
