from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional

from ..core.enums import AttendanceStatus
from ..geofence.model import GeoPoint


@dataclass(frozen=True)
class AttendanceRecord:
    """Domain entity: the ledger entry for one student in one session."""

    session_id: str
    student_id: str
    status: AttendanceStatus
    timestamp: datetime
    location: GeoPoint
    student_name: Optional[str] = None
    face_match_score: Optional[float] = None
    approved_manually: bool = False
    approved_by: Optional[str] = None
    original_request_id: Optional[str] = None
    # False when a manual approval had no reported location to write.
    location_verified: bool = True

    @property
    def is_present(self) -> bool:
        return self.status == AttendanceStatus.PRESENT

    def to_dict(self) -> dict:
        return {
            "session_id": self.session_id,
            "student_id": self.student_id,
            "student_name": self.student_name,
            "status": self.status.value,
            "timestamp": self.timestamp.isoformat(),
            "location": self.location.to_dict(),
            "location_verified": self.location_verified,
            "face_match_score": self.face_match_score,
            "approved_manually": self.approved_manually,
            "approved_by": self.approved_by,
            "original_request_id": self.original_request_id,
        }


@dataclass(frozen=True)
class AttendanceSummary:
    present: int
    absent: int
    total: int
    rate: float

    def to_dict(self) -> dict:
        return {"present": self.present, "absent": self.absent, "total": self.total, "rate": round(self.rate, 1)}


def percent(part: int, whole: int) -> float:
    return (part / whole) * 100 if whole > 0 else 0.0


def summarize(records: Iterable[AttendanceRecord]) -> AttendanceSummary:
    """Counts over explicit records only; students with no record are not counted."""
    total = 0
    present = 0
    for r in records:
        total += 1
        if r.is_present:
            present += 1
    return AttendanceSummary(present=present, absent=total - present, total=total, rate=percent(present, total))
