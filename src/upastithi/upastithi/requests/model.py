from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional

from ..core.enums import EvidenceType, RequestStatus, RequestType
from ..geofence.model import GeoPoint


@dataclass(frozen=True)
class Evidence:
    type: EvidenceType
    url: str
    filename: str

    def to_dict(self) -> dict:
        return {"type": self.type.value, "url": self.url, "filename": self.filename}


@dataclass(frozen=True)
class OriginalAttempt:
    """Snapshot of the automatic check-in that failed."""

    timestamp: datetime
    location: GeoPoint
    error: str
    face_match_score: Optional[float] = None

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp.isoformat(),
            "location": self.location.to_dict(),
            "face_match_score": self.face_match_score,
            "error": self.error,
        }


@dataclass(frozen=True)
class AttendanceRequest:
    request_id: str
    student_id: str
    student_name: str
    student_email: str
    session_id: str
    session_name: str
    class_name: str
    faculty_id: str
    request_type: RequestType
    status: RequestStatus
    description: str
    submitted_at: datetime
    evidence: tuple[Evidence, ...] = ()
    location: Optional[GeoPoint] = None
    original_attempt: Optional[OriginalAttempt] = None
    reviewed_at: Optional[datetime] = None
    reviewed_by: Optional[str] = None
    review_comments: Optional[str] = None
    review_token: Optional[str] = None

    @property
    def is_pending(self) -> bool:
        return self.status == RequestStatus.PENDING

    def to_dict(self) -> dict:
        return {
            "id": self.request_id,
            "student_id": self.student_id,
            "student_name": self.student_name,
            "student_email": self.student_email,
            "session_id": self.session_id,
            "session_name": self.session_name,
            "class_name": self.class_name,
            "faculty_id": self.faculty_id,
            "request_type": self.request_type.value,
            "status": self.status.value,
            "description": self.description,
            "evidence": [e.to_dict() for e in self.evidence],
            "location": self.location.to_dict() if self.location else None,
            "submitted_at": self.submitted_at.isoformat(),
            "reviewed_at": self.reviewed_at.isoformat() if self.reviewed_at else None,
            "reviewed_by": self.reviewed_by,
            "review_comments": self.review_comments,
            "original_attempt": self.original_attempt.to_dict() if self.original_attempt else None,
        }


@dataclass(frozen=True)
class NewAttendanceRequest:
    """What the student-side submitter hands to the store."""

    student_id: str
    student_name: str
    student_email: str
    session_id: str
    session_name: str
    class_name: str
    faculty_id: str
    request_type: RequestType
    description: str
    submitted_at: datetime
    evidence: tuple[Evidence, ...] = ()
    location: Optional[GeoPoint] = None
    original_attempt: Optional[OriginalAttempt] = None


@dataclass(frozen=True)
class Review:
    """The terminal decision written onto a pending request."""

    status: RequestStatus
    reviewed_by: str
    reviewed_at: datetime
    comments: Optional[str] = None
    # Identifies this decision so a retry can recognise its own committed write.
    token: str = field(default_factory=lambda: uuid.uuid4().hex)


@dataclass(frozen=True)
class RequestFilters:
    status: Optional[RequestStatus] = None
    request_type: Optional[RequestType] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    class_name: Optional[str] = None
    search: Optional[str] = None


@dataclass(frozen=True)
class RequestStats:
    total: int = 0
    pending: int = 0
    approved: int = 0
    rejected: int = 0
    by_type: dict[str, int] = field(default_factory=lambda: {t.value: 0 for t in RequestType})

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "pending": self.pending,
            "approved": self.approved,
            "rejected": self.rejected,
            "by_type": dict(self.by_type),
        }


@dataclass(frozen=True)
class AttemptDistance:
    """How far the failed attempt was from the session's geofence centre."""

    distance_m: float
    radius_m: float
    within: bool

    def to_dict(self) -> dict:
        return {"distance_m": round(self.distance_m, 1), "radius_m": self.radius_m, "within": self.within}
