from __future__ import annotations

from enum import Enum


class AttendanceStatus(str, Enum):
    """Outcome stored in the ledger. A missing record also means absent."""

    PRESENT = "present"
    ABSENT = "absent"


class RequestStatus(str, Enum):
    """Review state of an exception request. Only PENDING is non-terminal."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class RequestType(str, Enum):
    FACE_MATCH_FAILED = "face_match_failed"
    LOCATION_ISSUE = "location_issue"
    TECHNICAL_ERROR = "technical_error"
    OTHER = "other"

    @property
    def label(self) -> str:
        return {
            RequestType.FACE_MATCH_FAILED: "Face Match Failed",
            RequestType.LOCATION_ISSUE: "Location Issue",
            RequestType.TECHNICAL_ERROR: "Technical Error",
            RequestType.OTHER: "Other Issue",
        }[self]


class EvidenceType(str, Enum):
    IMAGE = "image"
    SCREENSHOT = "screenshot"
    DOCUMENT = "document"


class SessionState(str, Enum):
    """Filter values for session listings."""

    ACTIVE = "active"
    COMPLETED = "completed"
