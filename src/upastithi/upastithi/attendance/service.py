from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Optional, Sequence

from ..common.datetime_utils import now_local
from ..common.retry import retry_transient
from ..common.validators import require_non_empty
from ..core.enums import AttendanceStatus
from ..core.exceptions import ValidationError
from ..geofence.model import GeoPoint
from ..geofence.validator import validate_point
from .model import AttendanceRecord, AttendanceSummary, summarize
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)

# Written when an approved request carried no location.
UNVERIFIED_LOCATION = GeoPoint(lat=0.0, lon=0.0)


def manual_present_record(
    *,
    session_id: str,
    student_id: str,
    approved_by: str,
    original_request_id: str,
    location: Optional[GeoPoint],
    student_name: Optional[str] = None,
    now: datetime,
) -> AttendanceRecord:
    """The ledger entry an approval writes: present, flagged as a manual override."""
    return AttendanceRecord(
        session_id=session_id,
        student_id=student_id,
        student_name=student_name,
        status=AttendanceStatus.PRESENT,
        timestamp=now,
        location=GeoPoint(lat=location.lat, lon=location.lon) if location else UNVERIFIED_LOCATION,
        location_verified=location is not None,
        approved_manually=True,
        approved_by=approved_by,
        original_request_id=original_request_id,
    )


class AttendanceService:
    def __init__(self, attendance: AttendanceRepository, *, clock: Callable[[], datetime] = now_local):
        self._attendance = attendance
        self._clock = clock

    def record(
        self,
        *,
        session_id: str,
        student_id: str,
        status: AttendanceStatus | str,
        location: GeoPoint,
        face_match_score: Optional[float] = None,
        student_name: Optional[str] = None,
    ) -> AttendanceRecord:
        """Upsert the student's entry for the session (last write wins).

        Not retried on transient store errors: the caller decides.
        """
        session_id = require_non_empty(session_id, "Session id")
        student_id = require_non_empty(student_id, "Student id")
        try:
            status = AttendanceStatus(status)
        except ValueError:
            raise ValidationError("Status must be 'present' or 'absent'", operation="attendance.record")
        if location is None:
            raise ValidationError("Location is required", operation="attendance.record")
        location = validate_point(location)
        if face_match_score is not None:
            try:
                face_match_score = float(face_match_score)
            except (TypeError, ValueError):
                raise ValidationError("Face match score must be a number", operation="attendance.record")

        rec = self._attendance.upsert(
            AttendanceRecord(
                session_id=session_id,
                student_id=student_id,
                student_name=(student_name or "").strip() or None,
                status=status,
                timestamp=self._clock(),
                location=location,
                face_match_score=face_match_score,
            )
        )
        logger.info("Attendance %s recorded for %s in session %s", status.value, student_id, session_id)
        return rec

    def get(self, session_id: str) -> Sequence[AttendanceRecord]:
        records = retry_transient(lambda: self._attendance.list_for_session(session_id))
        return sorted(records, key=lambda r: r.timestamp)

    def summary(self, session_id: str) -> AttendanceSummary:
        return summarize(self.get(session_id))
