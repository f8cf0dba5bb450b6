from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from ..attendance.model import AttendanceRecord
from .model import AttendanceRequest, NewAttendanceRequest, Review


class RequestRepository(Protocol):
    def create(self, new: NewAttendanceRequest) -> AttendanceRequest:
        """Used by the student-side submitter; always stored as pending."""

        raise NotImplementedError

    def get(self, request_id: str) -> Optional[AttendanceRequest]:
        raise NotImplementedError

    def list_for_faculty(
        self,
        faculty_id: str,
        *,
        submitted_from: Optional[datetime] = None,
        submitted_to: Optional[datetime] = None,
        limit: int = 500,
        offset: int = 0,
    ) -> Sequence[AttendanceRequest]:
        """Newest first (submitted_at DESC, then request_id DESC). Bounds are inclusive."""

        raise NotImplementedError

    def decide(self, request_id: str, review: Review, *, ledger_record: Optional[AttendanceRecord] = None) -> bool:
        """Atomic check-and-set from PENDING to ``review.status``.

        When ``ledger_record`` is given it is upserted into the ledger in the
        same transaction: either both writes become visible or neither does.
        Returns False (and writes nothing) if the request was not pending.
        """

        raise NotImplementedError
