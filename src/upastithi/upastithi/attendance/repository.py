from __future__ import annotations

from typing import Mapping, Protocol, Sequence

from .model import AttendanceRecord


class AttendanceRepository(Protocol):
    def upsert(self, record: AttendanceRecord) -> AttendanceRecord:
        """Insert or overwrite the (session_id, student_id) entry. Last write wins."""

        raise NotImplementedError

    def list_for_session(self, session_id: str) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def list_for_sessions(self, session_ids: Sequence[str]) -> Mapping[str, Sequence[AttendanceRecord]]:
        """Batch load for history/analytics; sessions without records may be omitted."""

        raise NotImplementedError
