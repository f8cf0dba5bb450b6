from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from .model import NewSession, Session


class SessionRepository(Protocol):
    def create(self, new: NewSession) -> Session:
        raise NotImplementedError

    def get(self, session_id: str) -> Optional[Session]:
        raise NotImplementedError

    def list_for_instructor(
        self,
        instructor_id: str,
        *,
        start_from: Optional[datetime] = None,
        start_to: Optional[datetime] = None,
        class_id: Optional[str] = None,
        limit: int = 500,
        offset: int = 0,
    ) -> Sequence[Session]:
        """Newest first (start_time DESC, then session_id DESC). Bounds are inclusive."""

        raise NotImplementedError

    def end(self, session_id: str, *, ended_at: datetime) -> bool:
        """Conditional update: only flips a session that is still active.

        Returns False when no active session matched (already ended or missing).
        """

        raise NotImplementedError
