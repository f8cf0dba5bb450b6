from __future__ import annotations

import dataclasses
import logging
import math
from datetime import datetime, timedelta
from typing import Callable, Iterable, Mapping, Optional, Sequence

from ..common.datetime_utils import end_of_day, now_local, parse_optional_date, start_of_day
from ..common.pagination import fetch_all
from ..common.retry import retry_transient
from ..common.validators import optional_enum, require_int_in_range, require_non_empty
from ..core.constants import (
    DEFAULT_LIST_LIMIT,
    MAX_SESSION_MINUTES,
    MIN_SESSION_MINUTES,
    SESSION_CODE_PREFIX_LEN,
    SESSION_CODE_SUFFIX_LEN,
)
from ..core.enums import SessionState
from ..core.exceptions import (
    AlreadyEndedError,
    AuthorizationError,
    InvalidDurationError,
    NotFoundError,
    ValidationError,
)
from ..geofence.model import Geofence
from ..geofence.validator import validate_geofence
from .model import NewSession, Session, SessionFilters
from .repository import SessionRepository

logger = logging.getLogger(__name__)


def make_session_code(class_name: str, now: datetime) -> str:
    """Class-name prefix + last digits of the epoch-millisecond clock.

    Human-shareable, not guaranteed unique: two sessions of the same class
    created 10 seconds apart modulo 10^4 ms collide.
    """
    prefix = class_name.strip()[:SESSION_CODE_PREFIX_LEN].upper()
    millis = str(int(now.timestamp() * 1000))
    return f"{prefix}{millis[-SESSION_CODE_SUFFIX_LEN:]}"


def parse_session_filters(args: Mapping[str, str]) -> SessionFilters:
    """Build filters from query-string style values; "all"/empty mean no filter."""
    date_from = parse_optional_date(args.get("date_from"))
    date_to = parse_optional_date(args.get("date_to"))
    if date_from and date_to and date_to < date_from:
        raise ValidationError("date_to must be on or after date_from")

    class_id = (args.get("class_id") or "").strip()
    return SessionFilters(
        date_from=date_from,
        date_to=date_to,
        class_id=None if class_id.lower() in {"", "all"} else class_id,
        state=optional_enum(args.get("status"), SessionState, "status"),
        search=(args.get("search") or "").strip() or None,
    )


def filter_sessions(sessions: Iterable[Session], filters: SessionFilters) -> list[Session]:
    """Apply every active filter with AND semantics (date_to is inclusive)."""
    out = list(sessions)
    if filters.date_from is not None:
        lower = start_of_day(filters.date_from)
        out = [s for s in out if s.start_time >= lower]
    if filters.date_to is not None:
        upper = end_of_day(filters.date_to)
        out = [s for s in out if s.start_time <= upper]
    if filters.class_id is not None:
        out = [s for s in out if s.class_id == filters.class_id]
    if filters.state is not None:
        want_active = filters.state == SessionState.ACTIVE
        out = [s for s in out if s.active == want_active]
    if filters.search:
        q = filters.search.lower()
        out = [
            s
            for s in out
            if q in s.class_name.lower() or (s.session_code and q in s.session_code.lower())
        ]
    return out


def remaining_minutes(session: Session, now: Optional[datetime] = None) -> int:
    """Whole minutes left in the window, never negative. Display only."""
    now = now or now_local()
    seconds = (session.end_time - now).total_seconds()
    return max(0, math.ceil(seconds / 60))


class SessionService:
    def __init__(
        self,
        sessions: SessionRepository,
        *,
        clock: Callable[[], datetime] = now_local,
        page_size: int = DEFAULT_LIST_LIMIT,
    ):
        self._sessions = sessions
        self._clock = clock
        self._page_size = page_size

    def create(
        self,
        *,
        instructor_id: str,
        class_id: str,
        class_name: str,
        duration: int,
        geofence: Geofence,
    ) -> Session:
        instructor_id = require_non_empty(instructor_id, "Instructor id")
        class_id = require_non_empty(class_id, "Class id")
        class_name = require_non_empty(class_name, "Class name")
        duration = require_int_in_range(
            duration, "Duration (minutes)", MIN_SESSION_MINUTES, MAX_SESSION_MINUTES, error=InvalidDurationError
        )
        geofence = validate_geofence(geofence)

        now = self._clock()
        session = self._sessions.create(
            NewSession(
                instructor_id=instructor_id,
                class_id=class_id,
                class_name=class_name,
                start_time=now,
                end_time=now + timedelta(minutes=duration),
                duration=duration,
                geofence=geofence,
                session_code=make_session_code(class_name, now),
            )
        )
        logger.info(
            "Session %s created by %s for class %s (%d min, code %s)",
            session.session_id,
            instructor_id,
            class_id,
            duration,
            session.session_code,
        )
        return session

    def _load(self, session_id: str, *, operation: str) -> Session:
        session = retry_transient(lambda: self._sessions.get(session_id))
        if not session:
            raise NotFoundError("Session not found", operation=operation, entity_id=session_id)
        return session

    def get(self, *, session_id: str, caller_id: str) -> Session:
        session = self._load(session_id, operation="session.get")
        if session.instructor_id != caller_id:
            raise AuthorizationError("Only the owning instructor can view this session", operation="session.get", entity_id=session_id)
        return session

    def open_for_check_in(self, session_id: str) -> Session:
        """The session, provided it is active and its window has not passed."""
        session = self._load(session_id, operation="session.check_in")
        if not session.active or session.is_expired(self._clock()):
            raise ValidationError(
                "Session is no longer accepting check-ins", operation="session.check_in", entity_id=session_id
            )
        return session

    def end(self, *, session_id: str, caller_id: str, strict: bool = False) -> Session:
        """Close the window. Ending an ended session is a no-op unless ``strict``."""
        session = self._load(session_id, operation="session.end")
        if session.instructor_id != caller_id:
            raise AuthorizationError("Only the owning instructor can end this session", operation="session.end", entity_id=session_id)

        if not session.active:
            if strict:
                raise AlreadyEndedError("Session already ended", operation="session.end", entity_id=session_id)
            return session

        now = self._clock()
        ended = retry_transient(lambda: self._sessions.end(session_id, ended_at=now))
        if ended:
            logger.info("Session %s ended by %s", session_id, caller_id)
            return dataclasses.replace(session, active=False, end_time=now)

        # Another caller ended it between our read and our update.
        logger.warning("Session %s was ended concurrently", session_id)
        if strict:
            raise AlreadyEndedError("Session already ended", operation="session.end", entity_id=session_id)
        return self._load(session_id, operation="session.end")

    def list_for_instructor(
        self,
        *,
        instructor_id: str,
        filters: Optional[SessionFilters] = None,
    ) -> Sequence[Session]:
        """Every matching session, read from the store one page at a time."""
        filters = filters or SessionFilters()
        sessions = fetch_all(
            lambda limit, offset: self._sessions.list_for_instructor(
                instructor_id,
                start_from=start_of_day(filters.date_from) if filters.date_from else None,
                start_to=end_of_day(filters.date_to) if filters.date_to else None,
                class_id=filters.class_id,
                limit=limit,
                offset=offset,
            ),
            self._page_size,
        )

        return filter_sessions(sessions, filters)

    def remaining_minutes(self, session: Session) -> int:
        return remaining_minutes(session, self._clock())

    @staticmethod
    def share_text(session: Session) -> str:
        return (
            f"Join session: {session.class_name}\n"
            f"Code: {session.session_code}\n"
            f"Ends: {session.end_time.strftime('%Y-%m-%d %H:%M')}"
        )
