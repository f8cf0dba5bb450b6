from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from .analytics.service import AnalyticsService
from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.repository import AttendanceRepository
from .attendance.service import AttendanceService
from .common.datetime_utils import now_local
from .database.connection import DBConfig, DatabaseConnection
from .requests.mysql_request_repository import MySQLRequestRepository
from .requests.repository import RequestRepository
from .requests.service import RequestService
from .sessions.mysql_session_repository import MySQLSessionRepository
from .sessions.repository import SessionRepository
from .sessions.service import SessionService


@dataclass(frozen=True)
class Container:
    sessions_repo: SessionRepository
    attendance_repo: AttendanceRepository
    requests_repo: RequestRepository

    session_service: SessionService
    attendance_service: AttendanceService
    request_service: RequestService
    analytics_service: AnalyticsService

    clock: Callable[[], datetime] = now_local
    conn: Optional[DatabaseConnection] = None


def assemble(
    sessions_repo: SessionRepository,
    attendance_repo: AttendanceRepository,
    requests_repo: RequestRepository,
    *,
    clock: Callable[[], datetime] = now_local,
    conn: Optional[DatabaseConnection] = None,
) -> Container:
    """Wire services over any repositories honouring the store protocols."""
    session_service = SessionService(sessions_repo, clock=clock)
    attendance_service = AttendanceService(attendance_repo, clock=clock)
    request_service = RequestService(requests_repo, sessions_repo, clock=clock)
    analytics_service = AnalyticsService(session_service, attendance_repo)

    return Container(
        sessions_repo=sessions_repo,
        attendance_repo=attendance_repo,
        requests_repo=requests_repo,
        session_service=session_service,
        attendance_service=attendance_service,
        request_service=request_service,
        analytics_service=analytics_service,
        clock=clock,
        conn=conn,
    )


def build_container(*, db_config: dict) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config))
    return assemble(
        MySQLSessionRepository(conn),
        MySQLAttendanceRepository(conn),
        MySQLRequestRepository(conn),
        conn=conn,
    )
