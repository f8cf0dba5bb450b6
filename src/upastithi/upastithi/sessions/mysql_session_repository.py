from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from ..geofence.model import Geofence
from .model import NewSession, Session
from .repository import SessionRepository

_COLUMNS = """
    session_id, instructor_id, class_id, class_name, start_time, end_time,
    duration, geofence_lat, geofence_lon, geofence_radius, session_code, active
"""


def _to_session(r: dict) -> Session:
    return Session(
        session_id=str(r["session_id"]),
        instructor_id=str(r["instructor_id"]),
        class_id=str(r["class_id"]),
        class_name=r["class_name"],
        start_time=r["start_time"],
        end_time=r["end_time"],
        duration=int(r["duration"]),
        geofence=Geofence(
            lat=float(r["geofence_lat"]),
            lon=float(r["geofence_lon"]),
            radius=float(r["geofence_radius"]),
        ),
        active=bool(r["active"]),
        session_code=r.get("session_code"),
    )


class MySQLSessionRepository(SessionRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def create(self, new: NewSession) -> Session:
        session_id = uuid.uuid4().hex
        with db_cursor(self._conn_factory, operation="session.create") as (_, cur):
            cur.execute(
                """
                INSERT INTO sessions(
                    session_id, instructor_id, class_id, class_name, start_time, end_time,
                    duration, geofence_lat, geofence_lon, geofence_radius, session_code, active
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,1)
                """,
                (
                    session_id,
                    new.instructor_id,
                    new.class_id,
                    new.class_name,
                    new.start_time,
                    new.end_time,
                    int(new.duration),
                    new.geofence.lat,
                    new.geofence.lon,
                    new.geofence.radius,
                    new.session_code,
                ),
            )
        return Session(
            session_id=session_id,
            instructor_id=new.instructor_id,
            class_id=new.class_id,
            class_name=new.class_name,
            start_time=new.start_time,
            end_time=new.end_time,
            duration=new.duration,
            geofence=new.geofence,
            active=True,
            session_code=new.session_code,
        )

    def get(self, session_id: str) -> Optional[Session]:
        with db_cursor(self._conn_factory, operation="session.get", entity_id=session_id) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM sessions WHERE session_id=%s", (session_id,))
            r = fetchone(cur)
            return _to_session(r) if r else None

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
        clauses = ["instructor_id=%s"]
        params: list[object] = [instructor_id]

        if start_from is not None:
            clauses.append("start_time >= %s")
            params.append(start_from)
        if start_to is not None:
            clauses.append("start_time <= %s")
            params.append(start_to)
        if class_id is not None:
            clauses.append("class_id=%s")
            params.append(class_id)

        where = " AND ".join(clauses)

        with db_cursor(self._conn_factory, operation="session.list", entity_id=instructor_id) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM sessions
                WHERE {where}
                ORDER BY start_time DESC, session_id DESC
                LIMIT %s OFFSET %s
                """,
                tuple(params + [int(limit), int(offset)]),
            )
            return [_to_session(r) for r in fetchall(cur)]

    def end(self, session_id: str, *, ended_at: datetime) -> bool:
        with db_cursor(self._conn_factory, operation="session.end", entity_id=session_id) as (_, cur):
            cur.execute(
                """
                UPDATE sessions
                SET active=0, end_time=%s
                WHERE session_id=%s AND active=1
                """,
                (ended_at, session_id),
            )
            return cur.rowcount > 0
