from __future__ import annotations

from collections import defaultdict
from typing import Mapping, Sequence

from ..core.enums import AttendanceStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall
from ..geofence.model import GeoPoint
from .model import AttendanceRecord
from .repository import AttendanceRepository

_COLUMNS = """
    session_id, student_id, student_name, status, recorded_at,
    location_lat, location_lon, location_verified, face_match_score,
    approved_manually, approved_by, original_request_id
"""


def upsert_record(cur, record: AttendanceRecord) -> None:
    """Write one ledger row on an open cursor.

    Shared with the request repository so an approval can write the ledger
    inside its own transaction.
    """
    cur.execute(
        """
        INSERT INTO attendance_records(
            session_id, student_id, student_name, status, recorded_at,
            location_lat, location_lon, location_verified, face_match_score,
            approved_manually, approved_by, original_request_id
        )
        VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
        ON DUPLICATE KEY UPDATE
            student_name=COALESCE(VALUES(student_name), student_name),
            status=VALUES(status),
            recorded_at=VALUES(recorded_at),
            location_lat=VALUES(location_lat),
            location_lon=VALUES(location_lon),
            location_verified=VALUES(location_verified),
            face_match_score=VALUES(face_match_score),
            approved_manually=VALUES(approved_manually),
            approved_by=VALUES(approved_by),
            original_request_id=VALUES(original_request_id)
        """,
        (
            record.session_id,
            record.student_id,
            record.student_name,
            record.status.value,
            record.timestamp,
            record.location.lat,
            record.location.lon,
            int(record.location_verified),
            record.face_match_score,
            int(record.approved_manually),
            record.approved_by,
            record.original_request_id,
        ),
    )


def _to_record(r: dict) -> AttendanceRecord:
    score = r.get("face_match_score")
    return AttendanceRecord(
        session_id=str(r["session_id"]),
        student_id=str(r["student_id"]),
        student_name=r.get("student_name"),
        status=AttendanceStatus(r["status"]),
        timestamp=r["recorded_at"],
        location=GeoPoint(lat=float(r["location_lat"]), lon=float(r["location_lon"])),
        location_verified=bool(r["location_verified"]),
        face_match_score=float(score) if score is not None else None,
        approved_manually=bool(r["approved_manually"]),
        approved_by=r.get("approved_by"),
        original_request_id=r.get("original_request_id"),
    )


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def upsert(self, record: AttendanceRecord) -> AttendanceRecord:
        key = f"{record.session_id}/{record.student_id}"
        with db_cursor(self._conn_factory, operation="attendance.record", entity_id=key) as (_, cur):
            upsert_record(cur, record)
        return record

    def list_for_session(self, session_id: str) -> Sequence[AttendanceRecord]:
        with db_cursor(self._conn_factory, operation="attendance.get", entity_id=session_id) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_records
                WHERE session_id=%s
                ORDER BY recorded_at ASC
                """,
                (session_id,),
            )
            return [_to_record(r) for r in fetchall(cur)]

    def list_for_sessions(self, session_ids: Sequence[str]) -> Mapping[str, Sequence[AttendanceRecord]]:
        ids = list(dict.fromkeys(session_ids))
        if not ids:
            return {}

        placeholders = ",".join(["%s"] * len(ids))
        with db_cursor(self._conn_factory, operation="attendance.list_for_sessions") as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_records
                WHERE session_id IN ({placeholders})
                ORDER BY recorded_at ASC
                """,
                tuple(ids),
            )
            out: dict[str, list[AttendanceRecord]] = defaultdict(list)
            for r in fetchall(cur):
                rec = _to_record(r)
                out[rec.session_id].append(rec)
            return dict(out)
