from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Optional, Sequence

from ..attendance.model import AttendanceRecord
from ..attendance.mysql_attendance_repository import upsert_record
from ..core.enums import EvidenceType, RequestStatus, RequestType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, dump_json, fetchall, fetchone, load_json
from ..geofence.model import GeoPoint
from .model import AttendanceRequest, Evidence, NewAttendanceRequest, OriginalAttempt, Review
from .repository import RequestRepository

_COLUMNS = """
    request_id, student_id, student_name, student_email, session_id, session_name,
    class_name, faculty_id, request_type, status, description, evidence,
    location_lat, location_lon, location_accuracy, original_attempt,
    submitted_at, reviewed_at, reviewed_by, review_comments, review_token
"""


def _attempt_to_json(attempt: Optional[OriginalAttempt]) -> Optional[dict]:
    if attempt is None:
        return None
    return {
        "timestamp": attempt.timestamp.isoformat(),
        "lat": attempt.location.lat,
        "lon": attempt.location.lon,
        "face_match_score": attempt.face_match_score,
        "error": attempt.error,
    }


def _attempt_from_json(data: Any) -> Optional[OriginalAttempt]:
    if not data:
        return None
    score = data.get("face_match_score")
    return OriginalAttempt(
        timestamp=datetime.fromisoformat(data["timestamp"]),
        location=GeoPoint(lat=float(data["lat"]), lon=float(data["lon"])),
        face_match_score=float(score) if score is not None else None,
        error=data.get("error") or "",
    )


def _to_request(r: dict) -> AttendanceRequest:
    evidence = tuple(
        Evidence(type=EvidenceType(e["type"]), url=e["url"], filename=e.get("filename") or "")
        for e in (load_json(r.get("evidence")) or [])
    )
    location = None
    if r.get("location_lat") is not None and r.get("location_lon") is not None:
        accuracy = r.get("location_accuracy")
        location = GeoPoint(
            lat=float(r["location_lat"]),
            lon=float(r["location_lon"]),
            accuracy=float(accuracy) if accuracy is not None else None,
        )
    return AttendanceRequest(
        request_id=str(r["request_id"]),
        student_id=str(r["student_id"]),
        student_name=r["student_name"],
        student_email=r["student_email"],
        session_id=str(r["session_id"]),
        session_name=r["session_name"],
        class_name=r["class_name"],
        faculty_id=str(r["faculty_id"]),
        request_type=RequestType(r["request_type"]),
        status=RequestStatus(r["status"]),
        description=r["description"],
        submitted_at=r["submitted_at"],
        evidence=evidence,
        location=location,
        original_attempt=_attempt_from_json(load_json(r.get("original_attempt"))),
        reviewed_at=r.get("reviewed_at"),
        reviewed_by=r.get("reviewed_by"),
        review_comments=r.get("review_comments"),
        review_token=r.get("review_token"),
    )


class MySQLRequestRepository(RequestRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def create(self, new: NewAttendanceRequest) -> AttendanceRequest:
        request_id = uuid.uuid4().hex
        with db_cursor(self._conn_factory, operation="request.create") as (_, cur):
            cur.execute(
                """
                INSERT INTO attendance_requests(
                    request_id, student_id, student_name, student_email, session_id, session_name,
                    class_name, faculty_id, request_type, status, description, evidence,
                    location_lat, location_lon, location_accuracy, original_attempt, submitted_at
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    request_id,
                    new.student_id,
                    new.student_name,
                    new.student_email,
                    new.session_id,
                    new.session_name,
                    new.class_name,
                    new.faculty_id,
                    new.request_type.value,
                    RequestStatus.PENDING.value,
                    new.description,
                    dump_json([e.to_dict() for e in new.evidence]),
                    new.location.lat if new.location else None,
                    new.location.lon if new.location else None,
                    new.location.accuracy if new.location else None,
                    dump_json(_attempt_to_json(new.original_attempt)),
                    new.submitted_at,
                ),
            )
        return AttendanceRequest(
            request_id=request_id,
            student_id=new.student_id,
            student_name=new.student_name,
            student_email=new.student_email,
            session_id=new.session_id,
            session_name=new.session_name,
            class_name=new.class_name,
            faculty_id=new.faculty_id,
            request_type=new.request_type,
            status=RequestStatus.PENDING,
            description=new.description,
            submitted_at=new.submitted_at,
            evidence=new.evidence,
            location=new.location,
            original_attempt=new.original_attempt,
        )

    def get(self, request_id: str) -> Optional[AttendanceRequest]:
        with db_cursor(self._conn_factory, operation="request.get", entity_id=request_id) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM attendance_requests WHERE request_id=%s", (request_id,))
            r = fetchone(cur)
            return _to_request(r) if r else None

    def list_for_faculty(
        self,
        faculty_id: str,
        *,
        submitted_from: Optional[datetime] = None,
        submitted_to: Optional[datetime] = None,
        limit: int = 500,
        offset: int = 0,
    ) -> Sequence[AttendanceRequest]:
        clauses = ["faculty_id=%s"]
        params: list[object] = [faculty_id]

        if submitted_from is not None:
            clauses.append("submitted_at >= %s")
            params.append(submitted_from)
        if submitted_to is not None:
            clauses.append("submitted_at <= %s")
            params.append(submitted_to)

        where = " AND ".join(clauses)

        with db_cursor(self._conn_factory, operation="request.list", entity_id=faculty_id) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_requests
                WHERE {where}
                ORDER BY submitted_at DESC, request_id DESC
                LIMIT %s OFFSET %s
                """,
                tuple(params + [int(limit), int(offset)]),
            )
            return [_to_request(r) for r in fetchall(cur)]

    def decide(self, request_id: str, review: Review, *, ledger_record: Optional[AttendanceRecord] = None) -> bool:
        with db_cursor(self._conn_factory, operation=f"request.{review.status.value}", entity_id=request_id) as (conn, cur):
            cur.execute(
                """
                UPDATE attendance_requests
                SET status=%s, reviewed_by=%s, reviewed_at=%s, review_comments=%s, review_token=%s
                WHERE request_id=%s AND status=%s
                """,
                (
                    review.status.value,
                    review.reviewed_by,
                    review.reviewed_at,
                    review.comments,
                    review.token,
                    request_id,
                    RequestStatus.PENDING.value,
                ),
            )
            if cur.rowcount == 0:
                conn.rollback()
                return False

            if ledger_record is not None:
                upsert_record(cur, ledger_record)
            return True
