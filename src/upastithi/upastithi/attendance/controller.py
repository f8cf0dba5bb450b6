from __future__ import annotations

from flask import Flask, g, jsonify

from ..common.web import error_response, json_body, login_required, server_error
from ..core.enums import AttendanceStatus
from ..core.exceptions import DomainError, ValidationError
from ..container import Container
from ..geofence.validator import distance_meters, is_within, point_from_mapping


def register(app: Flask, container: Container) -> None:
    svc = container.attendance_service

    @app.route("/api/sessions/<session_id>/attendance", methods=["GET"], endpoint="session_attendance")
    @login_required
    def session_attendance(session_id: str):
        try:
            # Ownership check; raises for strangers.
            container.session_service.get(session_id=session_id, caller_id=g.user_id)
            records = svc.get(session_id)
            summary = svc.summary(session_id)
            return jsonify(
                {
                    "success": True,
                    "records": [r.to_dict() for r in records],
                    "summary": summary.to_dict(),
                }
            )
        except DomainError as e:
            return error_response(e)
        except Exception:
            return server_error("loading attendance")

    @app.route("/api/sessions/<session_id>/attendance", methods=["POST"], endpoint="check_in")
    @login_required
    def check_in(session_id: str):
        """Student check-in: the status follows from the reported location."""
        try:
            data = json_body()
            point = point_from_mapping(data.get("location"))
            if point is None:
                raise ValidationError("Location is required", operation="attendance.check_in")

            session = container.session_service.open_for_check_in(session_id)

            within = is_within(point, session.geofence)
            record = svc.record(
                session_id=session_id,
                student_id=g.user_id,
                student_name=data.get("student_name"),
                status=AttendanceStatus.PRESENT if within else AttendanceStatus.ABSENT,
                location=point,
                face_match_score=data.get("face_match_score"),
            )
            return jsonify(
                {
                    "success": True,
                    "record": record.to_dict(),
                    "within_geofence": within,
                    "distance_m": round(distance_meters(point, session.geofence.center), 1),
                }
            ), 201
        except DomainError as e:
            return error_response(e)
        except Exception:
            return server_error("recording attendance")
