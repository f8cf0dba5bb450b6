from __future__ import annotations

from flask import Flask, g, jsonify, request

from ..common.web import csv_response, error_response, json_body, login_required, server_error
from ..core.exceptions import DomainError
from ..container import Container
from .service import export_rows, parse_request_filters

_EXPORT_HEADERS = {
    "student_name": "Student Name",
    "student_email": "Email",
    "session_name": "Session",
    "class_name": "Class",
    "request_type": "Type",
    "status": "Status",
    "submitted_at": "Submitted",
    "description": "Description",
}


def register(app: Flask, container: Container) -> None:
    svc = container.request_service

    @app.route("/api/requests", methods=["GET"], endpoint="list_requests")
    @login_required
    def list_requests():
        try:
            filters = parse_request_filters(request.args)
            items, stats = svc.overview(reviewer_id=g.user_id, filters=filters)
            return jsonify(
                {
                    "success": True,
                    "requests": [r.to_dict() for r in items],
                    "stats": stats.to_dict(),
                }
            )
        except DomainError as e:
            return error_response(e)
        except Exception:
            return server_error("loading requests")

    @app.route("/api/requests/export.csv", methods=["GET"], endpoint="export_requests")
    @login_required
    def export_requests():
        try:
            filters = parse_request_filters(request.args)
            items = svc.list_for_reviewer(reviewer_id=g.user_id, filters=filters)
        except DomainError as e:
            return error_response(e)
        except Exception:
            return server_error("exporting requests")

        filename = f"attendance_requests_{container.clock().strftime('%Y-%m-%d')}.csv"
        return csv_response(export_rows(items), fieldnames=list(_EXPORT_HEADERS), filename=filename, headers=_EXPORT_HEADERS)

    @app.route("/api/requests/<request_id>", methods=["GET"], endpoint="request_detail")
    @login_required
    def request_detail(request_id: str):
        try:
            req = svc.get(request_id=request_id, reviewer_id=g.user_id)
            distance = svc.attempt_distance(request_id=request_id, reviewer_id=g.user_id)
            return jsonify(
                {
                    "success": True,
                    "request": req.to_dict(),
                    "attempt_distance": distance.to_dict() if distance else None,
                }
            )
        except DomainError as e:
            return error_response(e)
        except Exception:
            return server_error("loading the request")

    @app.route("/api/requests/<request_id>/approve", methods=["POST"], endpoint="approve_request")
    @login_required
    def approve_request(request_id: str):
        try:
            data = json_body()
            req = svc.approve(request_id=request_id, reviewer_id=g.user_id, comments=data.get("comments"))
            return jsonify({"success": True, "request": req.to_dict()})
        except DomainError as e:
            return error_response(e)
        except Exception:
            return server_error("approving the request")

    @app.route("/api/requests/<request_id>/reject", methods=["POST"], endpoint="reject_request")
    @login_required
    def reject_request(request_id: str):
        try:
            data = json_body()
            req = svc.reject(request_id=request_id, reviewer_id=g.user_id, comments=data.get("comments"))
            return jsonify({"success": True, "request": req.to_dict()})
        except DomainError as e:
            return error_response(e)
        except Exception:
            return server_error("rejecting the request")
