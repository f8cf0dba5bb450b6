from __future__ import annotations

import csv
import io

from flask import Flask, g, jsonify, request

from ..common.pagination import paginate
from ..common.web import csv_bytes_response, csv_response, error_response, login_required, page_args, server_error
from ..core.constants import DEFAULT_PAGE_SIZE
from ..core.exceptions import DomainError
from ..container import Container
from ..sessions.service import parse_session_filters
from .service import analytics_export_rows, history_export_rows

_HISTORY_FIELDS = ("session_code", "class_name", "date", "duration", "status", "attendees", "attendance_rate")
_HISTORY_HEADERS = {
    "session_code": "Session Code",
    "class_name": "Class",
    "date": "Date",
    "duration": "Duration",
    "status": "Status",
    "attendees": "Attendees",
    "attendance_rate": "Attendance Rate",
}


def register(app: Flask, container: Container) -> None:
    svc = container.analytics_service

    @app.route("/api/analytics", methods=["GET"], endpoint="analytics")
    @login_required
    def analytics():
        try:
            filters = parse_session_filters(request.args)
            snapshot = svc.snapshot(instructor_id=g.user_id, filters=filters)
            return jsonify({"success": True, "analytics": snapshot.to_dict()})
        except DomainError as e:
            return error_response(e)
        except Exception:
            return server_error("computing analytics")

    @app.route("/api/analytics/export.csv", methods=["GET"], endpoint="export_analytics")
    @login_required
    def export_analytics():
        try:
            filters = parse_session_filters(request.args)
            sections = analytics_export_rows(svc.snapshot(instructor_id=g.user_id, filters=filters))
        except DomainError as e:
            return error_response(e)
        except Exception:
            return server_error("exporting analytics")

        out = io.StringIO()
        writer = csv.writer(out)
        writer.writerow(["Metric", "Value"])
        for row in sections["summary"]:
            writer.writerow([row["metric"], row["value"]])
        writer.writerow([])
        writer.writerow(["Class", "Sessions", "Avg Attendance", "Attendance Rate"])
        for row in sections["classes"]:
            writer.writerow([row["class_name"], row["sessions"], row["avg_attendance"], row["attendance_rate"]])

        filename = f"attendance_analytics_{container.clock().strftime('%Y-%m-%d')}.csv"
        return csv_bytes_response(out.getvalue(), filename=filename)

    @app.route("/api/sessions/history", methods=["GET"], endpoint="session_history")
    @login_required
    def session_history():
        try:
            filters = parse_session_filters(request.args)
            page, per_page = page_args(DEFAULT_PAGE_SIZE)
            p = paginate(svc.history(instructor_id=g.user_id, filters=filters), page, per_page)
            return jsonify(
                {
                    "success": True,
                    "sessions": [r.to_dict() for r in p.items],
                    "page": p.page,
                    "per_page": p.per_page,
                    "total_items": p.total_items,
                    "total_pages": p.total_pages,
                }
            )
        except DomainError as e:
            return error_response(e)
        except Exception:
            return server_error("loading session history")

    @app.route("/api/sessions/history.csv", methods=["GET"], endpoint="export_session_history")
    @login_required
    def export_session_history():
        try:
            filters = parse_session_filters(request.args)
            rows = history_export_rows(svc.history(instructor_id=g.user_id, filters=filters))
        except DomainError as e:
            return error_response(e)
        except Exception:
            return server_error("exporting session history")

        filename = f"session_history_{container.clock().strftime('%Y-%m-%d')}.csv"
        return csv_response(rows, fieldnames=_HISTORY_FIELDS, filename=filename, headers=_HISTORY_HEADERS)
