from __future__ import annotations

import io

import qrcode
from flask import Flask, g, jsonify, request, send_file

from ..common.pagination import paginate
from ..common.web import error_response, json_body, login_required, page_args, server_error
from ..core.constants import DEFAULT_PAGE_SIZE
from ..core.exceptions import DomainError
from ..container import Container
from ..geofence.validator import geofence_from_mapping
from .service import parse_session_filters


def register(app: Flask, container: Container) -> None:
    svc = container.session_service

    @app.route("/api/sessions", methods=["POST"], endpoint="create_session")
    @login_required
    def create_session():
        try:
            data = json_body()
            session = svc.create(
                instructor_id=g.user_id,
                class_id=data.get("class_id", ""),
                class_name=data.get("class_name", ""),
                duration=data.get("duration"),
                geofence=geofence_from_mapping(data.get("geofence")),
            )
            return jsonify({"success": True, "session": session.to_dict()}), 201
        except DomainError as e:
            return error_response(e)
        except Exception:
            return server_error("creating the session")

    @app.route("/api/sessions", methods=["GET"], endpoint="list_sessions")
    @login_required
    def list_sessions():
        try:
            filters = parse_session_filters(request.args)
            page, per_page = page_args(DEFAULT_PAGE_SIZE)
            sessions = svc.list_for_instructor(instructor_id=g.user_id, filters=filters)
            p = paginate(sessions, page, per_page)
            return jsonify(
                {
                    "success": True,
                    "sessions": [
                        dict(s.to_dict(), remaining_minutes=svc.remaining_minutes(s) if s.active else 0)
                        for s in p.items
                    ],
                    "page": p.page,
                    "per_page": p.per_page,
                    "total_items": p.total_items,
                    "total_pages": p.total_pages,
                }
            )
        except DomainError as e:
            return error_response(e)
        except Exception:
            return server_error("loading sessions")

    @app.route("/api/sessions/<session_id>", methods=["GET"], endpoint="session_detail")
    @login_required
    def session_detail(session_id: str):
        try:
            session = svc.get(session_id=session_id, caller_id=g.user_id)
            summary = container.attendance_service.summary(session_id)
            return jsonify(
                {
                    "success": True,
                    "session": session.to_dict(),
                    "remaining_minutes": svc.remaining_minutes(session) if session.active else 0,
                    "share_text": svc.share_text(session),
                    "attendance": summary.to_dict(),
                }
            )
        except DomainError as e:
            return error_response(e)
        except Exception:
            return server_error("loading the session")

    @app.route("/api/sessions/<session_id>/end", methods=["POST"], endpoint="end_session")
    @login_required
    def end_session(session_id: str):
        try:
            data = json_body()
            session = svc.end(session_id=session_id, caller_id=g.user_id, strict=bool(data.get("strict", False)))
            return jsonify({"success": True, "session": session.to_dict()})
        except DomainError as e:
            return error_response(e)
        except Exception:
            return server_error("ending the session")

    @app.route("/api/sessions/<session_id>/qr.png", methods=["GET"], endpoint="session_qr")
    @login_required
    def session_qr(session_id: str):
        """QR image of the session code for students to scan."""
        try:
            session = svc.get(session_id=session_id, caller_id=g.user_id)
        except DomainError as e:
            return error_response(e)

        try:
            qr = qrcode.QRCode(
                version=1,
                error_correction=qrcode.constants.ERROR_CORRECT_L,
                box_size=10,
                border=2,
            )
            qr.add_data(session.session_code or session.session_id)
            qr.make(fit=True)

            img = qr.make_image(fill_color="black", back_color="white")

            buf = io.BytesIO()
            img.save(buf, format="PNG")
            buf.seek(0)

            return send_file(buf, mimetype="image/png")
        except Exception:
            return server_error("rendering the session QR code")
