"""Helpers shared by the Flask controllers.

The caller identity is resolved here and handed to services as a plain
argument; services never read request or session state themselves.
"""

from __future__ import annotations

import csv
import io
import logging
from functools import wraps
from typing import Iterable, Mapping, Optional, Sequence

from flask import current_app, g, jsonify, request, session

from ..core.exceptions import (
    AlreadyEndedError,
    AlreadyReviewedError,
    AuthenticationError,
    AuthorizationError,
    DomainError,
    NotFoundError,
    StoreTimeoutError,
    StoreUnavailableError,
    ValidationError,
)

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR: tuple[tuple[type, int], ...] = (
    (ValidationError, 400),
    (AuthenticationError, 401),
    (AuthorizationError, 403),
    (NotFoundError, 404),
    (AlreadyEndedError, 409),
    (AlreadyReviewedError, 409),
    (StoreUnavailableError, 503),
    (StoreTimeoutError, 504),
)


def current_user_id() -> Optional[str]:
    header = current_app.config.get("IDENTITY_HEADER") or "X-User-Id"
    value = (request.headers.get(header) or "").strip()
    if value:
        return value
    sid = session.get("user_id")
    return str(sid) if sid else None


def login_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        user_id = current_user_id()
        if not user_id:
            return error_response(AuthenticationError("Please sign in to continue"))
        g.user_id = user_id
        return view(*args, **kwargs)

    return wrapper


def error_response(e: DomainError):
    status = 400
    for cls, code in _STATUS_BY_ERROR:
        if isinstance(e, cls):
            status = code
            break
    body = {"success": False}
    body.update(e.to_dict())
    return jsonify(body), status


def server_error(action: str):
    logger.exception("Unexpected error while %s", action)
    return jsonify({"success": False, "error": "internal", "message": f"System error while {action}"}), 500


def json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def page_args(default_per_page: int) -> tuple[int, int]:
    try:
        page = int(request.args.get("page", 1))
        per_page = int(request.args.get("per_page", default_per_page))
    except ValueError:
        raise ValidationError("page and per_page must be integers")
    return page, per_page


def csv_response(
    rows: Iterable[dict],
    *,
    fieldnames: Sequence[str],
    filename: str,
    headers: Optional[Mapping[str, str]] = None,
):
    """Write rows to a CSV download (UTF-8 with BOM so spreadsheets detect it).

    ``headers`` maps field names to display titles for the first row.
    """
    out = io.StringIO()
    writer = csv.DictWriter(out, fieldnames=list(fieldnames), extrasaction="ignore")
    if headers:
        writer.writerow({f: headers.get(f, f) for f in fieldnames})
    else:
        writer.writeheader()
    for row in rows:
        writer.writerow(row)
    return csv_bytes_response(out.getvalue(), filename=filename)


def csv_bytes_response(text: str, *, filename: str):
    return current_app.response_class(
        text.encode("utf-8-sig"),
        mimetype="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )
