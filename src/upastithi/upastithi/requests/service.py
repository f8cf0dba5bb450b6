from __future__ import annotations

import dataclasses
import logging
from datetime import datetime
from typing import Callable, Iterable, Mapping, Optional

from ..attendance.service import manual_present_record
from ..common.datetime_utils import end_of_day, now_local, parse_optional_date, start_of_day
from ..common.pagination import fetch_all
from ..common.retry import retry_transient
from ..common.validators import optional_enum
from ..core.constants import DEFAULT_LIST_LIMIT
from ..core.enums import RequestStatus, RequestType
from ..core.exceptions import AlreadyReviewedError, AuthorizationError, NotFoundError, ValidationError
from ..geofence.validator import distance_meters, is_within
from ..sessions.repository import SessionRepository
from .model import AttemptDistance, AttendanceRequest, RequestFilters, RequestStats, Review
from .repository import RequestRepository

logger = logging.getLogger(__name__)


def parse_request_filters(args: Mapping[str, str]) -> RequestFilters:
    """Build filters from query-string style values; "all"/empty mean no filter."""
    date_from = parse_optional_date(args.get("date_from"))
    date_to = parse_optional_date(args.get("date_to"))
    if date_from and date_to and date_to < date_from:
        raise ValidationError("date_to must be on or after date_from")

    class_name = (args.get("class_name") or "").strip()
    return RequestFilters(
        status=optional_enum(args.get("status"), RequestStatus, "status"),
        request_type=optional_enum(args.get("request_type"), RequestType, "request_type"),
        date_from=date_from,
        date_to=date_to,
        class_name=None if class_name.lower() in {"", "all"} else class_name,
        search=(args.get("search") or "").strip() or None,
    )


def filter_requests(requests: Iterable[AttendanceRequest], filters: RequestFilters) -> list[AttendanceRequest]:
    """Apply every active filter with AND semantics."""
    out = list(requests)
    if filters.status is not None:
        out = [r for r in out if r.status == filters.status]
    if filters.request_type is not None:
        out = [r for r in out if r.request_type == filters.request_type]
    if filters.date_from is not None:
        lower = start_of_day(filters.date_from)
        out = [r for r in out if r.submitted_at >= lower]
    if filters.date_to is not None:
        upper = end_of_day(filters.date_to)
        out = [r for r in out if r.submitted_at <= upper]
    if filters.class_name is not None:
        out = [r for r in out if r.class_name == filters.class_name]
    if filters.search:
        q = filters.search.lower()
        out = [
            r
            for r in out
            if q in r.student_name.lower()
            or q in r.student_email.lower()
            or q in r.session_name.lower()
            or q in r.description.lower()
        ]
    return out


def compute_stats(requests: Iterable[AttendanceRequest]) -> RequestStats:
    total = pending = approved = rejected = 0
    by_type = {t.value: 0 for t in RequestType}
    for r in requests:
        total += 1
        if r.status == RequestStatus.PENDING:
            pending += 1
        elif r.status == RequestStatus.APPROVED:
            approved += 1
        elif r.status == RequestStatus.REJECTED:
            rejected += 1
        by_type[r.request_type.value] += 1
    return RequestStats(total=total, pending=pending, approved=approved, rejected=rejected, by_type=by_type)


def export_rows(requests: Iterable[AttendanceRequest]) -> list[dict]:
    """Plain rows for the request export; the caller picks the file format."""
    return [
        {
            "student_name": r.student_name,
            "student_email": r.student_email,
            "session_name": r.session_name,
            "class_name": r.class_name,
            "request_type": r.request_type.label,
            "status": r.status.value.upper(),
            "submitted_at": r.submitted_at.strftime("%Y-%m-%d"),
            "description": r.description,
        }
        for r in requests
    ]


class RequestService:
    def __init__(
        self,
        requests: RequestRepository,
        sessions: Optional[SessionRepository] = None,
        *,
        clock: Callable[[], datetime] = now_local,
        page_size: int = DEFAULT_LIST_LIMIT,
    ):
        self._requests = requests
        self._sessions = sessions
        self._clock = clock
        self._page_size = page_size

    def _load(self, request_id: str, *, operation: str) -> AttendanceRequest:
        req = retry_transient(lambda: self._requests.get(request_id))
        if not req:
            raise NotFoundError("Request not found", operation=operation, entity_id=request_id)
        return req

    def _load_for_review(self, request_id: str, reviewer_id: str, *, operation: str) -> AttendanceRequest:
        req = self._load(request_id, operation=operation)
        if req.faculty_id != reviewer_id:
            raise AuthorizationError("Only the assigned instructor can review this request", operation=operation, entity_id=request_id)
        if not req.is_pending:
            raise AlreadyReviewedError(f"Request already {req.status.value}", operation=operation, entity_id=request_id)
        return req

    def get(self, *, request_id: str, reviewer_id: str) -> AttendanceRequest:
        req = self._load(request_id, operation="request.get")
        if req.faculty_id != reviewer_id:
            raise AuthorizationError("Only the assigned instructor can view this request", operation="request.get", entity_id=request_id)
        return req

    def _decide(self, req: AttendanceRequest, review: Review, *, operation: str, ledger_record=None) -> AttendanceRequest:
        decided = retry_transient(lambda: self._requests.decide(req.request_id, review, ledger_record=ledger_record))
        if not decided:
            current = self._load(req.request_id, operation=operation)
            # A retried call whose first attempt committed finds its own token.
            if current.review_token != review.token:
                logger.warning("Request %s was reviewed concurrently (now %s)", req.request_id, current.status.value)
                raise AlreadyReviewedError(
                    f"Request already {current.status.value}", operation=operation, entity_id=req.request_id
                )
            return current

        return dataclasses.replace(
            req,
            status=review.status,
            reviewed_at=review.reviewed_at,
            reviewed_by=review.reviewed_by,
            review_comments=review.comments,
            review_token=review.token,
        )

    def approve(self, *, request_id: str, reviewer_id: str, comments: Optional[str] = None) -> AttendanceRequest:
        """Approve and mark the student present, as one atomic store write."""
        req = self._load_for_review(request_id, reviewer_id, operation="request.approve")

        now = self._clock()
        review = Review(
            status=RequestStatus.APPROVED,
            reviewed_by=reviewer_id,
            reviewed_at=now,
            comments=(comments or "").strip() or None,
        )
        record = manual_present_record(
            session_id=req.session_id,
            student_id=req.student_id,
            student_name=req.student_name,
            approved_by=reviewer_id,
            original_request_id=req.request_id,
            location=req.location,
            now=now,
        )
        if req.location is None:
            logger.warning("Request %s approved without a reported location; ledger entry marked unverified", request_id)

        out = self._decide(req, review, operation="request.approve", ledger_record=record)
        logger.info("Request %s approved by %s; %s marked present in session %s", request_id, reviewer_id, req.student_id, req.session_id)
        return out

    def reject(self, *, request_id: str, reviewer_id: str, comments: Optional[str] = None) -> AttendanceRequest:
        req = self._load_for_review(request_id, reviewer_id, operation="request.reject")

        review = Review(
            status=RequestStatus.REJECTED,
            reviewed_by=reviewer_id,
            reviewed_at=self._clock(),
            comments=(comments or "").strip() or None,
        )
        out = self._decide(req, review, operation="request.reject")
        logger.info("Request %s rejected by %s", request_id, reviewer_id)
        return out

    def list_for_reviewer(
        self,
        *,
        reviewer_id: str,
        filters: Optional[RequestFilters] = None,
    ) -> list[AttendanceRequest]:
        filters = filters or RequestFilters()
        requests = fetch_all(
            lambda limit, offset: self._requests.list_for_faculty(
                reviewer_id,
                submitted_from=start_of_day(filters.date_from) if filters.date_from else None,
                submitted_to=end_of_day(filters.date_to) if filters.date_to else None,
                limit=limit,
                offset=offset,
            ),
            self._page_size,
        )
        return filter_requests(requests, filters)

    def overview(self, *, reviewer_id: str, filters: Optional[RequestFilters] = None) -> tuple[list[AttendanceRequest], RequestStats]:
        """Filtered listing plus stats over the reviewer's full request set."""
        everything = self.list_for_reviewer(reviewer_id=reviewer_id)
        filtered = filter_requests(everything, filters) if filters else everything
        return filtered, compute_stats(everything)

    def attempt_distance(self, *, request_id: str, reviewer_id: str) -> Optional[AttemptDistance]:
        """Distance of the failed attempt from the session geofence, if both are known."""
        req = self.get(request_id=request_id, reviewer_id=reviewer_id)
        if req.original_attempt is None or self._sessions is None:
            return None
        session = retry_transient(lambda: self._sessions.get(req.session_id))
        if session is None:
            return None
        point = req.original_attempt.location
        return AttemptDistance(
            distance_m=distance_meters(point, session.geofence.center),
            radius_m=session.geofence.radius,
            within=is_within(point, session.geofence),
        )
