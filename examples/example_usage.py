"""Drive the service layer directly, without Flask.

Assumes the demo data from database/seed.sql is loaded.
"""

import importlib

from config import get_settings_module

from src.upastithi.upastithi.container import build_container
from src.upastithi.upastithi.core.enums import RequestStatus
from src.upastithi.upastithi.requests.model import RequestFilters


def main():
    settings = importlib.import_module(get_settings_module())
    container = build_container(db_config=settings.DB_CONFIG)

    snapshot = container.analytics_service.snapshot(instructor_id="demo-faculty")
    print("overview:", snapshot.overview.to_dict())
    for row in snapshot.classes:
        print(f"  {row.class_name}: {row.session_count} sessions, {row.rate:.1f}%")

    pending, stats = container.request_service.overview(
        reviewer_id="demo-faculty", filters=RequestFilters(status=RequestStatus.PENDING)
    )
    print("requests:", stats.to_dict())
    for req in pending[:3]:
        distance = container.request_service.attempt_distance(request_id=req.request_id, reviewer_id="demo-faculty")
        print(f"  {req.student_name} ({req.request_type.label}) distance={distance.to_dict() if distance else '-'}")


if __name__ == "__main__":
    main()
