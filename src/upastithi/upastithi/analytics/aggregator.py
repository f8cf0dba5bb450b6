"""Pure aggregations over sessions with attached ledger entries.

Counts are recomputed from raw records on every call. "Total" means the
number of ledger entries for a session, so students who never checked in
and have no record do not lower the rate.
"""

from __future__ import annotations

from datetime import date
from typing import Iterable, Sequence

from ..attendance.model import percent, summarize
from ..core.constants import TREND_MAX_DAYS
from .model import ClassAnalytics, HourAnalytics, Overview, SessionWithRecords, TrendPoint


def daily_trend(sessions: Iterable[SessionWithRecords], *, max_days: int = TREND_MAX_DAYS) -> list[TrendPoint]:
    buckets: dict[date, list[int]] = {}
    for item in sessions:
        day = item.session.start_time.date()
        s = summarize(item.records)
        bucket = buckets.setdefault(day, [0, 0])
        bucket[0] += s.present
        bucket[1] += s.total

    points = [
        TrendPoint(date=day, present=present, total=total, rate=percent(present, total))
        for day, (present, total) in sorted(buckets.items())
    ]
    return points[-max_days:] if max_days > 0 else []


def per_class(sessions: Iterable[SessionWithRecords]) -> list[ClassAnalytics]:
    groups: dict[str, list[int]] = {}
    for item in sessions:
        s = summarize(item.records)
        g = groups.setdefault(item.session.class_name, [0, 0, 0])
        g[0] += 1
        g[1] += s.total
        g[2] += s.present

    rows = [
        ClassAnalytics(
            class_name=name,
            session_count=count,
            avg_attendance=total / count,
            total_attendees=total,
            rate=percent(present, total),
        )
        for name, (count, total, present) in groups.items()
    ]
    rows.sort(key=lambda r: r.rate, reverse=True)
    return rows


def per_hour(sessions: Iterable[SessionWithRecords]) -> list[HourAnalytics]:
    groups: dict[int, list[int]] = {}
    for item in sessions:
        g = groups.setdefault(item.session.start_time.hour, [0, 0])
        g[0] += 1
        g[1] += len(item.records)

    return [
        HourAnalytics(hour=hour, session_count=count, avg_attendance=total / count)
        for hour, (count, total) in sorted(groups.items())
    ]


def overview(sessions: Sequence[SessionWithRecords]) -> Overview:
    total = 0
    present = 0
    for item in sessions:
        s = summarize(item.records)
        total += s.total
        present += s.present
    return Overview(
        total_sessions=len(sessions),
        active_sessions=sum(1 for item in sessions if item.session.active),
        total_records=total,
        present_records=present,
        rate=percent(present, total),
    )
