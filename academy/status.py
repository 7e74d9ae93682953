"""Registration lifecycle status.

All comparisons are made on calendar days.  Callers rendering many rows should
take ``now`` once with :func:`snapshot_now` and pass it to every call, so that
a registration cannot flip from ``pending`` to ``active`` halfway through a
page because the clock ticked past midnight.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Dict, Iterable, Mapping, Optional

from .dates import parse_date, today

PENDING = "pending"
ACTIVE = "active"
COMPLETED = "completed"
UNKNOWN = "unknown"

STATUS_SORT_RANK: Dict[str, int] = {ACTIVE: 0, PENDING: 1, COMPLETED: 2}


def snapshot_now(now: Any = None) -> date:
    """Return ``now`` as a day, defaulting to today."""
    parsed = parse_date(now)
    return parsed if parsed is not None else today()


def _field(record: Any, *names: str) -> Any:
    if isinstance(record, Mapping):
        for name in names:
            value = record.get(name)
            if value not in (None, ""):
                return value
        return None
    for name in names:
        value = getattr(record, name, None)
        if value not in (None, ""):
            return value
    return None


def get_registration_status(registration: Any, now: Any = None) -> str:
    """Classify ``registration`` as pending, active, completed or unknown."""
    current = parse_date(now) if now is not None else today()
    if current is None:
        return UNKNOWN

    start = parse_date(_field(registration, "startDate", "start_date", "start"))
    end = parse_date(_field(registration, "endDate", "end_date", "end"))

    if start is not None and start > current:
        return PENDING
    if end is not None and end < current:
        return COMPLETED
    if start is not None or end is not None:
        # Remaining cases all have ``now`` on the correct side of every bound.
        return ACTIVE
    return UNKNOWN


def status_sort_rank(status: Optional[str]) -> int:
    return STATUS_SORT_RANK.get(status or "", 3)


def summarize_statuses(registrations: Iterable[Any], now: Any = None) -> Dict[str, int]:
    """Count registrations per status plus distinct students and courses."""
    current = snapshot_now(now)
    counts = {"total": 0, ACTIVE: 0, PENDING: 0, COMPLETED: 0, UNKNOWN: 0}
    students = set()
    courses = set()
    for registration in registrations or []:
        counts["total"] += 1
        counts[get_registration_status(registration, current)] += 1
        name = str(_field(registration, "name", "studentName") or "").strip()
        if name:
            students.add(name)
        course = str(_field(registration, "course") or "").strip()
        if course:
            courses.add(course)
    counts["students"] = len(students)
    counts["courses"] = len(courses)
    return counts


__all__ = [
    "ACTIVE",
    "COMPLETED",
    "PENDING",
    "STATUS_SORT_RANK",
    "UNKNOWN",
    "get_registration_status",
    "snapshot_now",
    "status_sort_rank",
    "summarize_statuses",
]
