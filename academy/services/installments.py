"""Installment board rows.

Only courses flagged ``installmentEligible`` with a maximum duration take part.
A student who joined a running course late gets a smaller personal cap::

    student_max_weeks = max(max_weeks - week_offset, 1)

Registrations that already paid up to that cap are left out.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Dict, Iterable, List, Mapping, Optional

from ..catalog import CourseCatalog
from ..config import NOTICE_WINDOW_DAYS
from ..dates import diff_in_days, parse_date
from ..extension_planner import get_next_course_date, student_max_weeks, week_offset
from ..status import snapshot_now

_LOG = logging.getLogger(__name__)

NOTICE_NEEDED = "notice_needed"
NOTICE_DONE = "notice_done"
IN_PROGRESS = "in_progress"

_STATUS_RANK = {NOTICE_NEEDED: 0, NOTICE_DONE: 1, IN_PROGRESS: 2}


def _course_key(registration: Mapping[str, Any]) -> str:
    value = registration.get("courseId")
    return "" if value is None else str(value).strip()


def earliest_course_starts(registrations: Iterable[Mapping[str, Any]]) -> Dict[str, date]:
    """Earliest start date per course id; the course's shared week 1."""
    starts: Dict[str, date] = {}
    for registration in registrations or []:
        key = _course_key(registration)
        start = parse_date(registration.get("startDate"))
        if not key or start is None:
            continue
        if key not in starts or start < starts[key]:
            starts[key] = start
    return starts


def _extensions_by_registration(extensions: Iterable[Mapping[str, Any]]) -> Dict[str, List[Mapping[str, Any]]]:
    grouped: Dict[str, List[Mapping[str, Any]]] = {}
    for ext in extensions or []:
        reg_id = str(ext.get("registrationId") or "").strip()
        if reg_id:
            grouped.setdefault(reg_id, []).append(ext)
    return grouped


def _installment_status(extensions: List[Mapping[str, Any]], end_date: Any, current: date) -> str:
    upcoming = sorted(
        d for d in (parse_date(e.get("startDate")) for e in extensions) if d is not None and d > current
    )
    if upcoming:
        return NOTICE_DONE
    days_left = diff_in_days(current, end_date)
    if days_left is not None and days_left <= NOTICE_WINDOW_DAYS:
        return NOTICE_NEEDED
    return IN_PROGRESS


def _weeks(value: Any) -> Optional[int]:
    try:
        number = float(value or 0)
    except (TypeError, ValueError):
        return None
    if number != number or number <= 0:
        return None
    return int(number)


def installment_rows(
    registrations: Iterable[Mapping[str, Any]],
    extensions: Iterable[Mapping[str, Any]],
    catalog: CourseCatalog,
    now: Any = None,
) -> List[Dict[str, Any]]:
    """Rows for registrations that may still be extended.

    ``registrations`` should already be resolved so ``endDate`` reflects
    breaks, transfers and withdrawals.
    """
    registrations = [r for r in registrations or [] if isinstance(r, Mapping)]
    current = snapshot_now(now)
    course_starts = earliest_course_starts(registrations)
    grouped = _extensions_by_registration(extensions)

    rows: List[Dict[str, Any]] = []
    for registration in registrations:
        info = catalog.resolve(registration.get("courseId"), registration.get("course"))
        if info is None or not info.installment_eligible or not info.max_weeks:
            continue
        weeks = _weeks(registration.get("weeks"))
        if weeks is None:
            continue

        offset = week_offset(registration.get("startDate"), course_starts.get(_course_key(registration)))
        cap = student_max_weeks(info.max_weeks, offset)
        if weeks >= cap:
            continue

        end_date = registration.get("endDate") or ""
        course_days = info.days or catalog.days_for(registration.get("course"))
        reg_extensions = grouped.get(str(registration.get("id") or ""), [])
        rows.append(
            {
                "registration": registration,
                "courseLabel": str(registration.get("course") or "").strip() or info.label,
                "maxWeeks": info.max_weeks,
                "studentMaxWeeks": cap,
                "weeks": weeks,
                "remainingWeeks": max(cap - weeks, 0),
                "courseDays": list(course_days),
                "endDay": info.end_day,
                "endDate": end_date,
                "status": _installment_status(reg_extensions, end_date, current),
                "extensionCount": len(reg_extensions),
                "breakRanges": [r.to_record() for r in info.break_ranges],
                "nextStartDate": get_next_course_date(end_date, course_days, info.break_ranges),
                "isWithdrawn": bool(registration.get("withdrawnAt")),
            }
        )

    rows.sort(
        key=lambda row: (
            _STATUS_RANK.get(row["status"], 9),
            str(row["registration"].get("name") or ""),
        )
    )
    _LOG.debug("Built %d installment rows from %d registrations", len(rows), len(registrations))
    return rows


__all__ = [
    "IN_PROGRESS",
    "NOTICE_DONE",
    "NOTICE_NEEDED",
    "earliest_course_starts",
    "installment_rows",
]
