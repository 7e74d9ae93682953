"""Registration helpers used by the dashboard, timeline and merge views."""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Optional

import pandas as pd

from ..catalog import CourseCatalog
from ..dates import add_days, format_date_ymd, parse_date
from ..schedule_resolver import resolve_schedule
from ..status import get_registration_status, snapshot_now, status_sort_rank
from ..week_alignment import Timeline, build_timeline, normalize_week_ranges

FRAME_COLUMNS = ["id", "name", "course", "startDate", "endDate", "weeks", "status"]


def resolve_registration(registration: Mapping[str, Any], catalog: CourseCatalog) -> Dict[str, Any]:
    """Return a copy of ``registration`` with its effective schedule fields.

    The computed end date is cut short by a transfer (the day before
    ``transferAt``) and by a withdrawal that happens before it.  The input
    mapping is never modified.
    """
    info = catalog.resolve(registration.get("courseId"), registration.get("course"))
    if info is None:
        return dict(registration)

    computed_end = registration.get("endDate") or ""
    break_weeks: List[int] = []
    start = parse_date(registration.get("startDate"))
    if start is not None:
        schedule, end = resolve_schedule(
            start,
            registration.get("weeks"),
            skip_weeks=registration.get("skipWeeks") or [],
            course_days=info.days,
            end_day_of_week=info.end_day,
            break_ranges=info.break_ranges,
        )
        if schedule.schedule_weeks > 0:
            break_weeks = sorted(schedule.break_week_set)
            computed_end = format_date_ymd(end) or computed_end

    withdrawn = parse_date(registration.get("withdrawnAt"))
    transfer_at = parse_date(registration.get("transferAt"))
    is_transferred_out = bool(registration.get("transferToId"))
    effective_end = computed_end

    if is_transferred_out and transfer_at is not None:
        effective_end = format_date_ymd(add_days(transfer_at, -1)) or effective_end

    if withdrawn is not None:
        candidate = parse_date(effective_end)
        if candidate is None or withdrawn <= candidate:
            effective_end = withdrawn.isoformat()

    resolved = dict(registration)
    resolved.update(
        {
            "endDate": effective_end or registration.get("endDate") or "",
            "withdrawnAt": format_date_ymd(withdrawn),
            "transferAt": format_date_ymd(transfer_at),
            "isWithdrawn": withdrawn is not None,
            "isTransferredOut": is_transferred_out,
            "isTransferredIn": bool(registration.get("transferFromId")),
            "courseDays": list(info.days),
            "courseEndDay": info.end_day,
            "breakRanges": [r.to_record() for r in info.break_ranges],
            "breakWeeks": break_weeks,
        }
    )
    return resolved


def resolve_registrations(
    registrations: Iterable[Mapping[str, Any]], catalog: CourseCatalog
) -> List[Dict[str, Any]]:
    return [resolve_registration(r, catalog) for r in registrations or [] if isinstance(r, Mapping)]


def registrations_frame(registrations: Iterable[Mapping[str, Any]], now: Any = None) -> pd.DataFrame:
    """Tabular view of resolved registrations with a status column.

    Rows are ordered active, pending, completed, unknown and then by start date.
    """
    current = snapshot_now(now)
    records = []
    for r in registrations or []:
        records.append(
            {
                "id": r.get("id"),
                "name": str(r.get("name") or "").strip(),
                "course": str(r.get("course") or "").strip(),
                "startDate": format_date_ymd(r.get("startDate")),
                "endDate": format_date_ymd(r.get("endDate")),
                "weeks": r.get("weeks"),
                "status": get_registration_status(r, current),
            }
        )
    df = pd.DataFrame(records, columns=FRAME_COLUMNS)
    if df.empty:
        return df
    df["_rank"] = df["status"].map(status_sort_rank)
    df = df.sort_values(["_rank", "startDate", "name"], kind="stable")
    return df.drop(columns=["_rank"]).reset_index(drop=True)


def matches_course(course_name: Any, target: Any) -> bool:
    course = str(course_name or "").strip()
    base = str(target or "").strip()
    if not course or not base:
        return False
    return course == base or course.startswith(base)


def filter_for_merge(
    registrations: Iterable[Mapping[str, Any]], merge: Mapping[str, Any]
) -> List[Mapping[str, Any]]:
    """Registrations whose course belongs to one of the merge group's courses."""
    courses = [c for c in merge.get("courses") or [] if str(c or "").strip()]
    return [
        r
        for r in registrations or []
        if any(matches_course(r.get("course"), c) for c in courses)
    ]


def merge_timeline(
    registrations: Iterable[Mapping[str, Any]],
    merge: Mapping[str, Any],
    catalog: CourseCatalog,
    course_days: Optional[Any] = None,
) -> Timeline:
    """Timeline of every student in ``merge``; pass ``merge["weekRanges"]`` on to the filters.

    The timeline's meeting pattern defaults to the first merged course that has one.
    """
    members = filter_for_merge(registrations, merge)
    if course_days is None:
        course_days = next(
            (catalog.days_for(c) for c in merge.get("courses") or [] if catalog.days_for(c)),
            (),
        )
    return build_timeline(members, course_days, course_days_for=catalog.days_for)


def merge_week_ranges(merge: Mapping[str, Any]):
    return normalize_week_ranges(merge.get("weekRanges"))


__all__ = [
    "filter_for_merge",
    "matches_course",
    "merge_timeline",
    "merge_week_ranges",
    "registrations_frame",
    "resolve_registration",
    "resolve_registrations",
]
