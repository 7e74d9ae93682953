"""Dates for installment extensions.

An extension is a small enrollment of its own: it starts on the first class
day after the current end date and its end date comes from the same schedule
resolver as every other enrollment.  Whether a student may extend at all is
decided by the caller (see :mod:`academy.services.installments`).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, FrozenSet, Optional

from .catalog import (
    ALL_WEEK_DAYS,
    CourseInfo,
    is_date_in_break_ranges,
    normalize_break_ranges,
    normalize_course_days,
)
from .config import NEXT_COURSE_SCAN_DAYS
from .dates import day_of_week, parse_date
from .schedule_resolver import resolve_schedule


@dataclass(frozen=True)
class ExtensionPlan:
    start_date: date
    end_date: Optional[date]
    weeks: int
    schedule_weeks: int
    break_week_set: FrozenSet[int] = frozenset()


def get_next_course_date(end_date: Any, course_days: Any = (), break_ranges: Any = ()) -> Optional[date]:
    """First class day after ``end_date`` that is not inside a break.

    The search looks at most ``NEXT_COURSE_SCAN_DAYS`` days ahead and returns
    the day after the last one inspected when nothing qualifies.  Returns
    ``None`` for an unparseable date or a scan that runs past ``date.max``.
    """
    base = parse_date(end_date)
    if base is None:
        return None
    day_set = set(normalize_course_days(course_days) or ALL_WEEK_DAYS)
    breaks = normalize_break_ranges(break_ranges)

    try:
        candidate = base + timedelta(days=1)
        for _ in range(NEXT_COURSE_SCAN_DAYS):
            if day_of_week(candidate) in day_set and not is_date_in_break_ranges(candidate, breaks):
                return candidate
            candidate += timedelta(days=1)
    except OverflowError:
        return None
    return candidate


def project_extension(
    start_date: Any,
    weeks: Any,
    course_days: Any = (),
    end_day_of_week: Any = None,
    break_ranges: Any = (),
) -> Optional[ExtensionPlan]:
    """Project the end of an extension of ``weeks`` paid weeks from ``start_date``."""
    start = parse_date(start_date)
    if start is None:
        return None
    schedule, end = resolve_schedule(
        start,
        weeks,
        skip_weeks=(),
        course_days=course_days,
        end_day_of_week=end_day_of_week,
        break_ranges=break_ranges,
    )
    if schedule.schedule_weeks <= 0:
        return None
    return ExtensionPlan(
        start_date=start,
        end_date=end,
        weeks=schedule.attended_weeks,
        schedule_weeks=schedule.schedule_weeks,
        break_week_set=schedule.break_week_set,
    )


def plan_extension(
    end_date: Any,
    weeks: Any,
    course: CourseInfo,
    start_override: Any = None,
) -> Optional[ExtensionPlan]:
    """Next start date plus projection for ``course`` in a single step."""
    start = parse_date(start_override) or get_next_course_date(
        end_date, course.days, course.break_ranges
    )
    if start is None:
        return None
    return project_extension(start, weeks, course.days, course.end_day, course.break_ranges)


# ---------------------------------------------------------------------------
# Caller-side limits
# ---------------------------------------------------------------------------


def week_offset(student_start: Any, course_start: Any) -> int:
    """Whole weeks a student joined after the course's first start date."""
    student = parse_date(student_start)
    course = parse_date(course_start)
    if student is None or course is None:
        return 0
    return max(0, (student - course).days // 7)


def student_max_weeks(max_weeks: int, offset: int) -> int:
    """Personal week cap: late joiners lose the weeks already taught."""
    return max(max_weeks - offset, 1)


def extension_overlaps(registration_end: Any, extension_start: Any) -> bool:
    """``True`` when an extension would start inside the already paid span."""
    end = parse_date(registration_end)
    start = parse_date(extension_start)
    if end is None or start is None:
        return False
    return start <= end


__all__ = [
    "ExtensionPlan",
    "extension_overlaps",
    "get_next_course_date",
    "plan_extension",
    "project_extension",
    "student_max_weeks",
    "week_offset",
]
