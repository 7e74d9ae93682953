"""Partition a date range into course weeks."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, Dict, Iterable, List, Optional, Sequence

from .catalog import normalize_course_days
from .dates import day_of_week, parse_date


@dataclass(frozen=True)
class CourseWeek:
    """One course week; ``end`` is the last meeting day, not start + 6."""

    start: date
    end: date

    def contains(self, value: date) -> bool:
        return self.start <= value <= self.end

    def overlaps(self, start: date, end: date) -> bool:
        return not (end < self.start or start > self.end)


def week_end_offset(start_dow: int, day_set: Iterable[int]) -> int:
    """Offset (0-6) of the last pattern weekday in the 7 days from ``start_dow``."""
    days = set(day_set)
    offset = 0
    for i in range(7):
        if (start_dow + i) % 7 in days:
            offset = i
    return offset


def build_weeks(range_start: Any, range_end: Any, weekday_pattern: Any) -> List[CourseWeek]:
    """Split ``[range_start, range_end]`` into weeks aligned to ``weekday_pattern``.

    With an empty pattern the range is cut into plain 7-day buckets starting at
    ``range_start``.  Otherwise weeks start on the first pattern day on or after
    ``range_start`` and repeat every 7 days; each week ends on its last pattern
    day.  The final week is clipped to ``range_end``.
    """
    start = parse_date(range_start)
    end = parse_date(range_end)
    if start is None or end is None or start > end:
        return []

    day_set = set(normalize_course_days(weekday_pattern))
    weeks: List[CourseWeek] = []

    if not day_set:
        cursor = start
        while cursor <= end:
            week_end = cursor + timedelta(days=6)
            weeks.append(CourseWeek(cursor, min(week_end, end)))
            cursor += timedelta(days=7)
        return weeks

    anchor = start
    while anchor <= end and day_of_week(anchor) not in day_set:
        anchor += timedelta(days=1)
    if anchor > end:
        return []

    offset = week_end_offset(day_of_week(anchor), day_set)
    cursor = anchor
    while cursor <= end:
        week_end = cursor + timedelta(days=offset)
        weeks.append(CourseWeek(cursor, min(week_end, end)))
        cursor += timedelta(days=7)
    return weeks


def week_class_dates(
    week: Optional[CourseWeek], start: Any, end: Any, course_days: Any
) -> List[date]:
    """Pattern days inside both ``week`` and the student's ``[start, end]``."""
    s = parse_date(start)
    e = parse_date(end)
    days = set(normalize_course_days(course_days))
    if week is None or s is None or e is None or s > e or not days:
        return []

    cursor = max(s, week.start)
    last = min(e, week.end)
    dates: List[date] = []
    while cursor <= last:
        if day_of_week(cursor) in days:
            dates.append(cursor)
        cursor += timedelta(days=1)
    return dates


def find_week_index(weeks: Sequence[CourseWeek], value: Any) -> int:
    """Index of the week containing ``value`` or ``-1``."""
    target = parse_date(value)
    if target is None:
        return -1
    for index, week in enumerate(weeks):
        if week.contains(target):
            return index
    return -1


def group_dates_by_week(dates: Any, weeks: Sequence[CourseWeek]) -> Dict[int, List[date]]:
    """Bucket ``dates`` by the index of the week containing them.

    Dates falling between weeks (or outside the range) are dropped.
    """
    if not isinstance(dates, (list, tuple, set)) or not weeks:
        return {}
    buckets: Dict[int, List[date]] = {}
    for value in {parse_date(v) for v in dates}:
        if value is None:
            continue
        index = find_week_index(weeks, value)
        if index < 0:
            continue
        buckets.setdefault(index, []).append(value)
    return {index: sorted(buckets[index]) for index in sorted(buckets)}


__all__ = [
    "CourseWeek",
    "build_weeks",
    "find_week_index",
    "group_dates_by_week",
    "week_class_dates",
    "week_end_offset",
]
