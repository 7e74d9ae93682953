"""Resolve how many calendar weeks an enrollment spans and when it ends.

A student pays for a number of *attended* weeks.  Skip weeks the student asked
for and weeks in which a class would fall into a catalog break do not use up a
paid week, so the calendar span grows by one week for each of them::

    schedule_weeks == duration_weeks + len(break_week_set)

Week numbers are 1-based and relative to the enrollment start date; week ``n``
covers ``start + 7*(n-1)`` to ``start + 7*n - 1``.  The last attended week
stops at the course's end day.

Every caller (dashboard, timeline, installment board, merge filtering) goes
through :func:`resolve_schedule` so they all agree on end dates.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, FrozenSet, Iterable, List, Optional, Set, Tuple

from .catalog import (
    ALL_WEEK_DAYS,
    BreakRange,
    is_date_in_break_ranges,
    normalize_break_ranges,
    normalize_course_days,
)
from .config import DEFAULT_END_DAY, MAX_BREAK_WEEKS
from .dates import day_of_week, parse_date

_LOG = logging.getLogger(__name__)


@dataclass(frozen=True)
class EnrollmentSchedule:
    """Computed calendar footprint of an enrollment.

    ``break_week_set`` holds every excluded relative week: the applied skip
    weeks (``skip_weeks``) and the weeks hit by a break range
    (``calendar_break_weeks``).  A week that is both counts once.
    """

    schedule_weeks: int
    break_week_set: FrozenSet[int] = frozenset()
    skip_weeks: Tuple[int, ...] = ()
    calendar_break_weeks: FrozenSet[int] = frozenset()

    @property
    def attended_weeks(self) -> int:
        return self.schedule_weeks - len(self.break_week_set)


# ---------------------------------------------------------------------------
# Input normalisation
# ---------------------------------------------------------------------------


def _to_weeks(value: Any) -> int:
    if isinstance(value, bool):
        return 0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0
    if number != number or number in (float("inf"), float("-inf")):
        return 0
    return int(number)


def _resolve_end_day(end_day_of_week: Any) -> int:
    if isinstance(end_day_of_week, int) and not isinstance(end_day_of_week, bool):
        if 0 <= end_day_of_week <= 6:
            return end_day_of_week
    return DEFAULT_END_DAY


def _clean_skip_weeks(skip_weeks: Any) -> List[int]:
    if not isinstance(skip_weeks, (list, tuple, set, frozenset)):
        return []
    cleaned: Set[int] = set()
    for raw in skip_weeks:
        try:
            number = float(raw)
        except (TypeError, ValueError):
            continue
        if not number.is_integer():
            continue
        week = int(number)
        if week == 1:
            # The first week anchors the enrollment and cannot be paused.
            _LOG.debug("Ignoring skip request for week 1")
            continue
        if week > 1:
            cleaned.add(week)
    return sorted(cleaned)


def normalize_skip_weeks(skip_weeks: Any, paid_weeks: Any) -> List[int]:
    """Return the skip weeks that fall inside a ``paid_weeks`` enrollment.

    Week 1 is never skippable.  A requested skip only applies if the paid weeks
    have not all been attended before it is reached.
    """
    paid = _to_weeks(paid_weeks)
    if paid <= 0:
        return []
    applied: List[int] = []
    for week in _clean_skip_weeks(skip_weeks):
        attended_before = (week - 1) - len(applied)
        if attended_before >= paid:
            break
        applied.append(week)
    return applied


# ---------------------------------------------------------------------------
# Break ranges
# ---------------------------------------------------------------------------


def _meeting_day_set(course_days: Any) -> Set[int]:
    days = normalize_course_days(course_days)
    return set(days or ALL_WEEK_DAYS)


def _span_hits_break(
    span_start: date, span_end: date, day_set: Set[int], breaks: Iterable[BreakRange]
) -> bool:
    cursor = span_start
    while cursor <= span_end:
        if day_of_week(cursor) in day_set and is_date_in_break_ranges(cursor, breaks):
            return True
        cursor += timedelta(days=1)
    return False


def break_date_set(start_date: Any, end_date: Any, course_days: Any, break_ranges: Any) -> Set[date]:
    """Meeting days inside ``[start_date, end_date]`` that fall in a break."""
    start = parse_date(start_date)
    end = parse_date(end_date)
    if start is None or end is None or start > end:
        return set()
    breaks = normalize_break_ranges(break_ranges)
    if not breaks:
        return set()

    day_set = _meeting_day_set(course_days)
    result: Set[date] = set()
    for rng in breaks:
        first = max(rng.start, start)
        last = min(rng.end, end)
        for offset in range((last - first).days + 1):
            day = first + timedelta(days=offset)
            if day_of_week(day) in day_set:
                result.add(day)
    return result


def break_week_set(start_date: Any, end_date: Any, course_days: Any, break_ranges: Any) -> Set[int]:
    """Relative week numbers (1-based) containing a meeting day in a break."""
    start = parse_date(start_date)
    if start is None:
        return set()
    return {
        (d - start).days // 7 + 1
        for d in break_date_set(start, end_date, course_days, break_ranges)
    }


# ---------------------------------------------------------------------------
# Schedule resolution
# ---------------------------------------------------------------------------


def get_end_date(start_date: Any, schedule_weeks: Any, end_day_of_week: Any = None) -> Optional[date]:
    """Date of the ``end_day_of_week`` closing calendar week ``schedule_weeks``.

    Returns ``start_date`` itself for zero weeks and ``None`` when the start
    date cannot be parsed or the end would fall past ``date.max``.
    """
    start = parse_date(start_date)
    if start is None:
        return None
    weeks = _to_weeks(schedule_weeks)
    if weeks <= 0:
        return start
    target = _resolve_end_day(end_day_of_week)
    try:
        base = start + timedelta(days=(weeks - 1) * 7)
        return base + timedelta(days=(target - day_of_week(base)) % 7)
    except OverflowError:
        _LOG.debug("End date of %d weeks from %s is past the calendar", weeks, start)
        return None


def get_schedule_weeks(
    start_date: Any,
    duration_weeks: Any,
    skip_weeks: Any = (),
    course_days: Any = (),
    end_day_of_week: Any = None,
    break_ranges: Any = (),
) -> EnrollmentSchedule:
    """Walk calendar weeks from ``start_date`` until ``duration_weeks`` are attended.

    A walk that would add more than ``MAX_BREAK_WEEKS`` break weeks (an
    open-ended break range) gives up and returns the paid weeks with no
    breaks, the same neutral result as an unparseable start date.
    """
    weeks = _to_weeks(duration_weeks)
    if weeks <= 0:
        return EnrollmentSchedule(schedule_weeks=0)

    start = parse_date(start_date)
    if start is None:
        _LOG.debug("Unparseable start date %r; using paid weeks as schedule", start_date)
        return EnrollmentSchedule(schedule_weeks=weeks)

    requested_skips = set(_clean_skip_weeks(skip_weeks))
    breaks = normalize_break_ranges(break_ranges)
    day_set = _meeting_day_set(course_days)

    applied_skips: List[int] = []
    calendar_breaks: Set[int] = set()
    attended = 0
    week = 0
    limit = weeks + len(requested_skips) + MAX_BREAK_WEEKS
    try:
        while attended < weeks:
            week += 1
            if week > limit:
                _LOG.warning(
                    "Schedule from %s needs more than %d weeks; ignoring breaks", start, limit
                )
                return EnrollmentSchedule(schedule_weeks=weeks)
            if week in requested_skips:
                applied_skips.append(week)
                continue
            if breaks:
                span_start = start + timedelta(days=(week - 1) * 7)
                if attended == weeks - 1:
                    span_end = get_end_date(start, week, end_day_of_week)
                else:
                    span_end = span_start + timedelta(days=6)
                if span_end is not None and _span_hits_break(span_start, span_end, day_set, breaks):
                    calendar_breaks.add(week)
                    continue
            attended += 1
    except OverflowError:
        _LOG.warning("Schedule from %s runs past the calendar; ignoring breaks", start)
        return EnrollmentSchedule(schedule_weeks=weeks)

    return EnrollmentSchedule(
        schedule_weeks=week,
        break_week_set=frozenset(applied_skips) | frozenset(calendar_breaks),
        skip_weeks=tuple(applied_skips),
        calendar_break_weeks=frozenset(calendar_breaks),
    )


def resolve_schedule(
    start_date: Any,
    duration_weeks: Any,
    skip_weeks: Any = (),
    course_days: Any = (),
    end_day_of_week: Any = None,
    break_ranges: Any = (),
) -> Tuple[EnrollmentSchedule, Optional[date]]:
    """Return the schedule and its end date in one call."""
    schedule = get_schedule_weeks(
        start_date,
        duration_weeks,
        skip_weeks=skip_weeks,
        course_days=course_days,
        end_day_of_week=end_day_of_week,
        break_ranges=break_ranges,
    )
    return schedule, get_end_date(start_date, schedule.schedule_weeks, end_day_of_week)


# ---------------------------------------------------------------------------
# Derived helpers
# ---------------------------------------------------------------------------


def available_class_dates(
    start_date: Any,
    duration_weeks: Any,
    course_days: Any,
    skip_weeks: Any = (),
    break_ranges: Any = (),
    end_day_of_week: Any = None,
) -> List[date]:
    """Dates on which a class actually takes place for this enrollment.

    These are the dates a student may swap for a recorded lesson.
    """
    days = set(normalize_course_days(course_days))
    if not days:
        return []
    schedule, end = resolve_schedule(
        start_date, duration_weeks, skip_weeks, days, end_day_of_week, break_ranges
    )
    start = parse_date(start_date)
    if start is None or end is None or schedule.schedule_weeks <= 0:
        return []

    breaks = normalize_break_ranges(break_ranges)
    result: List[date] = []
    cursor = start
    while cursor <= end:
        week = (cursor - start).days // 7 + 1
        if (
            day_of_week(cursor) in days
            and week not in schedule.break_week_set
            and not is_date_in_break_ranges(cursor, breaks)
        ):
            result.append(cursor)
        cursor += timedelta(days=1)
    return result


def count_class_days(course_days: Any, end_day: Any, weeks: Any) -> int:
    """Number of class days in ``weeks`` paid weeks.

    The last week only runs up to ``end_day`` in the order the meeting days
    are listed, so a Saturday/Sunday course listed as ``[6, 0]`` and ending on
    Sunday has two days in its last week.
    """
    valid = set(normalize_course_days(course_days))
    days: List[int] = []
    for raw in course_days or ():
        day = _to_weeks(raw)
        if day in valid and day not in days:
            days.append(day)
    paid = _to_weeks(weeks)
    if not days or paid <= 0:
        return 0
    if end_day is None:
        return paid * len(days)
    in_last_week = days.index(end_day) + 1 if end_day in days else len(days)
    return (paid - 1) * len(days) + in_last_week


__all__ = [
    "EnrollmentSchedule",
    "available_class_dates",
    "break_date_set",
    "break_week_set",
    "count_class_days",
    "get_end_date",
    "get_schedule_weeks",
    "normalize_skip_weeks",
    "resolve_schedule",
]
