"""Line up many students on one shared week timeline.

The timeline numbers weeks globally (index ``0`` is the first week of the
earliest registration shown).  Each student also has their own relative week
numbers starting at ``1`` in the first week their enrollment overlaps::

    relative_week = week_index - start_index + 1

A week counts for a student only if it passes, in order:

1. the merge-group week ranges, in global numbering from the earliest start of
   everyone in the merge (a week outside every range counts for nobody);
2. the student's own skip and break weeks, in relative numbering;
3. the weekday check: with a meeting pattern at least one meeting day must
   fall in the overlap of the week and the enrollment, otherwise any overlap
   counts.

The order matters because the first filter uses global numbers and the second
relative ones; a week rejected by filter 1 is never looked at again.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Callable, FrozenSet, Iterable, List, Mapping, Optional, Sequence, Tuple

import pandas as pd

from .catalog import normalize_course_days
from .dates import parse_date
from .schedule_resolver import normalize_skip_weeks
from .week_builder import CourseWeek, build_weeks, group_dates_by_week, week_class_dates

ATTENDED = "attended"
SKIPPED = "skipped"
OUTSIDE_MERGE = "outside_merge"


@dataclass(frozen=True, order=True)
class WeekRange:
    """Inclusive 1-based week range of a merge group."""

    start: int
    end: int

    def contains(self, week: int) -> bool:
        return self.start <= week <= self.end


def normalize_week_ranges(ranges: Any) -> Tuple[WeekRange, ...]:
    """Keep ranges with integer bounds and ``1 <= start <= end``, sorted."""
    if not isinstance(ranges, (list, tuple)):
        return ()
    result = []
    for raw in ranges:
        if isinstance(raw, WeekRange):
            candidate = raw
        elif isinstance(raw, Mapping):
            try:
                start = float(raw.get("start"))
                end = float(raw.get("end"))
            except (TypeError, ValueError):
                continue
            if not (start.is_integer() and end.is_integer()):
                continue
            candidate = WeekRange(int(start), int(end))
        else:
            continue
        if candidate.start >= 1 and candidate.end >= candidate.start:
            result.append(candidate)
    return tuple(sorted(result))


def is_week_in_ranges(week: int, ranges: Sequence[WeekRange]) -> bool:
    """``True`` when ``week`` is inside a range, or when there are no ranges."""
    if not ranges:
        return True
    return any(r.contains(week) for r in ranges)


def relative_week(week_index: int, start_index: int) -> int:
    """Student-relative week number for a global ``week_index``.

    Values ``<= 0`` mean the week lies before the enrollment.
    """
    return week_index - start_index + 1


@dataclass(frozen=True)
class TimelineRow:
    registration: Mapping[str, Any]
    start: Optional[date]
    end: Optional[date]
    course_days: Tuple[int, ...] = ()
    skip_weeks: FrozenSet[int] = frozenset()
    start_index: int = -1
    end_index: int = -1
    recording_weeks: Mapping[int, Tuple[date, ...]] = field(default_factory=dict)

    @property
    def has_dates(self) -> bool:
        return self.start is not None and self.end is not None


@dataclass(frozen=True)
class Timeline:
    weeks: Tuple[CourseWeek, ...]
    rows: Tuple[TimelineRow, ...]
    global_start_index: int = 0
    range_start: Optional[date] = None
    range_end: Optional[date] = None


@dataclass(frozen=True)
class WeekMark:
    week_index: int
    relative_week: int
    status: str
    recording: str = "none"


def _row_dates(registration: Mapping[str, Any]) -> Tuple[Optional[date], Optional[date]]:
    start = parse_date(registration.get("startDate"))
    end = parse_date(registration.get("endDate")) or start
    return start, end


def _row_skip_weeks(registration: Mapping[str, Any]) -> FrozenSet[int]:
    skips = normalize_skip_weeks(registration.get("skipWeeks"), registration.get("weeks"))
    breaks = registration.get("breakWeeks")
    extra = set()
    if isinstance(breaks, (list, tuple, set, frozenset)):
        for value in breaks:
            try:
                extra.add(int(value))
            except (TypeError, ValueError):
                continue
    return frozenset(skips) | frozenset(extra)


def _week_span(weeks: Sequence[CourseWeek], start: Optional[date], end: Optional[date]) -> Tuple[int, int]:
    """First and last index of ``weeks`` overlapping ``[start, end]``, or ``(-1, -1)``."""
    first = last = -1
    if start is None or end is None:
        return first, last
    for index, week in enumerate(weeks):
        if week.overlaps(start, end):
            if first == -1:
                first = index
            last = index
    return first, last


def build_timeline(
    registrations: Iterable[Mapping[str, Any]],
    course_days: Any = (),
    range_registrations: Optional[Iterable[Mapping[str, Any]]] = None,
    course_days_for: Optional[Callable[[Any], Any]] = None,
) -> Timeline:
    """Build the shared week sequence and place every registration on it.

    ``range_registrations`` (defaults to ``registrations``) decides the span of
    the timeline, so a filtered view can keep the full merge-group axis.
    """
    registrations = [r for r in registrations or [] if isinstance(r, Mapping)]
    base_days = normalize_course_days(course_days)

    def _days_for(registration: Mapping[str, Any]) -> Tuple[int, ...]:
        own = normalize_course_days(registration.get("courseDays"))
        if not own and course_days_for is not None:
            own = normalize_course_days(course_days_for(registration.get("course")))
        return own or base_days

    span_source = [r for r in range_registrations or [] if isinstance(r, Mapping)] or registrations
    spans = [_row_dates(r) for r in span_source]
    valid = [(s, e) for s, e in spans if s is not None and e is not None]

    if not valid:
        rows = tuple(
            TimelineRow(r, *_row_dates(r), course_days=_days_for(r)) for r in registrations
        )
        return Timeline(weeks=(), rows=rows)

    range_start = min(s for s, _ in valid)
    range_end = max(e for _, e in valid)
    weeks = build_weeks(range_start, range_end, base_days) or build_weeks(range_start, range_end, ())

    rows: List[TimelineRow] = []
    for registration in registrations:
        start, end = _row_dates(registration)
        start_index, end_index = _week_span(weeks, start, end)
        recording = group_dates_by_week(registration.get("recordingDates"), weeks)
        rows.append(
            TimelineRow(
                registration=registration,
                start=start,
                end=end,
                course_days=_days_for(registration),
                skip_weeks=_row_skip_weeks(registration),
                start_index=start_index,
                end_index=end_index,
                recording_weeks={k: tuple(v) for k, v in recording.items()},
            )
        )

    # Merge weeks are numbered from the earliest start of the whole span source.
    placed = [i for i, _ in (_week_span(weeks, s, e) for s, e in valid) if i >= 0]
    return Timeline(
        weeks=tuple(weeks),
        rows=tuple(rows),
        global_start_index=min(placed) if placed else 0,
        range_start=range_start,
        range_end=range_end,
    )


# ---------------------------------------------------------------------------
# Filters
# ---------------------------------------------------------------------------


def _exclusion(timeline: Timeline, row: TimelineRow, week_index: int, ranges: Sequence[WeekRange]) -> Optional[str]:
    """Return why ``week_index`` does not count for ``row``, or ``None``."""
    if not row.has_dates or row.start_index < 0:
        return OUTSIDE_MERGE if ranges else SKIPPED
    merge_week = relative_week(week_index, timeline.global_start_index)
    if not is_week_in_ranges(merge_week, ranges):
        return OUTSIDE_MERGE
    own_week = relative_week(week_index, row.start_index)
    if own_week <= 0 or own_week in row.skip_weeks:
        return SKIPPED
    return None


def _attends(row: TimelineRow, week: CourseWeek) -> bool:
    if row.course_days:
        return bool(week_class_dates(week, row.start, row.end, row.course_days))
    return week.overlaps(row.start, row.end)


def is_week_counted(
    timeline: Timeline, row: TimelineRow, week_index: int, merge_ranges: Any = ()
) -> bool:
    """Whether ``row`` attends global week ``week_index`` after all three filters."""
    if not 0 <= week_index < len(timeline.weeks):
        return False
    ranges = normalize_week_ranges(merge_ranges)
    if _exclusion(timeline, row, week_index, ranges) is not None:
        return False
    return _attends(row, timeline.weeks[week_index])


def week_totals(timeline: Timeline, merge_ranges: Any = ()) -> List[int]:
    """Number of attending students for every week of ``timeline``."""
    ranges = normalize_week_ranges(merge_ranges)
    totals = []
    for index, week in enumerate(timeline.weeks):
        count = 0
        for row in timeline.rows:
            if _exclusion(timeline, row, index, ranges) is None and _attends(row, week):
                count += 1
        totals.append(count)
    return totals


def _recording_mode(row: TimelineRow, week_index: int, week: CourseWeek) -> str:
    recorded = set(row.recording_weeks.get(week_index, ()))
    if not recorded:
        return "none"
    if not row.course_days:
        return "partial"
    class_dates = week_class_dates(week, row.start, row.end, row.course_days)
    in_week = [d for d in class_dates if d in recorded]
    if not in_week:
        return "none"
    return "all" if len(in_week) >= len(class_dates) else "partial"


def student_week_marks(timeline: Timeline, row: TimelineRow, merge_ranges: Any = ()) -> List[WeekMark]:
    """Per-week marks for one student between their first and last week.

    Weeks without a meeting day in the enrollment are left out entirely.
    """
    if not row.has_dates or row.start_index < 0 or row.end_index < 0:
        return []
    ranges = normalize_week_ranges(merge_ranges)
    marks: List[WeekMark] = []
    for index in range(row.start_index, row.end_index + 1):
        week = timeline.weeks[index]
        own_week = relative_week(index, row.start_index)
        reason = _exclusion(timeline, row, index, ranges)
        if reason is not None:
            marks.append(WeekMark(index, own_week, reason))
            continue
        if not _attends(row, week):
            continue
        marks.append(WeekMark(index, own_week, ATTENDED, _recording_mode(row, index, week)))
    return marks


def week_totals_frame(timeline: Timeline, merge_ranges: Any = ()) -> pd.DataFrame:
    """Weekly totals as a table with ``week``, ``start``, ``end`` and ``attendees``."""
    totals = week_totals(timeline, merge_ranges)
    return pd.DataFrame(
        {
            "week": [i - timeline.global_start_index + 1 for i in range(len(timeline.weeks))],
            "start": [w.start for w in timeline.weeks],
            "end": [w.end for w in timeline.weeks],
            "attendees": totals,
        },
        columns=["week", "start", "end", "attendees"],
    )


__all__ = [
    "ATTENDED",
    "OUTSIDE_MERGE",
    "SKIPPED",
    "Timeline",
    "TimelineRow",
    "WeekMark",
    "WeekRange",
    "build_timeline",
    "is_week_counted",
    "is_week_in_ranges",
    "normalize_week_ranges",
    "relative_week",
    "student_week_marks",
    "week_totals",
    "week_totals_frame",
]
