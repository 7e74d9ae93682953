from datetime import date

from academy.week_alignment import (
    ATTENDED,
    OUTSIDE_MERGE,
    SKIPPED,
    WeekRange,
    build_timeline,
    is_week_counted,
    is_week_in_ranges,
    normalize_week_ranges,
    relative_week,
    student_week_marks,
    week_totals,
    week_totals_frame,
)

MON_WED = [1, 3]


def _reg(name, start, end, weeks, **extra):
    record = {
        "id": name.lower(),
        "name": name,
        "course": "SAT",
        "startDate": start,
        "endDate": end,
        "weeks": weeks,
        "courseDays": MON_WED,
    }
    record.update(extra)
    return record


def _pair(a_extra=None, b_extra=None):
    a = _reg("A", "2024-01-01", "2024-01-31", 5, **(a_extra or {}))
    b = _reg("B", "2024-01-15", "2024-01-31", 3, **(b_extra or {}))
    return a, b


def test_timeline_places_rows_on_shared_weeks():
    timeline = build_timeline(_pair(), MON_WED)
    assert len(timeline.weeks) == 5
    assert timeline.weeks[0].start == date(2024, 1, 1)
    assert timeline.weeks[0].end == date(2024, 1, 3)
    assert [(r.start_index, r.end_index) for r in timeline.rows] == [(0, 4), (2, 4)]
    assert timeline.global_start_index == 0
    assert week_totals(timeline) == [1, 1, 2, 2, 2]


def test_skip_weeks_use_student_relative_numbering():
    timeline = build_timeline(_pair(b_extra={"skipWeeks": [2]}), MON_WED)
    # B's second week is the fourth global week.
    assert week_totals(timeline) == [1, 1, 2, 1, 2]


def test_break_weeks_are_excluded_like_skips():
    timeline = build_timeline(_pair(a_extra={"breakWeeks": [2]}), MON_WED)
    assert week_totals(timeline) == [1, 0, 2, 2, 2]


def test_merge_ranges_are_applied_before_skips():
    timeline = build_timeline(_pair(a_extra={"skipWeeks": [4]}), MON_WED)
    ranges = [{"start": 3, "end": 5}]
    assert week_totals(timeline, ranges) == [0, 0, 2, 1, 2]

    a_row = timeline.rows[0]
    marks = student_week_marks(timeline, a_row, ranges)
    assert [(m.week_index, m.relative_week, m.status) for m in marks] == [
        (0, 1, OUTSIDE_MERGE),
        (1, 2, OUTSIDE_MERGE),
        (2, 3, ATTENDED),
        (3, 4, SKIPPED),
        (4, 5, ATTENDED),
    ]


def test_filtered_view_keeps_merge_numbering_of_full_group():
    a, b = _pair()
    timeline = build_timeline([b], MON_WED, range_registrations=[a, b])
    assert len(timeline.weeks) == 5
    assert timeline.global_start_index == 0
    assert timeline.rows[0].start_index == 2
    assert week_totals(timeline, [{"start": 3, "end": 5}]) == [0, 0, 1, 1, 1]


def test_week_without_meeting_day_is_not_counted():
    a = _reg("A", "2024-01-01", "2024-01-31", 5)
    tuesday_only = _reg("C", "2024-01-09", "2024-01-09", 1)
    timeline = build_timeline([a, tuesday_only], MON_WED)
    row = timeline.rows[1]
    assert row.start_index == 1
    assert is_week_counted(timeline, row, 1) is False
    assert week_totals(timeline) == [1, 1, 1, 1, 1]


def test_without_pattern_any_overlap_counts():
    a = _reg("A", "2024-01-01", "2024-01-31", 5, courseDays=[])
    d = _reg("D", "2024-01-09", "2024-01-09", 1, courseDays=[])
    timeline = build_timeline([a, d])
    assert timeline.weeks[1].start == date(2024, 1, 8)
    assert timeline.weeks[1].end == date(2024, 1, 14)
    assert week_totals(timeline) == [1, 2, 1, 1, 1]


def test_course_days_fall_back_to_catalog_lookup():
    a = _reg("A", "2024-01-01", "2024-01-31", 5, courseDays=None)
    timeline = build_timeline([a], MON_WED, course_days_for=lambda course: (2,))
    assert timeline.rows[0].course_days == (2,)


def test_recording_marks():
    a = _reg("A", "2024-01-01", "2024-01-31", 5, recordingDates=["2024-01-15"])
    timeline = build_timeline([a], MON_WED)
    marks = {m.week_index: m.recording for m in student_week_marks(timeline, timeline.rows[0])}
    assert marks[2] == "partial"
    assert marks[0] == "none"

    a = _reg("A", "2024-01-01", "2024-01-31", 5, recordingDates=["2024-01-15", "2024-01-17"])
    timeline = build_timeline([a], MON_WED)
    marks = {m.week_index: m.recording for m in student_week_marks(timeline, timeline.rows[0])}
    assert marks[2] == "all"


def test_rows_without_dates_never_count():
    timeline = build_timeline([{"name": "E", "startDate": None}])
    assert timeline.weeks == ()
    assert week_totals(timeline) == []
    assert student_week_marks(timeline, timeline.rows[0]) == []

    a, _ = _pair()
    timeline = build_timeline([a, {"name": "E"}], MON_WED)
    assert week_totals(timeline) == [1, 1, 1, 1, 1]
    assert is_week_counted(timeline, timeline.rows[0], 99) is False


def test_normalize_week_ranges():
    ranges = normalize_week_ranges(
        [
            {"start": 5, "end": 3},
            {"start": 0, "end": 2},
            {"start": "2", "end": "4"},
            {"start": 1.5, "end": 3},
            {"start": 1, "end": 1},
            "junk",
        ]
    )
    assert ranges == (WeekRange(1, 1), WeekRange(2, 4))
    assert normalize_week_ranges(None) == ()


def test_range_and_relative_helpers():
    assert is_week_in_ranges(7, ()) is True
    assert is_week_in_ranges(3, (WeekRange(2, 4),)) is True
    assert is_week_in_ranges(5, (WeekRange(2, 4),)) is False
    assert relative_week(2, 2) == 1
    assert relative_week(0, 2) == -1


def test_week_totals_frame():
    timeline = build_timeline(_pair(), MON_WED)
    df = week_totals_frame(timeline, [{"start": 1, "end": 2}])
    assert list(df.columns) == ["week", "start", "end", "attendees"]
    assert df["week"].tolist() == [1, 2, 3, 4, 5]
    assert df["attendees"].tolist() == [1, 1, 0, 0, 0]
    assert df.loc[0, "start"] == date(2024, 1, 1)
