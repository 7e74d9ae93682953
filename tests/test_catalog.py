from datetime import date

import pytest

from academy.catalog import (
    BreakRange,
    CatalogError,
    CourseCatalog,
    CourseInfo,
    normalize_break_ranges,
    normalize_course_days,
    parse_time_slot,
)
from academy.config import DEFAULT_END_DAY


def _catalog():
    course_info = {
        "sat": {"name": "SAT", "days": [1, 3], "endDays": [3]},
        "sat1500": {"name": "SAT 1500", "days": [1, 3, 5], "endDay": 5, "max": 12},
        "toefl": {"name": "TOEFL", "days": [6, 0], "endDay": 0},
    }
    course_tree = [
        {"cat": "SAT", "items": [{"label": "SAT", "val": "sat"}, {"label": "SAT 1500", "val": "sat1500"}]},
        {"cat": "Other", "items": [{"label": "Missing", "val": "nope"}]},
    ]
    time_table = {
        "sat": "18:00-21:00",
        "SAT 1500": {"online": "19:00", "offline": "18:00"},
        "toefl": {"type": "dynamic", "options": [{"label": "AM", "time": "09:00"}, {"label": "PM"}]},
    }
    return CourseCatalog.from_records(course_info, course_tree, time_table)


def test_resolve_prefers_id_then_longest_label():
    catalog = _catalog()
    assert catalog.resolve("toefl", "SAT 1500").key == "toefl"
    assert catalog.resolve(None, "SAT 1500 Online").key == "sat1500"
    assert catalog.resolve(None, "SAT Weekend").key == "sat"
    assert catalog.resolve(None, "IELTS") is None
    assert catalog.resolve() is None
    assert catalog.days_for("SAT 1500 Offline") == (1, 3, 5)
    assert catalog.days_for("IELTS") == ()
    assert len(catalog) == 3


def test_labels_pointing_to_unknown_courses_are_skipped():
    assert "Missing" not in _catalog().labels


def test_duplicate_label_is_rejected():
    course_info = {
        "a": {"name": "SAT", "days": [1]},
        "b": {"name": "SAT", "days": [2]},
    }
    with pytest.raises(CatalogError):
        CourseCatalog.from_records(course_info)


def test_catalog_is_read_only():
    catalog = _catalog()
    with pytest.raises(TypeError):
        catalog.courses["new"] = CourseInfo(key="new")


def test_end_day_resolution():
    catalog = _catalog()
    assert catalog.get("sat").end_day == 3
    assert catalog.get("sat1500").end_day == 5
    assert catalog.get("toefl").end_day == 0
    assert CourseInfo.from_record("x", {"name": "X"}).end_day == DEFAULT_END_DAY


def test_course_info_limits():
    info = _catalog().get("sat1500")
    assert info.max_weeks == 12
    assert info.min_weeks is None
    assert info.installment_eligible is False


def test_time_slot_variants():
    catalog = _catalog()
    assert catalog.get("sat").time_slot.describe() == "18:00-21:00"

    on_off = catalog.get("sat1500").time_slot
    assert on_off.kind == "onOffline"
    assert on_off.describe("online") == "19:00"
    assert on_off.describe("Offline") == "18:00"
    assert on_off.describe("hybrid") == ""

    dynamic = catalog.get("toefl").time_slot
    assert dynamic.kind == "dynamic"
    assert dynamic.describe(option="AM") == "09:00"
    assert dynamic.describe(option="PM") == ""

    assert parse_time_slot("") is None
    assert parse_time_slot({}) is None
    assert parse_time_slot({"A반": "10:00"}).describe(option="A반") == "10:00"


def test_normalize_course_days():
    assert normalize_course_days([5, "1", 3, 3, 7, -1, True, 2.0]) == (1, 2, 3, 5)
    assert normalize_course_days(None) == ()
    assert normalize_course_days("135") == ()


def test_break_ranges_are_sorted_and_merged():
    ranges = normalize_break_ranges(
        [
            {"startDate": "2024-02-10", "endDate": "2024-02-05"},
            {"startDate": "2024-01-01", "endDate": "2024-01-03"},
            {"startDate": "2024-01-04", "endDate": "2024-01-06"},
            {"startDate": "2024-02-08", "endDate": "2024-02-12"},
            {"startDate": "bad", "endDate": "2024-03-01"},
        ]
    )
    assert ranges == (
        BreakRange(date(2024, 1, 1), date(2024, 1, 6)),
        BreakRange(date(2024, 2, 5), date(2024, 2, 12)),
    )
    assert ranges[0].to_record() == {"startDate": "2024-01-01", "endDate": "2024-01-06"}
    assert normalize_break_ranges(None) == ()
