from datetime import date

from academy.catalog import CourseCatalog
from academy.services import IN_PROGRESS, NOTICE_DONE, NOTICE_NEEDED, installment_rows
from academy.services.installments import earliest_course_starts

CATALOG = CourseCatalog.from_records(
    {
        "eng": {"name": "English", "days": [1, 3, 5], "endDay": 5, "max": 10, "installmentEligible": True},
        "art": {"name": "Art", "days": [2], "max": 10},
    }
)

REGISTRATIONS = [
    {"id": "1", "name": "Ann", "courseId": "eng", "course": "English", "startDate": "2024-01-01", "weeks": 4, "endDate": "2024-01-26"},
    {"id": "2", "name": "Ben", "courseId": "eng", "course": "English", "startDate": "2024-01-22", "weeks": 7, "endDate": "2024-03-08"},
    {"id": "3", "name": "Cat", "courseId": "art", "course": "Art", "startDate": "2024-01-02", "weeks": 2, "endDate": "2024-01-09"},
    {"id": "4", "name": "Dan", "courseId": "eng", "course": "English", "startDate": "2024-01-08", "weeks": 2, "endDate": "2024-02-16"},
]


def test_rows_respect_personal_cap_and_eligibility():
    rows = installment_rows(REGISTRATIONS, [], CATALOG, "2024-01-22")
    assert [row["registration"]["name"] for row in rows] == ["Ann", "Dan"]

    ann, dan = rows
    assert ann["studentMaxWeeks"] == 10
    assert ann["remainingWeeks"] == 6
    assert dan["studentMaxWeeks"] == 9
    assert ann["courseLabel"] == "English"
    assert ann["courseDays"] == [1, 3, 5]
    assert ann["nextStartDate"] == date(2024, 1, 29)


def test_status_depends_on_notice_window():
    rows = installment_rows(REGISTRATIONS, [], CATALOG, "2024-01-22")
    assert {r["registration"]["id"]: r["status"] for r in rows} == {
        "1": NOTICE_NEEDED,
        "4": IN_PROGRESS,
    }


def test_upcoming_extension_marks_notice_done():
    extensions = [{"registrationId": "1", "startDate": "2024-01-29"}]
    rows = installment_rows(REGISTRATIONS, extensions, CATALOG, "2024-01-22")
    ann = rows[0] if rows[0]["registration"]["id"] == "1" else rows[1]
    assert ann["status"] == NOTICE_DONE
    assert ann["extensionCount"] == 1


def test_past_extension_does_not_count_as_notice():
    extensions = [{"registrationId": "1", "startDate": "2024-01-15"}]
    rows = installment_rows(REGISTRATIONS, extensions, CATALOG, "2024-01-22")
    assert rows[0]["registration"]["id"] == "1"
    assert rows[0]["status"] == NOTICE_NEEDED


def test_earliest_course_starts():
    assert earliest_course_starts(REGISTRATIONS) == {
        "eng": date(2024, 1, 1),
        "art": date(2024, 1, 2),
    }


def test_course_days_fall_back_to_course_name():
    catalog = CourseCatalog.from_records(
        {
            "eng": {"name": "English", "endDay": 5, "max": 10, "installmentEligible": True},
            "engeve": {"name": "English Evening", "days": [2, 4]},
        }
    )
    registration = {
        "id": "9",
        "name": "Eve",
        "courseId": "eng",
        "course": "English Evening",
        "startDate": "2024-01-02",
        "weeks": 4,
        "endDate": "2024-01-26",
    }
    rows = installment_rows([registration], [], catalog, "2024-01-10")
    assert rows[0]["courseDays"] == [2, 4]
    assert rows[0]["nextStartDate"] == date(2024, 1, 30)
