"""Caller-side helpers built on the schedule engine."""

from .installments import IN_PROGRESS, NOTICE_DONE, NOTICE_NEEDED, installment_rows
from .registrations import (
    filter_for_merge,
    merge_timeline,
    merge_week_ranges,
    registrations_frame,
    resolve_registration,
    resolve_registrations,
)

__all__ = [
    "IN_PROGRESS",
    "NOTICE_DONE",
    "NOTICE_NEEDED",
    "filter_for_merge",
    "installment_rows",
    "merge_timeline",
    "merge_week_ranges",
    "registrations_frame",
    "resolve_registration",
    "resolve_registrations",
]
