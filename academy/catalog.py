"""Immutable course catalog snapshot.

The catalog records (meeting days, end day, break ranges, week limits and the
time table) are loaded once per request by :mod:`academy.data_loading` and
passed into the engine as a value.  Nothing in this module keeps global state.

Course names on registrations are free text such as ``"SAT 1500 Online"``.
They are matched against catalog labels by longest prefix; the catalog refuses
to load when two entries share a label, because the match would otherwise
depend on dictionary order.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from .config import DEFAULT_END_DAY
from .dates import parse_date

_LOG = logging.getLogger(__name__)

ALL_WEEK_DAYS: Tuple[int, ...] = (0, 1, 2, 3, 4, 5, 6)

_ONLINE_KEYS = ("online", "온라인")
_OFFLINE_KEYS = ("offline", "오프라인")


class CatalogError(ValueError):
    """Raised when a catalog snapshot cannot be matched unambiguously."""


# ---------------------------------------------------------------------------
# Weekday patterns and break ranges
# ---------------------------------------------------------------------------


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


def normalize_course_days(days: Any) -> Tuple[int, ...]:
    """Return the weekdays (Sunday=0) in ``days`` as a sorted, unique tuple."""
    if not isinstance(days, (list, tuple, set, frozenset)):
        return ()
    cleaned = {d for d in (_as_int(v) for v in days) if d is not None and 0 <= d <= 6}
    return tuple(sorted(cleaned))


@dataclass(frozen=True)
class BreakRange:
    """Inclusive calendar interval with no classes."""

    start: date
    end: date

    def contains(self, value: date) -> bool:
        return self.start <= value <= self.end

    def to_record(self) -> Dict[str, str]:
        return {"startDate": self.start.isoformat(), "endDate": self.end.isoformat()}


def _coerce_break_range(raw: Any) -> Optional[BreakRange]:
    if isinstance(raw, BreakRange):
        return raw
    if not isinstance(raw, Mapping):
        return None
    start = parse_date(raw.get("startDate") or raw.get("start"))
    end = parse_date(raw.get("endDate") or raw.get("end"))
    if start is None or end is None:
        _LOG.debug("Dropping break range with unparseable bounds: %r", raw)
        return None
    if start > end:
        start, end = end, start
    return BreakRange(start, end)


def normalize_break_ranges(ranges: Any) -> Tuple[BreakRange, ...]:
    """Parse, sort and merge break ranges so they never overlap."""
    if not isinstance(ranges, (list, tuple)):
        return ()
    parsed = sorted(
        (r for r in (_coerce_break_range(item) for item in ranges) if r is not None),
        key=lambda r: (r.start, r.end),
    )
    merged: List[BreakRange] = []
    for current in parsed:
        if merged and current.start <= merged[-1].end + timedelta(days=1):
            last = merged[-1]
            merged[-1] = BreakRange(last.start, max(last.end, current.end))
        else:
            merged.append(current)
    return tuple(merged)


def is_date_in_break_ranges(value: Optional[date], ranges: Iterable[BreakRange]) -> bool:
    if value is None:
        return False
    return any(r.contains(value) for r in ranges)


# ---------------------------------------------------------------------------
# Time table entries
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TimeSlot:
    """Class time description resolved from a time-table entry.

    ``kind`` is ``"simple"`` (one text), ``"onOffline"`` (separate online and
    offline texts) or ``"dynamic"`` (label -> text options).
    """

    kind: str
    text: str = ""
    online: str = ""
    offline: str = ""
    options: Tuple[Tuple[str, str], ...] = ()

    def describe(self, course_type: Optional[str] = None, option: Optional[str] = None) -> str:
        if self.kind == "simple":
            return self.text
        if self.kind == "onOffline":
            kind = str(course_type or "").strip().lower()
            if kind in _ONLINE_KEYS or "온라인" in kind:
                return self.online
            if kind in _OFFLINE_KEYS or "오프라인" in kind:
                return self.offline
            return ""
        for label, text in self.options:
            if label == option:
                return text
        return ""


def parse_time_slot(raw: Any) -> Optional[TimeSlot]:
    """Build a :class:`TimeSlot` from a raw time-table value."""
    if isinstance(raw, str):
        return TimeSlot(kind="simple", text=raw) if raw.strip() else None
    if not isinstance(raw, Mapping) or not raw:
        return None

    entry_type = raw.get("type")
    is_on_offline = entry_type == "onoff" or any(
        key in raw for key in _ONLINE_KEYS + _OFFLINE_KEYS
    )
    if is_on_offline:
        online = next((raw[k] for k in _ONLINE_KEYS if isinstance(raw.get(k), str)), "")
        offline = next((raw[k] for k in _OFFLINE_KEYS if isinstance(raw.get(k), str)), "")
        return TimeSlot(kind="onOffline", online=online, offline=offline)

    if entry_type == "dynamic":
        options = tuple(
            (str(o.get("label")), str(o.get("time")))
            for o in raw.get("options") or []
            if isinstance(o, Mapping) and o.get("label") and o.get("time")
        )
        return TimeSlot(kind="dynamic", options=options)

    options = tuple(
        (str(label), text) for label, text in raw.items() if isinstance(text, str)
    )
    return TimeSlot(kind="dynamic", options=options) if options else None


# ---------------------------------------------------------------------------
# Course info
# ---------------------------------------------------------------------------


def _resolve_end_day(raw: Mapping[str, Any]) -> int:
    end_days = raw.get("endDays")
    if isinstance(end_days, (list, tuple)) and end_days:
        first = _as_int(end_days[0])
        if first is not None and 0 <= first <= 6:
            return first
    end_day = _as_int(raw.get("endDay"))
    if end_day is not None and 0 <= end_day <= 6:
        return end_day
    return DEFAULT_END_DAY


def _positive_int(value: Any) -> Optional[int]:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if number != number or number <= 0:
        return None
    return int(number)


@dataclass(frozen=True)
class CourseInfo:
    """Scheduling-relevant view of one catalog entry.

    ``end_day`` is independent of ``days``: some courses meet Monday to Friday
    but are billed as ending on Saturday.
    """

    key: str
    label: str = ""
    days: Tuple[int, ...] = ()
    end_day: int = DEFAULT_END_DAY
    min_weeks: Optional[int] = None
    max_weeks: Optional[int] = None
    break_ranges: Tuple[BreakRange, ...] = ()
    installment_eligible: bool = False
    start_days: Tuple[int, ...] = ()
    time_slot: Optional[TimeSlot] = None

    @classmethod
    def from_record(
        cls, key: str, raw: Mapping[str, Any], time_slot: Optional[TimeSlot] = None
    ) -> "CourseInfo":
        return cls(
            key=str(key),
            label=str(raw.get("name") or "").strip(),
            days=normalize_course_days(raw.get("days")),
            end_day=_resolve_end_day(raw),
            min_weeks=_positive_int(raw.get("min") or raw.get("minDuration")),
            max_weeks=_positive_int(raw.get("max") or raw.get("maxDuration")),
            break_ranges=normalize_break_ranges(raw.get("breakRanges")),
            installment_eligible=raw.get("installmentEligible") is True,
            start_days=normalize_course_days(raw.get("startDays")),
            time_slot=time_slot,
        )


@dataclass(frozen=True)
class CourseCatalog:
    """Read-only snapshot of course infos plus the label index used for matching."""

    courses: Mapping[str, CourseInfo] = field(default_factory=dict)
    labels: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def from_records(
        cls,
        course_info: Mapping[str, Any],
        course_tree: Optional[Iterable[Mapping[str, Any]]] = None,
        time_table: Optional[Mapping[str, Any]] = None,
    ) -> "CourseCatalog":
        """Build a snapshot from raw config-set data.

        Raises :class:`CatalogError` when one label would point at two
        different courses.
        """
        time_table = time_table or {}
        courses: Dict[str, CourseInfo] = {}
        for key, raw in (course_info or {}).items():
            if not isinstance(raw, Mapping):
                continue
            name = str(raw.get("name") or "").strip()
            slot = parse_time_slot(time_table.get(key) or (time_table.get(name) if name else None))
            courses[str(key)] = CourseInfo.from_record(str(key), raw, slot)

        labels: Dict[str, str] = {}

        def _register(label: str, key: str) -> None:
            existing = labels.get(label)
            if existing is not None and existing != key:
                raise CatalogError(
                    f"Course label {label!r} is used by both {existing!r} and {key!r}"
                )
            labels[label] = key

        for group in course_tree or []:
            if not isinstance(group, Mapping):
                continue
            for item in group.get("items") or []:
                if not isinstance(item, Mapping):
                    continue
                label = str(item.get("label") or "").strip()
                key = str(item.get("val") or "").strip()
                if label and key in courses:
                    _register(label, key)

        for key, info in courses.items():
            if info.label:
                _register(info.label, key)

        return cls(MappingProxyType(courses), MappingProxyType(labels))

    def __len__(self) -> int:
        return len(self.courses)

    def get(self, key: Any) -> Optional[CourseInfo]:
        return self.courses.get(str(key or "").strip())

    def resolve(self, course_id: Any = None, course_name: Any = None) -> Optional[CourseInfo]:
        """Return the course for ``course_id`` or the longest label prefixing ``course_name``."""
        cid = str(course_id or "").strip()
        if cid and cid in self.courses:
            return self.courses[cid]

        name = str(course_name or "").strip()
        if not name:
            return None
        best_key: Optional[str] = None
        best_len = 0
        for label, key in self.labels.items():
            if len(label) > best_len and name.startswith(label):
                best_key, best_len = key, len(label)
        return self.courses.get(best_key) if best_key else None

    def days_for(self, course_name: Any) -> Tuple[int, ...]:
        info = self.resolve(course_name=course_name)
        return info.days if info else ()


__all__ = [
    "ALL_WEEK_DAYS",
    "BreakRange",
    "CatalogError",
    "CourseCatalog",
    "CourseInfo",
    "TimeSlot",
    "is_date_in_break_ranges",
    "normalize_break_ranges",
    "normalize_course_days",
    "parse_time_slot",
]
