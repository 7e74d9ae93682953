"""Day-granularity date helpers shared by the schedule engine.

Registration and catalog records arrive from several stores and hand-edited
spreadsheets, so dates show up as ISO strings, ``YYYY.MM.DD`` or
``YYYY/MM/DD`` strings, native ``date``/``datetime`` objects or pandas
timestamps.  Everything is normalised to a plain :class:`datetime.date` here;
anything that cannot be parsed becomes ``None`` instead of raising.
"""

from __future__ import annotations

import logging
import re
from datetime import date, datetime, timedelta
from typing import Any, Optional

import pandas as pd

_LOG = logging.getLogger(__name__)

_YMD_RE = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})$")


def parse_date(value: Any) -> Optional[date]:
    """Return ``value`` as a :class:`date` or ``None`` when it is unusable."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        if pd.isnull(value):
            return None
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        # Numbers are epoch milliseconds, as written by the web client.
        try:
            return datetime.fromtimestamp(value / 1000).date()
        except (OverflowError, OSError, ValueError):
            return None
    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text or text.lower() in ("nan", "none", "null"):
        return None

    normalized = text.replace(".", "-").replace("/", "-")
    match = _YMD_RE.match(normalized)
    if match:
        year, month, day = (int(part) for part in match.groups())
        try:
            return date(year, month, day)
        except ValueError:
            _LOG.debug("Out-of-range calendar date %r", value)
            return None

    try:
        parsed = pd.to_datetime(text, errors="coerce")
    except (TypeError, ValueError, OverflowError):
        return None
    if pd.isnull(parsed):
        return None
    return parsed.date()


def day_of_week(value: date) -> int:
    """Weekday of ``value`` with Sunday as ``0`` and Saturday as ``6``."""
    return (value.weekday() + 1) % 7


def add_days(value: Any, days: int) -> Optional[date]:
    parsed = parse_date(value)
    if parsed is None:
        return None
    return parsed + timedelta(days=days)


def diff_in_days(start: Any, end: Any) -> Optional[int]:
    """Whole days from ``start`` to ``end``; ``None`` if either is unparseable."""
    s = parse_date(start)
    e = parse_date(end)
    if s is None or e is None:
        return None
    return (e - s).days


def format_date_ymd(value: Any) -> str:
    parsed = parse_date(value)
    if parsed is None:
        return ""
    return parsed.isoformat()


def today() -> date:
    return date.today()


__all__ = [
    "add_days",
    "day_of_week",
    "diff_in_days",
    "format_date_ymd",
    "parse_date",
    "today",
]
