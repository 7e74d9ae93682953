"""Application configuration values.

Every tunable used by the schedule engine and the loaders lives here so that
tests and the dashboard can import them without pulling in Streamlit.  Values
are read once from the environment at import time.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

_LOG = logging.getLogger(__name__)


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        _LOG.warning("Ignoring non-integer %s=%r; using %s", name, raw, default)
        return default


# Weekday (Sunday=0 .. Saturday=6) a course ends on when the catalog is silent.
DEFAULT_END_DAY = _env_int("ACADEMY_DEFAULT_END_DAY", 5)

# Upper bound for the next-class-date search after an enrollment ends.
NEXT_COURSE_SCAN_DAYS = _env_int("ACADEMY_NEXT_COURSE_SCAN_DAYS", 60)

# Break weeks a single schedule walk may add before it gives up.
MAX_BREAK_WEEKS = _env_int("ACADEMY_MAX_BREAK_WEEKS", 104)

# Registrations ending within this many days need an extension notice.
NOTICE_WINDOW_DAYS = _env_int("ACADEMY_NOTICE_WINDOW_DAYS", 7)

# Weeks pre-filled when an extension is proposed.
DEFAULT_EXTEND_WEEKS = _env_int("ACADEMY_DEFAULT_EXTEND_WEEKS", 4)

# Seconds the raw JSON stores stay in Streamlit's data cache.
CACHE_TTL_SECONDS = _env_int("ACADEMY_CACHE_TTL", 300)

DATA_DIR = Path(
    os.environ.get("ACADEMY_DATA_DIR")
    or Path(__file__).resolve().parent.parent / "data"
)


__all__ = [
    "CACHE_TTL_SECONDS",
    "DATA_DIR",
    "DEFAULT_END_DAY",
    "DEFAULT_EXTEND_WEEKS",
    "MAX_BREAK_WEEKS",
    "NEXT_COURSE_SCAN_DAYS",
    "NOTICE_WINDOW_DAYS",
]
