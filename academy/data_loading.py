"""Loading helpers for the JSON stores the engine reads.

The stores (course config sets, registrations, merge groups and extensions)
are plain JSON documents, either on disk under :data:`academy.config.DATA_DIR`
or served over HTTP.  Raw documents are cached by Streamlit for a few minutes;
the catalog snapshot and every computed schedule are rebuilt from them on each
call.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import requests
import streamlit as st

from .catalog import CourseCatalog
from .config import CACHE_TTL_SECONDS, DATA_DIR

_LOG = logging.getLogger(__name__)

_REQUEST_HEADERS = {
    "Cache-Control": "no-cache",
    "Pragma": "no-cache",
    "Accept": "application/json",
}

Source = Union[str, Path]


def _is_url(source: str) -> bool:
    return source.startswith("http://") or source.startswith("https://")


def _resolve_path(source: str) -> Path:
    path = Path(source)
    if not path.is_absolute():
        path = DATA_DIR / path
    return path


@st.cache_data(ttl=CACHE_TTL_SECONDS, show_spinner=False)
def _read_json_cached(source: str) -> Any:
    """Fetch and decode one JSON document.

    Raises
    ------
    requests.RequestException | OSError | ValueError
    """
    try:
        if _is_url(source):
            resp = requests.get(source, timeout=12, headers=_REQUEST_HEADERS)
            resp.raise_for_status()
            return resp.json()
        with _resolve_path(source).open(encoding="utf-8") as f:
            return json.load(f)
    except (requests.RequestException, OSError, ValueError):
        logging.exception("Could not load JSON store %s", source)
        raise


def read_json(source: Source, force_refresh: bool = False) -> Any:
    """Return the decoded JSON at ``source`` (path or URL)."""
    if force_refresh:
        try:
            _read_json_cached.clear()
        except Exception:
            logging.exception("Unable to clear cached JSON stores")
    return _read_json_cached(str(source))


# ---------------------------------------------------------------------------
# Shape validation
# ---------------------------------------------------------------------------


def _records(data: Any, key: str) -> List[Dict[str, Any]]:
    """Accept either a bare list or ``{key: [...]}`` and return the dict items."""
    if isinstance(data, dict):
        if key not in data:
            raise ValueError(f"Store is missing the {key!r} list")
        data = data[key]
    if not isinstance(data, list):
        raise ValueError(f"{key} must be a list")
    items = [item for item in data if isinstance(item, dict)]
    dropped = len(data) - len(items)
    if dropped:
        _LOG.warning("Dropped %d non-object entries from %s", dropped, key)
    return items


def _select_config_set(data: Any, name: Optional[str]) -> Dict[str, Any]:
    if isinstance(data, dict) and "courseConfigSets" in data:
        data = data["courseConfigSets"]
    if isinstance(data, list):
        candidates = [s for s in data if isinstance(s, dict)]
        if name is not None:
            candidates = [s for s in candidates if str(s.get("name") or "").strip() == name]
        if not candidates:
            raise ValueError(f"Course config set {name!r} not found")
        # Set names are date-like, so the lexicographically last one is newest.
        data = max(candidates, key=lambda s: str(s.get("name") or ""))
    if not isinstance(data, dict):
        raise ValueError("Course config set must be a dictionary")
    return data


def catalog_from_config_set(config_set: Dict[str, Any]) -> CourseCatalog:
    payload = config_set.get("data", config_set)
    if not isinstance(payload, dict):
        raise ValueError("Course config set data must be a dictionary")
    course_info = payload.get("courseInfo") or {}
    if not isinstance(course_info, dict):
        raise ValueError("courseInfo must be a dictionary")
    course_tree = payload.get("courseTree") or []
    if not isinstance(course_tree, list):
        raise ValueError("courseTree must be a list")
    time_table = payload.get("timeTable") or {}
    if not isinstance(time_table, dict):
        raise ValueError("timeTable must be a dictionary")
    return CourseCatalog.from_records(course_info, course_tree, time_table)


# ---------------------------------------------------------------------------
# Public loaders
# ---------------------------------------------------------------------------


def load_catalog(
    source: Source = "course_config_sets.json",
    name: Optional[str] = None,
    force_refresh: bool = False,
) -> CourseCatalog:
    """Load a course config set and return its catalog snapshot.

    ``name`` picks a specific set; otherwise the newest one is used.
    """
    config_set = _select_config_set(read_json(source, force_refresh), name)
    return catalog_from_config_set(config_set)


def load_registrations(source: Source = "registrations.json", force_refresh: bool = False) -> List[Dict[str, Any]]:
    return _records(read_json(source, force_refresh), "results")


def load_merges(source: Source = "merges.json", force_refresh: bool = False) -> List[Dict[str, Any]]:
    return _records(read_json(source, force_refresh), "merges")


def load_extensions(source: Source = "extensions.json", force_refresh: bool = False) -> List[Dict[str, Any]]:
    return _records(read_json(source, force_refresh), "extensions")


__all__ = [
    "catalog_from_config_set",
    "load_catalog",
    "load_extensions",
    "load_merges",
    "load_registrations",
    "read_json",
]
