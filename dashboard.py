# ==== Standard Library ====
import logging
import os

# ==== Third-Party Packages ====
import pandas as pd
import streamlit as st

from academy.catalog import CatalogError
from academy.data_loading import load_catalog, load_extensions, load_merges, load_registrations
from academy.dates import format_date_ymd
from academy.services import (
    installment_rows,
    merge_timeline,
    merge_week_ranges,
    registrations_frame,
    resolve_registrations,
)
from academy.status import snapshot_now, summarize_statuses
from academy.week_alignment import week_totals_frame

logging.basicConfig(level=os.environ.get("ACADEMY_LOG_LEVEL", "INFO"))

st.set_page_config(page_title="Registrations", page_icon="📅", layout="wide")


def _load():
    catalog = load_catalog(os.environ.get("ACADEMY_CATALOG_SOURCE", "course_config_sets.json"))
    registrations = load_registrations(os.environ.get("ACADEMY_REGISTRATIONS_SOURCE", "registrations.json"))
    merges = load_merges(os.environ.get("ACADEMY_MERGES_SOURCE", "merges.json"))
    extensions = load_extensions(os.environ.get("ACADEMY_EXTENSIONS_SOURCE", "extensions.json"))
    return catalog, registrations, merges, extensions


def render_dashboard() -> None:
    try:
        catalog, raw_registrations, merges, extensions = _load()
    except CatalogError as exc:
        st.error(f"❌ The course catalog is ambiguous: {exc}")
        return
    except Exception as exc:
        logging.exception("Could not load dashboard data")
        st.error(f"❌ Could not load registration data. {exc}")
        return

    # One reference day for the whole page.
    now = snapshot_now()
    registrations = resolve_registrations(raw_registrations, catalog)

    counts = summarize_statuses(registrations, now)
    c1, c2, c3, c4 = st.columns(4)
    c1.metric("Registrations", counts["total"])
    c2.metric("Active", counts["active"])
    c3.metric("Pending", counts["pending"])
    c4.metric("Completed", counts["completed"])

    tab_list, tab_merge, tab_install = st.tabs(["Registrations", "Merged classes", "Installments"])

    with tab_list:
        st.dataframe(registrations_frame(registrations, now), hide_index=True)

    with tab_merge:
        names = [str(m.get("name") or "") for m in merges]
        if not names:
            st.info("No merged classes configured.")
        else:
            choice = st.selectbox("Merged class", names)
            merge = merges[names.index(choice)]
            timeline = merge_timeline(registrations, merge, catalog)
            st.dataframe(week_totals_frame(timeline, merge_week_ranges(merge)), hide_index=True)

    with tab_install:
        rows = installment_rows(registrations, extensions, catalog, now)
        table = pd.DataFrame(
            [
                {
                    "name": row["registration"].get("name"),
                    "course": row["courseLabel"],
                    "weeks": row["weeks"],
                    "cap": row["studentMaxWeeks"],
                    "endDate": format_date_ymd(row["endDate"]),
                    "nextStartDate": format_date_ymd(row["nextStartDate"]),
                    "status": row["status"],
                }
                for row in rows
            ]
        )
        if table.empty:
            st.info("No registrations can be extended right now.")
        else:
            st.dataframe(table, hide_index=True)


render_dashboard()
