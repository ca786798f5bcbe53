# screens/reports/page.py
from __future__ import annotations

import logging
from datetime import date, timedelta

import pandas as pd
import streamlit as st

from core.cache import cached
from core.policy import current_store, require_page
from core.ui import handle_error
from screens.clinic.db import list_visits
from screens.reports import analytics
from screens.reports.exports import EXPORTERS, clinic_csv, export_file_name
from screens.students.db import list_students

log = logging.getLogger(__name__)

_list_students = cached()(list_students)
_list_visits = cached()(list_visits)

_EXPORT_LABELS = {
    "students": "Students",
    "clinic": "Clinic visits",
    "immunizations": "Immunizations",
    "medications": "Medication dispensing",
}


def _k(s: str) -> str:
    return f"reports__{s}"


def _render_exports(store):
    today = date.today()
    kind = st.selectbox("Report", list(_EXPORT_LABELS), format_func=_EXPORT_LABELS.get, key=_k("kind"))
    if kind == "clinic":
        c1, c2 = st.columns(2)
        start = c1.date_input("From", value=today - timedelta(days=30), key=_k("from"))
        end = c2.date_input("To", value=today, key=_k("to"))
        if start > end:
            st.warning("The start date is after the end date.")
            return
        data = clinic_csv(store, start, end)
    else:
        data = EXPORTERS[kind](store)
    st.download_button(
        f"Download {_EXPORT_LABELS[kind]} CSV",
        data=data,
        file_name=export_file_name(kind, today),
        mime="text/csv",
        key=_k("download"),
    )
    log.debug("Prepared %s export (%d bytes)", kind, len(data))


def _render_analytics(store):
    today = date.today()
    students = _list_students(store, active=True)
    visits = _list_visits(store, start=today - timedelta(days=90), end=today)

    st.markdown("#### Visits in the last 7 days")
    trend = analytics.visit_trend(visits, today)
    st.bar_chart(pd.DataFrame({"visits": [n for _, n in trend]}, index=[d.isoformat() for d, _ in trend]))

    c1, c2 = st.columns(2)
    with c1:
        st.markdown("#### Common chronic conditions")
        conditions = analytics.condition_breakdown(students)
        if conditions:
            st.dataframe(pd.DataFrame([
                {"condition": c.condition, "students": c.count, "percent": c.percentage} for c in conditions
            ]), use_container_width=True, hide_index=True)
        else:
            st.caption("None recorded.")
    with c2:
        st.markdown("#### Frequent visitors (90 days)")
        frequent = analytics.frequent_visitors(visits, {s.id: s for s in students})
        if frequent:
            st.dataframe(pd.DataFrame([
                {"student": s.full_name, "visits": n} for s, n in frequent
            ]), use_container_width=True, hide_index=True)
        else:
            st.caption("No student has three or more visits.")

    st.caption(
        f"{analytics.students_with(students, 'allergies')} active students have recorded allergies; "
        f"{analytics.students_with(students, 'chronic_conditions')} have chronic conditions."
    )


@require_page("Reports")
def render():
    st.title("📊 Reports")
    store = current_store()
    t_exp, t_an = st.tabs(["Exports", "Analytics"])
    try:
        with t_exp:
            _render_exports(store)
        with t_an:
            _render_analytics(store)
    except Exception as e:
        handle_error(e, "Could not build the report.")
