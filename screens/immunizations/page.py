# screens/immunizations/page.py
from __future__ import annotations

from datetime import date, timedelta

import pandas as pd
import streamlit as st

from core.cache import bump, cached
from core.policy import current_store, require_page, user_roles
from core.records import FORM_LEVELS, form_label
from core.ui import handle_error, metric_row, records_frame
from screens.immunizations import db
from screens.immunizations.compliance import build_report, render_report_text, report_file_name
from screens.students.db import list_students, students_by_pk

_list_students = cached()(list_students)
_list_immunizations = cached()(db.list_immunizations)
_list_requirements = cached()(db.list_requirements)


def _k(s: str) -> str:
    return f"immunizations__{s}"


def _render_record(store):
    students = _list_students(store, active=True)
    by_id = {s.id: s for s in students}
    requirements = _list_requirements(store)
    with st.form(_k("record"), clear_on_submit=True):
        student_pk = st.selectbox(
            "Student*", [None] + list(by_id),
            format_func=lambda pk: "Select a student" if pk is None else
            f"{by_id[pk].full_name} ({form_label(by_id[pk].form_level) or '-'})",
        )
        c1, c2 = st.columns(2)
        known = [r.vaccine_name for r in requirements]
        picked = c1.selectbox("Vaccine", known + ["Other"])
        other = c2.text_input("Other vaccine name")
        d1, d2 = st.columns(2)
        given = d1.date_input("Date administered", value=date.today(), max_value=date.today())
        next_dose = d2.date_input("Next dose date", value=None)
        b1, b2 = st.columns(2)
        administered_by = b1.text_input("Administered by")
        batch = b2.text_input("Batch number")
        notes = st.text_area("Notes")
        submitted = st.form_submit_button("Record Immunization", type="primary")
    if not submitted:
        return
    try:
        db.record_immunization(store, {
            "student_id": student_pk,
            "vaccine_name": other if picked == "Other" else picked,
            "date_administered": given, "next_dose_date": next_dose,
            "administered_by": administered_by, "batch_number": batch, "notes": notes,
        })
        bump()
        st.success("Immunization recorded.")
    except ValueError as e:
        st.error(str(e))
    except Exception as e:
        handle_error(e, "Could not record the immunization.")


def _render_history(store):
    imms = _list_immunizations(store)
    if not imms:
        st.info("No immunizations recorded yet.")
        return
    students = students_by_pk(store, (i.student_id for i in imms))
    df = records_frame(imms, ["vaccine_name", "date_administered", "administered_by", "batch_number", "next_dose_date"])
    df.insert(0, "student", [students[i.student_id].full_name if i.student_id in students else "-" for i in imms])
    st.dataframe(df, use_container_width=True, hide_index=True)

    st.markdown("#### Upcoming doses (next 30 days)")
    upcoming = db.upcoming_doses(store, date.today() + timedelta(days=30))
    if upcoming:
        st.dataframe(pd.DataFrame([{
            "student": students[i.student_id].full_name if i.student_id in students else "-",
            "vaccine": i.vaccine_name, "due": i.next_dose_date,
        } for i in upcoming]), use_container_width=True, hide_index=True)
    else:
        st.caption("None due.")


def _render_compliance(store):
    students = _list_students(store, active=True)
    report = build_report(students, _list_immunizations(store), _list_requirements(store))
    metric_row([
        ("Overall compliance", f"{report.overall:.1f}%"),
        ("Students", report.total_students),
        ("Compliant", report.compliant_students),
        ("Mandatory vaccines", report.mandatory_count),
    ])

    c1, c2 = st.columns(2)
    with c1:
        st.markdown("**By form level**")
        st.dataframe(pd.DataFrame([
            {"form": form_label(f), "compliant": t.done, "students": t.total, "percent": round(t.percent, 1)}
            for f, t in report.by_form.items()
        ]), use_container_width=True, hide_index=True)
    with c2:
        st.markdown("**By vaccine**")
        st.dataframe(pd.DataFrame([
            {"vaccine": v, "received": t.done, "required": t.total, "percent": round(t.percent, 1)}
            for v, t in report.by_vaccine.items()
        ]), use_container_width=True, hide_index=True)

    if report.missing:
        by_id = {s.id: s for s in students}
        with st.expander(f"Students with missing vaccines ({len(report.missing)})"):
            st.dataframe(pd.DataFrame([
                {"student": by_id[pk].full_name, "form": form_label(by_id[pk].form_level), "missing": ", ".join(v)}
                for pk, v in report.missing.items()
            ]), use_container_width=True, hide_index=True)

    today = date.today()
    st.download_button(
        "Download Compliance Report",
        data=render_report_text(report, today).encode("utf-8"),
        file_name=report_file_name(today),
        mime="text/plain",
        key=_k("report"),
    )


def _render_requirements(store):
    requirements = _list_requirements(store)
    if requirements:
        st.dataframe(records_frame(requirements, ["vaccine_name", "doses_required", "is_mandatory",
                                                  "required_for_form_level"]),
                     use_container_width=True, hide_index=True)
    by_id = {r.id: r for r in requirements}
    pick = st.selectbox("Edit requirement", [None] + list(by_id), key=_k("req_pick"),
                        format_func=lambda pk: "New requirement" if pk is None else by_id[pk].vaccine_name)
    req = by_id.get(pick)
    with st.form(_k(f"req_{pick}")):
        name = st.text_input("Vaccine name", value=req.vaccine_name if req else "")
        doses = st.number_input("Doses required", min_value=1, step=1, value=req.doses_required if req else 1)
        mandatory = st.checkbox("Mandatory", value=req.is_mandatory if req else True)
        forms = st.multiselect("Required for", FORM_LEVELS, format_func=form_label,
                               default=list(req.required_for_form_level or []) if req else list(FORM_LEVELS))
        if st.form_submit_button("Save requirement"):
            try:
                db.save_requirement(store, name, int(doses), mandatory, forms, pk=pick)
                bump()
                st.success("Requirement saved.")
            except ValueError as e:
                st.error(str(e))
            except Exception as e:
                handle_error(e, "Could not save the requirement.")


@require_page("Immunizations")
def render():
    st.title("💉 Immunizations")
    store = current_store()
    names = ["Record", "History", "Compliance"]
    is_admin = "admin" in user_roles()
    if is_admin:
        names.append("Requirements")
    tabs = st.tabs(names)
    try:
        with tabs[0]:
            _render_record(store)
        with tabs[1]:
            _render_history(store)
        with tabs[2]:
            _render_compliance(store)
        if is_admin:
            with tabs[3]:
                _render_requirements(store)
    except Exception as e:
        handle_error(e, "Could not load immunizations.")
