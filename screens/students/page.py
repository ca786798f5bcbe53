# screens/students/page.py
from __future__ import annotations

import logging
from datetime import date
from typing import Any, Dict, Optional

import streamlit as st

from core.cache import bump, cached
from core.policy import current_store, current_user, require_page
from core.records import BLOOD_GROUPS, FORM_LEVELS, GENDERS, SCHOOL_TERMS, Student, form_label
from core.settings import load_settings
from core.ui import handle_error, records_frame
from screens.clinic.db import list_visits
from screens.immunizations.db import list_immunizations
from screens.students import db
from screens.students.documents import list_documents, read_document, save_document

log = logging.getLogger(__name__)

_list_students = cached()(db.list_students)


def _k(s: str) -> str:
    """Per-page key namespace to avoid collisions if rendered twice."""
    return f"students__{s}"


def _opt(options, current: Optional[str]) -> int:
    choices = [""] + list(options)
    return choices.index(current) if current in choices else 0


def _student_form(key: str, student: Optional[Student] = None) -> Optional[Dict[str, Any]]:
    """Create / edit form. Returns the submitted values, or None if not submitted."""
    s = student
    with st.form(_k(key), clear_on_submit=student is None):
        c1, c2, c3 = st.columns(3)
        with c1:
            full_name = st.text_input("Full name*", value=s.full_name if s else "")
            student_id = st.text_input("Student ID", value=(s.student_id or "") if s else "")
            admission_number = st.text_input("Admission number", value=(s.admission_number or "") if s else "")
            gender = st.selectbox("Gender", [""] + list(GENDERS), index=_opt(GENDERS, s.gender if s else None))
        with c2:
            dob = st.date_input("Date of birth", value=s.date_of_birth if s else None,
                                min_value=date(1990, 1, 1), max_value=date.today())
            form_level = st.selectbox("Form level", [""] + list(FORM_LEVELS), format_func=lambda f: form_label(f) or "-",
                                      index=_opt(FORM_LEVELS, s.form_level if s else None))
            stream = st.text_input("Stream", value=(s.stream or "") if s else "")
            blood_group = st.selectbox("Blood group", [""] + list(BLOOD_GROUPS),
                                       index=_opt(BLOOD_GROUPS, s.blood_group if s else None))
        with c3:
            admission_date = st.date_input("Admission date", value=s.admission_date if s else None)
            guardian = st.text_input("Parent/Guardian", value=(s.parent_guardian_name or "") if s else "")
            guardian_phone = st.text_input("Guardian phone", value=(s.parent_guardian_phone or "") if s else "")
            nhif = st.text_input("NHIF number", value=(s.nhif_number or "") if s else "")
            sha = st.text_input("SHA number", value=(s.sha_number or "") if s else "")

        allergies = st.text_area("Allergies", value=(s.allergies or "") if s else "")
        chronic = st.text_area("Chronic conditions", value=(s.chronic_conditions or "") if s else "",
                               help="Separate several conditions with commas")
        a1, a2, a3, a4 = st.columns(4)
        county = a1.text_input("County", value=(s.county or "") if s else "")
        sub_county = a2.text_input("Sub-county", value=(s.sub_county or "") if s else "")
        ward = a3.text_input("Ward", value=(s.ward or "") if s else "")
        village = a4.text_input("Village", value=(s.village or "") if s else "")

        ec = (s.emergency_contact or {}) if s else {}
        e1, e2, e3 = st.columns(3)
        ec_name = e1.text_input("Emergency contact name", value=ec.get("name", ""))
        ec_phone = e2.text_input("Emergency contact phone", value=ec.get("phone", ""))
        ec_rel = e3.text_input("Relationship", value=ec.get("relationship", ""))

        submitted = st.form_submit_button("Save Student" if s else "Add Student", type="primary")

    if not submitted:
        return None
    contact = {"name": ec_name.strip(), "phone": ec_phone.strip(), "relationship": ec_rel.strip()}
    return {
        "full_name": full_name, "student_id": student_id, "admission_number": admission_number,
        "gender": gender or None, "date_of_birth": dob, "form_level": form_level or None,
        "stream": stream, "blood_group": blood_group or None, "admission_date": admission_date,
        "parent_guardian_name": guardian, "parent_guardian_phone": guardian_phone,
        "nhif_number": nhif, "sha_number": sha, "allergies": allergies, "chronic_conditions": chronic,
        "county": county, "sub_county": sub_county, "ward": ward, "village": village,
        "emergency_contact": contact if any(contact.values()) else None,
    }


def _render_documents(store, student: Student):
    settings = load_settings()
    user = current_user()
    st.markdown("#### 📎 Medical documents")
    docs = list_documents(store, student.id)
    if not docs:
        st.caption("No documents attached.")
    for doc in docs:
        c1, c2 = st.columns([0.7, 0.3])
        c1.write(f"**{doc.file_name}** · {doc.description or ''} · {doc.created_at or ''}")
        try:
            c2.download_button("Download", data=read_document(doc), file_name=doc.file_name,
                               mime=doc.content_type or "application/octet-stream", key=_k(f"doc_{doc.id}"))
        except FileNotFoundError:
            c2.warning("File missing on disk")

    with st.form(_k(f"doc_form_{student.id}"), clear_on_submit=True):
        upload = st.file_uploader("Attach a file", key=_k(f"doc_up_{student.id}"))
        description = st.text_input("Description")
        if st.form_submit_button("Upload document"):
            if upload is None:
                st.warning("Choose a file first.")
            else:
                try:
                    save_document(store, settings.storage.root, student.id, upload.name, upload.getvalue(),
                                  upload.type, description, user.id if user else None)
                    st.success(f"Attached {upload.name}")
                except ValueError as e:
                    st.error(str(e))
                except Exception as e:
                    handle_error(e, "Could not store the document.")


def _render_detail(store, student: Student):
    st.subheader(student.full_name)
    status = "Active" if student.is_active else "Retired"
    st.caption(f"{form_label(student.form_level) or 'No form'} · {student.stream or '-'} · {status}")

    c1, c2, c3, c4 = st.columns(4)
    c1.metric("Student ID", student.student_id or "-")
    c2.metric("Admission #", student.admission_number or "-")
    c3.metric("Age", student.age if student.age is not None else "-")
    c4.metric("Insurance", student.insurance_status)

    tabs = st.tabs(["Profile", "Clinic visits", "Immunizations", "Documents", "Edit"])
    with tabs[0]:
        st.json({
            "Gender": student.gender, "Date of birth": str(student.date_of_birth or ""),
            "Blood group": student.blood_group, "Allergies": student.allergies,
            "Chronic conditions": student.chronic_conditions,
            "Guardian": student.parent_guardian_name, "Guardian phone": student.parent_guardian_phone,
            "Emergency contact": student.emergency_contact,
            "Address": ", ".join(x for x in (student.village, student.ward, student.sub_county, student.county) if x),
            "Admission date": str(student.admission_date or ""),
        })
        history = db.progression_history(store, student.id)
        if history:
            st.markdown("**Progression**")
            st.dataframe(records_frame(history, ["academic_year", "term", "form_level", "promotion_date", "notes"]),
                         use_container_width=True, hide_index=True)
    with tabs[1]:
        visits = list_visits(store, student_pk=student.id)
        if visits:
            st.dataframe(records_frame(visits, ["visit_date", "visit_type", "symptoms", "diagnosis", "treatment_given"]),
                         use_container_width=True, hide_index=True)
        else:
            st.caption("No clinic visits recorded.")
    with tabs[2]:
        imms = list_immunizations(store, student_pk=student.id)
        if imms:
            st.dataframe(records_frame(imms, ["vaccine_name", "date_administered", "administered_by", "next_dose_date"]),
                         use_container_width=True, hide_index=True)
        else:
            st.caption("No immunizations recorded.")
    with tabs[3]:
        _render_documents(store, student)
    with tabs[4]:
        values = _student_form(f"edit_{student.id}", student)
        if values is not None:
            try:
                db.update_student(store, student.id, values)
                bump()
                st.success("Student updated.")
                st.rerun()
            except ValueError as e:
                st.error(str(e))
            except Exception as e:
                handle_error(e, "Could not update the student.")

        st.divider()
        label = "Retire student" if student.is_active else "Reactivate student"
        if st.button(label, key=_k(f"toggle_{student.id}")):
            try:
                db.set_student_active(store, student.id, not student.is_active)
                bump()
                st.rerun()
            except Exception as e:
                handle_error(e, "Could not change the student's status.")


def _render_records(store):
    c1, c2, c3 = st.columns([0.5, 0.25, 0.25])
    search = c1.text_input("Search by name, student ID or admission number", key=_k("search"))
    form = c2.selectbox("Form level", ["All"] + list(FORM_LEVELS), format_func=lambda f: form_label(f) if f != "All" else f,
                        key=_k("form_filter"))
    show = c3.selectbox("Status", ["Active", "Retired", "All"], key=_k("status"))
    active = {"Active": True, "Retired": False, "All": None}[show]

    students = _list_students(store, active=active, form_level=None if form == "All" else form, search=search)
    st.caption(f"{len(students)} student(s)")
    if not students:
        st.info("No students match. Add one in the next tab or import a CSV under Data Import.")
        return

    st.dataframe(
        records_frame(students, ["full_name", "student_id", "admission_number", "form_level", "stream",
                                 "gender", "blood_group", "is_active"]),
        use_container_width=True, hide_index=True,
    )
    by_id = {s.id: s for s in students}
    pick = st.selectbox("Open student", [None] + list(by_id), key=_k("pick"),
                        format_func=lambda pk: "-" if pk is None else
                        f"{by_id[pk].full_name} ({by_id[pk].student_id or by_id[pk].admission_number or pk})")
    if pick is not None:
        st.divider()
        _render_detail(store, by_id[pick])


def _render_add(store):
    values = _student_form("add")
    if values is None:
        return
    try:
        student = db.create_student(store, values)
        bump()
        st.success(f"Added {student.full_name}.")
    except ValueError as e:
        st.error(str(e))
    except Exception as e:
        handle_error(e, "Could not add the student.")


def _render_promotion(store):
    st.markdown("Move every active student in a form up one level. Form 4 students graduate and are retired.")
    year = date.today().year
    c1, c2, c3 = st.columns(3)
    form = c1.selectbox("From form", FORM_LEVELS, format_func=form_label, key=_k("promo_form"))
    academic_year = c2.text_input("Academic year", value=f"{year}/{year + 1}", key=_k("promo_year"))
    term = c3.selectbox("Term", SCHOOL_TERMS, index=len(SCHOOL_TERMS) - 1, key=_k("promo_term"),
                        format_func=lambda t: t.replace("_", " ").title())
    confirm = st.checkbox(f"I confirm promoting all active {form_label(form)} students", key=_k("promo_ok"))
    if st.button("Promote", type="primary", disabled=not confirm, key=_k("promo_go")):
        try:
            n = db.promote_form(store, form, academic_year.strip(), term)
            bump()
            st.success(f"Promoted {n} student(s) from {form_label(form)}.")
        except ValueError as e:
            st.error(str(e))
        except Exception as e:
            handle_error(e, "Promotion failed part way; check the progression history.")


@require_page("Students")
def render():
    st.title("🎓 Student Records")
    store = current_store()
    tab_list, tab_add, tab_promo = st.tabs(["Students", "Add Student", "Promotion"])
    try:
        with tab_list:
            _render_records(store)
        with tab_add:
            _render_add(store)
        with tab_promo:
            _render_promotion(store)
    except Exception as e:
        handle_error(e, "Could not load student records.")
