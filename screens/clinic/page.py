# screens/clinic/page.py
from __future__ import annotations

from datetime import date, datetime, timedelta

import streamlit as st

from core.cache import bump, cached
from core.policy import current_store, current_user, require_page, user_roles
from core.records import VISIT_TYPES
from core.ui import handle_error, records_frame
from screens.clinic import db
from screens.medications.db import dispense, list_medications
from screens.students.db import list_students, students_by_pk

_list_students = cached()(list_students)


def _k(s: str) -> str:
    return f"clinic__{s}"


def _student_picker(store, key: str):
    students = _list_students(store, active=True)
    by_id = {s.id: s for s in students}
    return st.selectbox(
        "Student*", [None] + list(by_id), key=_k(key),
        format_func=lambda pk: "Select a student" if pk is None else
        f"{by_id[pk].full_name} ({by_id[pk].student_id or by_id[pk].admission_number or '-'})",
    )


def _render_new_visit(store):
    user = current_user()
    student_pk = _student_picker(store, "visit_student")
    with st.form(_k("visit_form"), clear_on_submit=True):
        c1, c2 = st.columns(2)
        visit_type = c1.selectbox("Visit type", list(VISIT_TYPES), format_func=VISIT_TYPES.get)
        visit_day = c2.date_input("Visit date", value=date.today(), max_value=date.today())
        symptoms = st.text_area("Symptoms")
        diagnosis = st.text_area("Diagnosis")
        treatment = st.text_area("Treatment given")

        st.markdown("**Vital signs**")
        v1, v2, v3, v4, v5 = st.columns(5)
        temperature = v1.number_input("Temp (°C)", value=None, step=0.1, format="%.1f")
        bp = v2.text_input("BP (sys/dia)", placeholder="120/80")
        pulse = v3.number_input("Pulse (bpm)", value=None, step=1)
        weight = v4.number_input("Weight (kg)", value=None, step=0.1)
        height = v5.number_input("Height (cm)", value=None, step=0.5)

        f1, f2 = st.columns(2)
        follow_up = f1.checkbox("Follow-up required")
        follow_up_date = f2.date_input("Follow-up date", value=None, min_value=date.today())
        notes = st.text_area("Notes")
        submitted = st.form_submit_button("Log Visit", type="primary")

    if not submitted:
        return
    now = datetime.now()
    values = {
        "student_id": student_pk, "visit_type": visit_type,
        "visit_date": datetime.combine(visit_day, now.time().replace(microsecond=0)),
        "symptoms": symptoms, "diagnosis": diagnosis, "treatment_given": treatment,
        "temperature": temperature, "blood_pressure": bp, "pulse_rate": int(pulse) if pulse is not None else None,
        "weight": weight, "height": height, "follow_up_required": follow_up,
        "follow_up_date": follow_up_date if follow_up else None, "notes": notes,
    }
    try:
        visit = db.log_visit(store, values, attended_by=user.id if user else None)
        bump()
        st.success(f"Visit #{visit.id} logged.")
    except ValueError as e:
        st.error(str(e))
    except Exception as e:
        handle_error(e, "Could not log the visit.")


def _render_visit_actions(store, visit):
    user = current_user()
    with st.expander(f"Dispense medication for visit #{visit.id}"):
        meds = [m for m in list_medications(store) if m.quantity_in_stock > 0]
        if not meds:
            st.caption("No medication in stock.")
        else:
            by_id = {m.id: m for m in meds}
            with st.form(_k(f"dispense_{visit.id}"), clear_on_submit=True):
                med_pk = st.selectbox("Medication", list(by_id),
                                      format_func=lambda pk: f"{by_id[pk].name} ({by_id[pk].quantity_in_stock} in stock)")
                qty = st.number_input("Quantity", min_value=1, step=1, value=1)
                instructions = st.text_input("Dosage instructions")
                if st.form_submit_button("Dispense"):
                    try:
                        dispense(store, med_pk, int(qty), visit.id, instructions, user.id if user else None)
                        bump()
                        st.success("Dispensed.")
                    except ValueError as e:
                        st.error(str(e))
                    except Exception as e:
                        handle_error(e, "Could not dispense.")

    with st.expander(f"Record a fee payment for visit #{visit.id}"):
        fees = db.list_fees(store)
        if not fees:
            st.caption("No active service fees.")
        else:
            by_id = {f.id: f for f in fees}
            with st.form(_k(f"pay_{visit.id}"), clear_on_submit=True):
                fee_pk = st.selectbox("Service", list(by_id),
                                      format_func=lambda pk: f"{by_id[pk].service_name} (KES {by_id[pk].fee_amount:,.0f})")
                amount = st.number_input("Amount paid", min_value=0.0, step=50.0)
                method = st.selectbox("Method", db.PAYMENT_METHODS)
                receipt = st.text_input("Receipt number")
                if st.form_submit_button("Record payment"):
                    try:
                        db.record_payment(store, visit.id, fee_pk, amount, method, receipt, user.id if user else None)
                        bump()
                        st.success("Payment recorded.")
                    except ValueError as e:
                        st.error(str(e))
                    except Exception as e:
                        handle_error(e, "Could not record the payment.")
        payments = db.list_payments(store, visit_pk=visit.id)
        if payments:
            st.dataframe(records_frame(payments, ["payment_date", "amount_paid", "payment_method", "receipt_number"]),
                         use_container_width=True, hide_index=True)


def _render_visit_log(store):
    c1, c2, c3 = st.columns(3)
    start = c1.date_input("From", value=date.today() - timedelta(days=30), key=_k("from"))
    end = c2.date_input("To", value=date.today(), key=_k("to"))
    vtype = c3.selectbox("Type", ["All"] + list(VISIT_TYPES), key=_k("type"),
                         format_func=lambda t: t if t == "All" else VISIT_TYPES[t])
    visits = db.list_visits(store, start=start, end=end, visit_type=None if vtype == "All" else vtype)
    if not visits:
        st.info("No visits in this range.")
        return
    students = students_by_pk(store, (v.student_id for v in visits))
    df = records_frame(visits, ["id", "visit_date", "visit_type", "symptoms", "diagnosis", "treatment_given",
                                "temperature", "blood_pressure", "follow_up_required"])
    df.insert(1, "student", [students[v.student_id].full_name if v.student_id in students else "-" for v in visits])
    st.dataframe(df, use_container_width=True, hide_index=True)

    by_id = {v.id: v for v in visits}
    pick = st.selectbox("Open visit", [None] + list(by_id), key=_k("pick"),
                        format_func=lambda pk: "-" if pk is None else f"#{pk} · {by_id[pk].visit_date:%Y-%m-%d %H:%M}")
    if pick is None:
        return
    visit = by_id[pick]
    with st.form(_k(f"edit_{visit.id}")):
        diagnosis = st.text_area("Diagnosis", value=visit.diagnosis or "")
        treatment = st.text_area("Treatment given", value=visit.treatment_given or "")
        notes = st.text_area("Notes", value=visit.notes or "")
        follow_up = st.checkbox("Follow-up required", value=visit.follow_up_required)
        follow_up_date = st.date_input("Follow-up date", value=visit.follow_up_date)
        if st.form_submit_button("Save changes"):
            try:
                db.update_visit(store, visit.id, {
                    "diagnosis": diagnosis, "treatment_given": treatment, "notes": notes,
                    "follow_up_required": follow_up, "follow_up_date": follow_up_date if follow_up else None,
                })
                bump()
                st.success("Visit updated.")
            except ValueError as e:
                st.error(str(e))
            except Exception as e:
                handle_error(e, "Could not update the visit.")
    _render_visit_actions(store, visit)


def _render_follow_ups(store):
    until = st.date_input("Due on or before", value=date.today() + timedelta(days=7), key=_k("fu_until"))
    due = db.follow_ups_due(store, until)
    if not due:
        st.success("No follow-ups due.")
        return
    students = students_by_pk(store, (v.student_id for v in due))
    df = records_frame(due, ["id", "follow_up_date", "visit_type", "diagnosis"])
    df.insert(1, "student", [students[v.student_id].full_name if v.student_id in students else "-" for v in due])
    st.dataframe(df, use_container_width=True, hide_index=True)


def _render_fees(store):
    fees = db.list_fees(store, active_only=False)
    if fees:
        st.dataframe(records_frame(fees, ["service_name", "description", "fee_amount", "is_active"]),
                     use_container_width=True, hide_index=True)
    by_id = {f.id: f for f in fees}
    pick = st.selectbox("Edit service", [None] + list(by_id), key=_k("fee_pick"),
                        format_func=lambda pk: "New service" if pk is None else by_id[pk].service_name)
    fee = by_id.get(pick)
    with st.form(_k(f"fee_{pick}")):
        name = st.text_input("Service name", value=fee.service_name if fee else "")
        description = st.text_input("Description", value=(fee.description or "") if fee else "")
        amount = st.number_input("Fee (KES)", min_value=0.0, step=50.0, value=float(fee.fee_amount) if fee else 0.0)
        active = st.checkbox("Active", value=fee.is_active if fee else True)
        if st.form_submit_button("Save service"):
            try:
                db.save_fee(store, name, amount, description, pk=pick, is_active=active)
                bump()
                st.success("Service saved.")
            except ValueError as e:
                st.error(str(e))


@require_page("Clinic Visits")
def render():
    st.title("🩺 Clinic Visits")
    store = current_store()
    names = ["Log Visit", "Visit Log", "Follow-ups"]
    is_admin = "admin" in user_roles()
    if is_admin:
        names.append("Service Fees")
    tabs = st.tabs(names)
    try:
        with tabs[0]:
            _render_new_visit(store)
        with tabs[1]:
            _render_visit_log(store)
        with tabs[2]:
            _render_follow_ups(store)
        if is_admin:
            with tabs[3]:
                _render_fees(store)
    except Exception as e:
        handle_error(e, "Could not load clinic visits.")
