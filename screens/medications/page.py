# screens/medications/page.py
from __future__ import annotations

from datetime import date
from typing import Any, Dict, Optional

import streamlit as st

from core.cache import bump, cached
from core.policy import current_store, current_user, require_page, user_roles
from core.records import Medication
from core.settings import load_settings
from core.ui import handle_error, metric_row, records_frame
from screens.medications import db

_list_medications = cached()(db.list_medications)


def _k(s: str) -> str:
    return f"medications__{s}"


def _medication_form(key: str, med: Optional[Medication] = None) -> Optional[Dict[str, Any]]:
    m = med
    with st.form(_k(key), clear_on_submit=med is None):
        c1, c2, c3 = st.columns(3)
        name = c1.text_input("Name*", value=m.name if m else "")
        generic = c1.text_input("Generic name", value=(m.generic_name or "") if m else "")
        dosage = c1.text_input("Dosage", value=(m.dosage or "") if m else "", placeholder="500mg")
        forms = list(db.MEDICATION_FORMS)
        form = c2.selectbox("Form", forms, index=forms.index(m.form) if m and m.form in forms else 0)
        manufacturer = c2.text_input("Manufacturer", value=(m.manufacturer or "") if m else "")
        supplier = c2.text_input("Supplier", value=(m.supplier or "") if m else "")
        batch = c3.text_input("Batch number", value=(m.batch_number or "") if m else "")
        expiry = c3.date_input("Expiry date", value=m.expiry_date if m else None)
        unit_cost = c3.number_input("Unit cost (KES)", min_value=0.0, step=1.0,
                                    value=float(m.unit_cost or 0) if m else 0.0)
        s1, s2 = st.columns(2)
        qty = s1.number_input("Quantity in stock", min_value=0, step=1, value=m.quantity_in_stock if m else 0,
                              disabled=m is not None, help="Use Dispense to take stock out" if m else None)
        minimum = s2.number_input("Minimum stock level", min_value=0, step=1,
                                  value=m.minimum_stock_level if m else 10)
        submitted = st.form_submit_button("Save" if m else "Add Medication", type="primary")
    if not submitted:
        return None
    values = {
        "name": name, "generic_name": generic, "dosage": dosage, "form": form,
        "manufacturer": manufacturer, "supplier": supplier, "batch_number": batch,
        "expiry_date": expiry, "unit_cost": unit_cost, "minimum_stock_level": int(minimum),
    }
    if m is None:
        values["quantity_in_stock"] = int(qty)
    return values


def _render_inventory(store, warning_days: int):
    search = st.text_input("Search medications", key=_k("search"))
    meds = _list_medications(store, search=search)
    today = date.today()
    alerts = db.medication_alerts(meds, today, warning_days)
    metric_row([
        ("Medications", len(meds)),
        ("Low stock", sum(1 for a in alerts if a.kind == "low-stock")),
        ("Expired", sum(1 for a in alerts if a.kind == "expired")),
        ("Expiring soon", sum(1 for a in alerts if a.kind == "expiring-soon")),
    ])
    for alert in alerts:
        if alert.kind == "expired":
            st.error(alert.message)
        else:
            st.warning(alert.message)

    if not meds:
        st.info("No medications in inventory.")
        return
    df = records_frame(meds, ["name", "generic_name", "dosage", "form", "quantity_in_stock",
                              "minimum_stock_level", "batch_number", "expiry_date"])
    df["stock"] = [db.stock_status(m) for m in meds]
    df["expiry"] = [db.expiry_status(m, today, warning_days) for m in meds]
    st.dataframe(df, use_container_width=True, hide_index=True)

    by_id = {m.id: m for m in meds}
    pick = st.selectbox("Open medication", [None] + list(by_id), key=_k("pick"),
                        format_func=lambda pk: "-" if pk is None else by_id[pk].name)
    if pick is None:
        return
    med = by_id[pick]
    t_edit, t_disp, t_hist = st.tabs(["Edit", "Dispense", "History"])
    with t_edit:
        values = _medication_form(f"edit_{med.id}", med)
        if values is not None:
            try:
                db.update_medication(store, med.id, values)
                bump()
                st.success("Medication updated.")
            except ValueError as e:
                st.error(str(e))
            except Exception as e:
                handle_error(e, "Could not update the medication.")
    with t_disp:
        with st.form(_k(f"dispense_{med.id}"), clear_on_submit=True):
            qty = st.number_input("Quantity", min_value=1, step=1, value=1)
            instructions = st.text_input("Dosage instructions")
            if st.form_submit_button("Dispense"):
                user = current_user()
                try:
                    db.dispense(store, med.id, int(qty), None, instructions, user.id if user else None)
                    bump()
                    st.success(f"Dispensed {int(qty)} × {med.name}.")
                except ValueError as e:
                    st.error(str(e))
                except Exception as e:
                    handle_error(e, "Could not dispense.")
    with t_hist:
        history = db.list_dispensing(store, medication_pk=med.id)
        if history:
            st.dataframe(records_frame(history, ["dispensed_at", "quantity_dispensed", "dosage_instructions",
                                                 "clinic_visit_id"]),
                         use_container_width=True, hide_index=True)
        else:
            st.caption("Nothing dispensed yet.")


def _render_add(store):
    values = _medication_form("add")
    if values is None:
        return
    try:
        med = db.add_medication(store, values)
        bump()
        st.success(f"Added {med.name}.")
    except ValueError as e:
        st.error(str(e))
    except Exception as e:
        handle_error(e, "Could not add the medication.")


@require_page("Medications")
def render():
    st.title("💊 Medications")
    store = current_store()
    warning_days = load_settings().alerts.expiry_warning_days
    t_inv, t_add = st.tabs(["Inventory", "Add Medication"])
    try:
        with t_inv:
            _render_inventory(store, warning_days)
        with t_add:
            _render_add(store)

        if "admin" in user_roles():
            st.divider()
            if st.button("Notify administrators of current alerts", key=_k("sweep")):
                n = db.run_alert_sweep(store, warning_days=warning_days)
                bump()
                if n:
                    st.success(f"Created {n} notification(s).")
                else:
                    st.info("No alerts to send.")
    except Exception as e:
        handle_error(e, "Could not load medications.")
