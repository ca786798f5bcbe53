# screens/insurance/page.py
from __future__ import annotations

import pandas as pd
import streamlit as st

from core.cache import bump, cached
from core.policy import current_store, require_page
from core.ui import handle_error, metric_row
from screens.insurance import db

_coverage_rows = cached()(db.coverage_rows)


def _k(s: str) -> str:
    return f"insurance__{s}"


@require_page("Insurance")
def render():
    st.title("🛡️ Insurance Coverage")
    store = current_store()
    try:
        rows = _coverage_rows(store)
        stats = db.coverage_stats(rows)
        metric_row([
            ("Members", stats["total"]),
            ("Covered", stats["total_covered"]),
            ("NHIF", stats["nhif_members"]),
            ("SHA", stats["sha_members"]),
            ("Uncovered", stats["uncovered"]),
        ])

        c1, c2, c3 = st.columns([0.5, 0.25, 0.25])
        search = c1.text_input("Search name, ID or insurance number", key=_k("search"))
        status = c2.selectbox("Status", ["All"] + list(db.INSURANCE_STATUSES), key=_k("status"))
        kind = c3.selectbox("Members", ["All", "student", "staff"], key=_k("kind"),
                            format_func=lambda k: {"All": "All", "student": "Students", "staff": "Staff"}[k])
        shown = db.filter_coverage(rows, search, None if status == "All" else status,
                                   None if kind == "All" else kind)
        if not shown:
            st.info("No members match.")
            return
        st.dataframe(pd.DataFrame([{
            "type": r.kind, "name": r.name, "id": r.identifier,
            "NHIF": r.nhif_number or "", "SHA": r.sha_number or "", "status": r.status,
        } for r in shown]), use_container_width=True, hide_index=True)

        keyed = {(r.kind, r.pk): r for r in shown}
        pick = st.selectbox("Update insurance for", [None] + list(keyed), key=_k("pick"),
                            format_func=lambda key: "-" if key is None else f"{keyed[key].name} ({key[0]})")
        if pick is None:
            return
        row = keyed[pick]
        with st.form(_k(f"edit_{row.kind}_{row.pk}")):
            nhif = st.text_input("NHIF number", value=row.nhif_number or "")
            sha = st.text_input("SHA number", value=row.sha_number or "")
            if st.form_submit_button("Save"):
                try:
                    db.update_insurance(store, row.kind, row.pk, nhif, sha)
                    bump()
                    st.success("Insurance details saved.")
                except ValueError as e:
                    st.error(str(e))
    except Exception as e:
        handle_error(e, "Could not load insurance coverage.")
