# screens/audit_logs/page.py
from __future__ import annotations

import pandas as pd
import streamlit as st

from core.policy import current_store, require_page
from core.ui import handle_error
from screens.audit_logs import db


def _k(s: str) -> str:
    return f"audit_logs__{s}"


@require_page("Audit Logs")
def render():
    st.title("🧾 Audit Logs")
    store = current_store()
    c1, c2, c3 = st.columns(3)
    table = c1.selectbox("Table", ["All"] + db.audited_tables(), key=_k("table"))
    action = c2.selectbox("Action", ["All"] + list(db.AUDIT_ACTIONS), key=_k("action"))
    limit = c3.number_input("Show last", min_value=10, max_value=2000, value=200, step=50, key=_k("limit"))
    try:
        entries = db.list_audit_logs(store, None if table == "All" else table,
                                     None if action == "All" else action, int(limit))
        if not entries:
            st.info("No audit entries.")
            return
        st.dataframe(pd.DataFrame([{
            "when": e.created_at, "user": e.user_id, "action": e.action,
            "table": e.table_name, "record": e.record_id,
            "changed": ", ".join(db.changed_fields(e)),
        } for e in entries]), use_container_width=True, hide_index=True)

        by_id = {e.id: e for e in entries}
        pick = st.selectbox("Inspect entry", [None] + list(by_id), key=_k("pick"),
                            format_func=lambda pk: "-" if pk is None else
                            f"#{pk} {by_id[pk].action} {by_id[pk].table_name}:{by_id[pk].record_id}")
        if pick is not None:
            diff = db.changed_fields(by_id[pick])
            st.dataframe(pd.DataFrame([
                {"column": col, "old": "" if old is None else str(old), "new": "" if new is None else str(new)}
                for col, (old, new) in diff.items()
            ]), use_container_width=True, hide_index=True)
    except Exception as e:
        handle_error(e, "Could not load audit logs.")
