# screens/notifications/page.py
from __future__ import annotations

import streamlit as st

from core.cache import bump
from core.policy import current_store, require_page
from core.ui import handle_error
from screens.notifications import db

_ICONS = {"info": "ℹ️", "success": "✅", "warning": "⚠️", "error": "⛔"}


def _k(s: str) -> str:
    return f"notifications__{s}"


@require_page("Notifications")
def render():
    st.title("🔔 Notifications")
    store = current_store()
    try:
        unread = db.unread_count(store)
        c1, c2 = st.columns([0.7, 0.3])
        unread_only = c1.toggle("Unread only", key=_k("unread_only"))
        if c2.button(f"Mark all read ({unread})", disabled=unread == 0, key=_k("all_read")):
            db.mark_all_read(store)
            bump()
            st.rerun()

        items = db.my_notifications(store, unread_only=unread_only, limit=100)
        if not items:
            st.info("Nothing here.")
            return
        for n in items:
            with st.container(border=True):
                head, act1, act2 = st.columns([0.7, 0.15, 0.15])
                weight = "**" if not n.is_read else ""
                head.markdown(f"{_ICONS.get(n.type or 'info', '')} {weight}{n.title}{weight}")
                head.caption(f"{n.created_at or ''}")
                head.write(n.message)
                if not n.is_read and act1.button("Read", key=_k(f"read_{n.id}")):
                    db.mark_read(store, n.id)
                    bump()
                    st.rerun()
                if act2.button("Delete", key=_k(f"del_{n.id}")):
                    db.delete_notification(store, n.id)
                    bump()
                    st.rerun()
    except Exception as e:
        handle_error(e, "Could not load notifications.")
