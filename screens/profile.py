# screens/profile.py
from __future__ import annotations

import logging

import streamlit as st

from core.auth import AuthError, change_password
from core.cache import bump
from core.policy import current_store, current_user, require_page
from core.rbac import update_profile
from core.ui import handle_error
from screens.notifications.db import contact_admins

log = logging.getLogger(__name__)


def _k(s: str) -> str:
    return f"profile__{s}"


def _render_details(store, user):
    with st.form(_k("details")):
        c1, c2 = st.columns(2)
        full_name = c1.text_input("Full name", value=user.full_name or "")
        employee_id = c2.text_input("Employee ID", value=user.employee_id or "")
        department = c1.text_input("Department", value=user.department or "")
        phone = c2.text_input("Phone number", value=user.phone_number or "")
        nhif = c1.text_input("NHIF number", value=user.nhif_number or "")
        sha = c2.text_input("SHA number", value=user.sha_number or "")
        if not st.form_submit_button("Save profile", type="primary"):
            return
    try:
        updated = update_profile(store, user.id, {
            "full_name": full_name, "employee_id": employee_id, "department": department,
            "phone_number": phone, "nhif_number": nhif, "sha_number": sha,
        })
        st.session_state["user"] = updated
        bump()
        st.success("Profile saved.")
    except ValueError as e:
        st.error(str(e))


def _render_password(user):
    with st.form(_k("password"), clear_on_submit=True):
        current = st.text_input("Current password", type="password")
        new = st.text_input("New password", type="password")
        confirm = st.text_input("Confirm new password", type="password")
        if not st.form_submit_button("Change password"):
            return
    if new != confirm:
        st.error("The new passwords do not match.")
        return
    try:
        change_password(st.session_state["engine"], user.id, current, new)
    except AuthError as e:
        st.error(str(e))
        return
    # every session of this account was revoked, this one included
    st.session_state.pop("auth_token", None)
    st.session_state.pop("user", None)
    st.session_state["login_notice"] = "Password changed. Please sign in again."
    st.rerun()


def _render_contact(store, user):
    with st.form(_k("contact"), clear_on_submit=True):
        subject = st.text_input("Subject")
        message = st.text_area("Message")
        if not st.form_submit_button("Send to administrators"):
            return
    try:
        sent = contact_admins(store, user, subject, message)
        bump()
        st.success(f"Sent to {sent} administrator(s).")
    except ValueError as e:
        st.error(str(e))


@require_page("Profile Settings")
def render():
    user = current_user()
    st.title("👤 Profile Settings")
    st.caption(f"{user.email} · {user.role} · insurance: {user.insurance_status}")
    store = current_store()
    t_prof, t_pw, t_contact = st.tabs(["Profile", "Password", "Contact Admin"])
    try:
        with t_prof:
            _render_details(store, user)
        with t_pw:
            _render_password(user)
        with t_contact:
            _render_contact(store, user)
    except Exception as e:
        handle_error(e, "Could not load your profile.")
