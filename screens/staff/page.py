# screens/staff/page.py
from __future__ import annotations

import logging

import streamlit as st

from core import rbac
from core.auth import MIN_PASSWORD_LENGTH, AuthError, sign_up
from core.cache import bump, cached
from core.policy import current_store, current_user, require_page
from core.records import USER_ROLES
from core.ui import handle_error, records_frame

log = logging.getLogger(__name__)

_list_staff = cached()(rbac.list_staff)


def _k(s: str) -> str:
    return f"staff__{s}"


def _render_create():
    with st.form(_k("create"), clear_on_submit=True):
        c1, c2 = st.columns(2)
        email = c1.text_input("Email*")
        full_name = c2.text_input("Full name")
        password = c1.text_input(f"Temporary password* (min {MIN_PASSWORD_LENGTH})", type="password")
        role = c2.selectbox("Role", USER_ROLES, index=USER_ROLES.index("nurse"))
        employee_id = c1.text_input("Employee ID")
        department = c2.text_input("Department")
        phone = c1.text_input("Phone number")
        submitted = st.form_submit_button("Create account", type="primary")
    if not submitted:
        return
    try:
        profile = sign_up(st.session_state["engine"], email, password, full_name, role,
                          employee_id=employee_id, department=department, phone_number=phone)
        bump()
        st.success(f"Created {profile.role} account for {profile.email}.")
    except AuthError as e:
        st.error(str(e))


def _render_directory(store):
    include_inactive = st.checkbox("Show deactivated accounts", key=_k("inactive"))
    staff = _list_staff(store, include_inactive=include_inactive)
    if not staff:
        st.info("No staff accounts.")
        return
    st.dataframe(records_frame(staff, ["full_name", "email", "role", "employee_id", "department",
                                       "phone_number", "is_active"]),
                 use_container_width=True, hide_index=True)

    me = current_user()
    by_id = {p.id: p for p in staff}
    pick = st.selectbox("Manage account", [None] + list(by_id), key=_k("pick"),
                        format_func=lambda pk: "-" if pk is None else f"{by_id[pk].display_name} ({by_id[pk].email})")
    if pick is None:
        return
    profile = by_id[pick]
    c1, c2 = st.columns(2)
    with c1:
        role = st.selectbox("Role", USER_ROLES, index=USER_ROLES.index(profile.role), key=_k(f"role_{pick}"))
        if st.button("Save role", key=_k(f"role_go_{pick}"), disabled=role == profile.role):
            try:
                rbac.set_role(store, pick, role)
                bump()
                st.success(f"{profile.display_name} is now {role}.")
                st.rerun()
            except ValueError as e:
                st.error(str(e))
    with c2:
        label = "Deactivate" if profile.is_active else "Reactivate"
        if me and me.id == pick and profile.is_active:
            st.caption("You cannot deactivate your own account.")
        elif st.button(label, key=_k(f"active_{pick}")):
            try:
                rbac.set_active(store, pick, not profile.is_active)
                bump()
                st.rerun()
            except ValueError as e:
                st.error(str(e))


@require_page("Staff Management")
def render():
    st.title("👥 Staff Management")
    store = current_store()
    t_dir, t_new = st.tabs(["Directory", "New Account"])
    try:
        with t_dir:
            _render_directory(store)
        with t_new:
            _render_create()
    except Exception as e:
        handle_error(e, "Could not load staff accounts.")
