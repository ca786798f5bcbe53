# screens/login.py
from __future__ import annotations

import logging

import streamlit as st

from core.auth import AuthError, sign_in
from core.settings import load_settings
from core.ui import hide_sidebar, render_footer_global

log = logging.getLogger(__name__)


def render():
    """Sign-in screen. On success the token and profile go into session_state."""
    hide_sidebar()
    settings = load_settings()
    st.title(f"🏥 {settings.app.name}")
    st.caption("Staff sign in")

    notice = st.session_state.pop("login_notice", None)
    if notice:
        st.info(notice)

    with st.form("login_form"):
        email = st.text_input("Email")
        password = st.text_input("Password", type="password")
        submitted = st.form_submit_button("Sign in", type="primary")

    if submitted:
        try:
            session = sign_in(st.session_state["engine"], email, password, settings.auth.session_ttl_hours)
        except AuthError as e:
            st.error(str(e))
        else:
            st.session_state["auth_token"] = session.token
            st.session_state["user"] = session.profile
            st.rerun()

    render_footer_global()
