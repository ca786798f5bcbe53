# screens/logout.py
from __future__ import annotations

import streamlit as st

from core.auth import sign_out

# survive a logout so the next sign-in skips engine setup and schema install
_KEEP = ("engine", "db_initialized", "base_store")


def render():
    sign_out(st.session_state.get("engine"), st.session_state.get("auth_token"))
    for key in list(st.session_state.keys()):
        if key not in _KEEP:
            del st.session_state[key]
    st.session_state["login_notice"] = "You have been logged out."
    st.rerun()
