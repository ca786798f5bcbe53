# core/policy.py
"""
Page access and the signed-in identity.

Table-level rules live in core.store; this module only decides which
pages a role may open and builds the per-user DataStore pages query with.
"""
from __future__ import annotations

import functools
from typing import Callable, Dict, Optional, Set

import streamlit as st
from sqlalchemy.engine import Engine

from core.records import Profile
from core.store import ADMIN, STAFF, DataStore

# page name -> roles that may open it
PAGE_ACCESS: Dict[str, Set[str]] = {
    "Dashboard": STAFF,
    "Students": STAFF,
    "Clinic Visits": STAFF,
    "Medications": STAFF,
    "Immunizations": STAFF,
    "Insurance": STAFF,
    "Reports": STAFF,
    "Notifications": STAFF,
    "Profile Settings": STAFF,
    "Data Import": ADMIN,
    "Staff Management": ADMIN,
    "Audit Logs": ADMIN,
}


def current_user() -> Optional[Profile]:
    return st.session_state.get("user")


def user_roles(user: Optional[Profile] = None) -> Set[str]:
    user = user or current_user()
    if user is None:
        return {"public"}
    return {user.role}


def current_store() -> DataStore:
    """DataStore acting as the signed-in user; reused across reruns so reflection happens once."""
    engine: Engine = st.session_state["engine"]
    user = current_user()
    base = st.session_state.get("base_store")
    if base is None or base.engine is not engine:
        base = DataStore(engine)
        st.session_state["base_store"] = base
    if user is None:
        return base.as_user(None, set())
    return base.as_user(user.id, user_roles(user))


def can_view_page(page_name: str, roles: Set[str]) -> bool:
    return bool(roles & PAGE_ACCESS.get(page_name, set()))


def require_page(page_name: str):
    def _wrap(fn: Callable):
        @functools.wraps(fn)
        def _inner(*args, **kwargs):
            if not can_view_page(page_name, user_roles()):
                st.error("Access Denied. You don't have permission to view this page.")
                st.stop()
            return fn(*args, **kwargs)
        return _inner
    return _wrap
