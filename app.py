# app.py
from __future__ import annotations

import logging

import streamlit as st

from core.auth import session_user
from core.db import get_engine, init_db
from core.nav_registry import DEFAULT_ROUTE_KEY, SECTIONS
from core.policy import can_view_page, current_store, user_roles
from core.settings import load_settings
from core.ui import render_footer_global
from screens.login import render as login_render
from screens.logout import render as logout_render
from screens.notifications.db import unread_count

log = logging.getLogger(__name__)


def _configure_logging(level: str) -> None:
    # streamlit reruns this script; only the first call installs handlers
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _ensure_engine():
    if "engine" not in st.session_state:
        settings = load_settings()
        st.session_state["engine"] = get_engine(settings.db.url)
    return st.session_state["engine"]


def _resolve_user(engine):
    """Re-check the cached session token on every run; drop it if it went stale."""
    token = st.session_state.get("auth_token")
    user = session_user(engine, token)
    if user is None:
        if token:
            log.info("Session token expired or revoked")
        st.session_state.pop("auth_token", None)
        st.session_state.pop("user", None)
        return None
    st.session_state["user"] = user
    return user


def _build_pages(roles: set[str]) -> dict[str, list]:
    nav: dict[str, list] = {}
    for section in SECTIONS:
        pages = [
            st.Page(
                r.render,
                title=r.label,
                icon=r.icon,
                url_path=r.key,
                default=r.key == DEFAULT_ROUTE_KEY,
            )
            for r in section.routes
            if can_view_page(r.policy_page_key, roles)
        ]
        if pages:
            nav[section.title] = pages
    return nav


def main():
    settings = load_settings()
    _configure_logging(settings.logging.level)
    st.set_page_config(page_title=settings.app.name, page_icon="🏥", layout="wide")

    engine = _ensure_engine()

    # Run database initialization ONCE per session.
    if "db_initialized" not in st.session_state:
        try:
            init_db(engine)
        except Exception as e:
            log.error("Schema initialization failed", exc_info=True)
            st.error("Database schema initialization failed. See details below.")
            with st.expander("Diagnostics"):
                st.exception(e)
            st.stop()
        st.session_state["db_initialized"] = True

    user = _resolve_user(engine)
    if user is None:
        login_render()
        return

    roles = user_roles(user)
    left, right = st.columns([0.75, 0.25])
    with left:
        unread = unread_count(current_store())
        bell = f" · 🔔 {unread}" if unread else ""
        st.caption(f"Signed in as **{user.display_name}** · _{user.role}_{bell}")
    with right:
        if st.button("Logout", key="logout_top"):
            logout_render()

    nav = _build_pages(roles)
    if not nav:
        st.error("No pages available for your role.")
    else:
        st.navigation(nav, position="sidebar").run()

    render_footer_global()


if __name__ == "__main__":
    main()
