# core/ui.py
from __future__ import annotations

import datetime
import logging
from typing import Iterable, Optional

import pandas as pd
import streamlit as st

from core.settings import load_settings

log = logging.getLogger(__name__)


def handle_error(e: Exception, user_message: str = "An error occurred."):
    """
    Log the full exception server-side and show a friendly or
    detailed error in Streamlit based on the debug setting.
    """
    settings = load_settings()
    log.error("%s: %s", user_message, e, exc_info=True)

    if settings.debug:
        st.error(f"{user_message}\n\n**Debug Info:**\n```\n{e}\n```")
    else:
        st.error(user_message)


def hide_sidebar():
    st.markdown(
        """
        <style>
            section[data-testid="stSidebar"] {
                display: none;
            }
        </style>
        """,
        unsafe_allow_html=True,
    )


def records_frame(records: Iterable, columns: Optional[list[str]] = None) -> pd.DataFrame:
    """pydantic records -> DataFrame for st.dataframe, optionally column-limited."""
    rows = [r.model_dump() for r in records]
    df = pd.DataFrame(rows)
    if columns and not df.empty:
        df = df[[c for c in columns if c in df.columns]]
    return df


def metric_row(items: list[tuple[str, object]]):
    cols = st.columns(len(items))
    for col, (label, value) in zip(cols, items):
        col.metric(label, value)


def render_footer_global():
    """One line footer on every page."""
    settings = load_settings()
    year = datetime.date.today().year
    st.markdown("---")
    st.caption(f"© {year} • {settings.app.name}")
