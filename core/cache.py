# core/cache.py
"""
Page-level read caching.

Query modules stay uncached; pages wrap the reads they repeat with
cached(). The cache key carries a per-session data version, and every
write path calls bump(), so a page never shows rows older than its own
last write.
"""
from __future__ import annotations

import functools
from typing import Any, Callable, TypeVar

import streamlit as st

from core.store import DataStore

DATA_VERSION_KEY = "data_version"
DEFAULT_TTL = 120

F = TypeVar("F", bound=Callable[..., Any])


def data_version() -> int:
    return int(st.session_state.get(DATA_VERSION_KEY, 0))


def bump() -> None:
    st.session_state[DATA_VERSION_KEY] = data_version() + 1


def cached(ttl: int = DEFAULT_TTL) -> Callable[[F], F]:
    def deco(fn: F) -> F:
        name = f"{fn.__module__}.{fn.__qualname__}"

        @st.cache_data(ttl=ttl, show_spinner=False)
        def _run(_store: DataStore, fn_name: str, user: Any, roles: tuple, version: int,
                 args: tuple, kwargs: dict) -> Any:
            return fn(_store, *args, **kwargs)

        @functools.wraps(fn)
        def wrapper(store: DataStore, *args, **kwargs):
            # _store is unhashed, so the caller identity is keyed explicitly
            return _run(store, name, store.user_id, tuple(sorted(store.roles)), data_version(), args, kwargs)

        return wrapper  # type: ignore[return-value]

    return deco
