# core/rbac.py
"""
Staff accounts and their role (admin / nurse).

Role and active-flag changes go through here so the last active admin
can never be demoted or deactivated.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional

from core.records import USER_ROLES, Profile
from core.store import DataStore

__all__ = [
    "list_staff", "get_profile", "active_admins", "set_role", "set_active", "update_profile",
    "PROFILE_FIELDS",
]

log = logging.getLogger(__name__)

# fields a staff member may edit on their own profile
PROFILE_FIELDS = ("full_name", "employee_id", "department", "phone_number", "nhif_number", "sha_number")


def list_staff(store: DataStore, include_inactive: bool = False, role: Optional[str] = None) -> List[Profile]:
    filters: Dict[str, Any] = {}
    if not include_inactive:
        filters["is_active"] = True
    if role:
        filters["role"] = role
    return Profile.from_rows(store.select("profiles", filters, order_by="full_name").unwrap())


def get_profile(store: DataStore, pk: int) -> Optional[Profile]:
    row = store.get("profiles", pk).unwrap()
    return Profile.model_validate(row) if row else None


def active_admins(store: DataStore) -> List[Profile]:
    return list_staff(store, role="admin")


def _guard_last_admin(store: DataStore, pk: int) -> None:
    admins = active_admins(store)
    if len(admins) == 1 and admins[0].id == pk:
        raise ValueError("The last active administrator cannot be demoted or deactivated")


def set_role(store: DataStore, pk: int, role: str) -> Profile:
    if role not in USER_ROLES:
        raise ValueError(f"Unknown role: {role}")
    if role != "admin":
        _guard_last_admin(store, pk)
    rows = store.update("profiles", pk, {"role": role}).unwrap()
    if not rows:
        raise ValueError(f"Staff member {pk} not found")
    log.info("Profile %s role -> %s", pk, role)
    return Profile.model_validate(rows[0])


def set_active(store: DataStore, pk: int, active: bool) -> Profile:
    if not active:
        _guard_last_admin(store, pk)
    rows = store.update("profiles", pk, {"is_active": active}).unwrap()
    if not rows:
        raise ValueError(f"Staff member {pk} not found")
    log.info("Profile %s %s", pk, "activated" if active else "deactivated")
    return Profile.model_validate(rows[0])


def update_profile(store: DataStore, pk: int, changes: Mapping[str, Any]) -> Profile:
    values = {
        k: ((v.strip() or None) if isinstance(v, str) else v)
        for k, v in changes.items() if k in PROFILE_FIELDS
    }
    if not values:
        raise ValueError("Nothing to update")
    rows = store.update("profiles", pk, values).unwrap()
    if not rows:
        raise ValueError("Profile not found or not editable by you")
    return Profile.model_validate(rows[0])
