# core/auth.py
"""
Built-in auth: bcrypt-hashed staff passwords and opaque session tokens.

The token is what the browser session caches (st.session_state["auth_token"]);
pages resolve it back to a Profile on every run through session_user().
"""
from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

import bcrypt
from sqlalchemy import text as sa_text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from core.records import Profile, USER_ROLES

__all__ = [
    "AuthError", "Session", "hash_password", "verify_password",
    "sign_in", "sign_up", "sign_out", "session_user", "change_password",
]

log = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8
_PROFILE_COLUMNS = (
    "id, email, full_name, role, employee_id, department, phone_number, "
    "nhif_number, sha_number, is_active, created_at, updated_at"
)


class AuthError(Exception):
    pass


@dataclass(frozen=True)
class Session:
    token: str
    profile: Profile
    expires_at: datetime


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, pw_hash: Optional[str]) -> bool:
    if not pw_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), pw_hash.encode("utf-8"))
    except ValueError:
        # malformed hash in the table
        return False


def _profile_by_id(conn, profile_id: int) -> Optional[Profile]:
    row = conn.execute(
        sa_text(f"SELECT {_PROFILE_COLUMNS} FROM profiles WHERE id = :id"), {"id": profile_id}
    ).fetchone()
    return Profile.model_validate(dict(row._mapping)) if row else None


def sign_in(engine: Engine, email: str, password: str, ttl_hours: int = 12) -> Session:
    email = (email or "").strip().lower()
    with engine.begin() as conn:
        row = conn.execute(
            sa_text("SELECT id, password_hash, is_active FROM profiles WHERE LOWER(email) = :e"),
            {"e": email},
        ).fetchone()
        if not row or not verify_password(password or "", row[1]):
            log.info("Failed sign-in for %s", email)
            raise AuthError("Invalid email or password")
        if not row[2]:
            raise AuthError("This account has been deactivated. Contact an administrator.")

        now = datetime.now()
        # expires_at is stored as ISO text, so text order is time order
        purged = conn.execute(
            sa_text("DELETE FROM auth_sessions WHERE expires_at <= :now"),
            {"now": now.isoformat(timespec="seconds")},
        ).rowcount
        if purged:
            log.debug("Purged %d expired sessions", purged)

        token = secrets.token_urlsafe(32)
        expires_at = now + timedelta(hours=ttl_hours)
        conn.execute(
            sa_text("INSERT INTO auth_sessions (token, profile_id, expires_at) VALUES (:t, :p, :x)"),
            {"t": token, "p": int(row[0]), "x": expires_at.isoformat(timespec="seconds")},
        )
        profile = _profile_by_id(conn, int(row[0]))
    log.info("Signed in %s", email)
    return Session(token=token, profile=profile, expires_at=expires_at)


def sign_up(
    engine: Engine,
    email: str,
    password: str,
    full_name: str = "",
    role: str = "nurse",
    employee_id: Optional[str] = None,
    department: Optional[str] = None,
    phone_number: Optional[str] = None,
) -> Profile:
    """Create a staff account. The caller decides who may do this."""
    email = (email or "").strip().lower()
    if "@" not in email:
        raise AuthError("A valid email is required")
    if len(password or "") < MIN_PASSWORD_LENGTH:
        raise AuthError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    if role not in USER_ROLES:
        raise AuthError(f"Unknown role: {role}")
    try:
        with engine.begin() as conn:
            res = conn.execute(sa_text("""
                INSERT INTO profiles (email, password_hash, full_name, role, employee_id, department, phone_number)
                VALUES (:e, :h, :n, :r, :eid, :dep, :ph)
            """), {
                "e": email, "h": hash_password(password), "n": full_name.strip() or None, "r": role,
                "eid": (employee_id or "").strip() or None,
                "dep": (department or "").strip() or None,
                "ph": (phone_number or "").strip() or None,
            })
            profile = _profile_by_id(conn, int(res.lastrowid))
    except IntegrityError as e:
        raise AuthError(f"Could not create account: {e.orig}") from e
    log.info("Created %s account %s", role, email)
    return profile


def sign_out(engine: Engine, token: Optional[str]) -> None:
    if not token:
        return
    with engine.begin() as conn:
        conn.execute(sa_text("DELETE FROM auth_sessions WHERE token = :t"), {"t": token})


def session_user(engine: Engine, token: Optional[str]) -> Optional[Profile]:
    """Resolve a session token to its active profile, or None."""
    if not token:
        return None
    with engine.begin() as conn:
        row = conn.execute(
            sa_text("SELECT profile_id, expires_at FROM auth_sessions WHERE token = :t"), {"t": token}
        ).fetchone()
        if not row:
            return None
        if datetime.fromisoformat(row[1]) <= datetime.now():
            conn.execute(sa_text("DELETE FROM auth_sessions WHERE token = :t"), {"t": token})
            return None
        profile = _profile_by_id(conn, int(row[0]))
    if profile is None or not profile.is_active:
        return None
    return profile


def change_password(engine: Engine, profile_id: int, current: str, new: str) -> None:
    if len(new or "") < MIN_PASSWORD_LENGTH:
        raise AuthError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    with engine.begin() as conn:
        row = conn.execute(
            sa_text("SELECT password_hash FROM profiles WHERE id = :id"), {"id": profile_id}
        ).fetchone()
        if not row or not verify_password(current or "", row[0]):
            raise AuthError("Current password is incorrect")
        conn.execute(
            sa_text("UPDATE profiles SET password_hash = :h, updated_at = CURRENT_TIMESTAMP WHERE id = :id"),
            {"h": hash_password(new), "id": profile_id},
        )
        # other browser sessions must sign in again
        conn.execute(sa_text("DELETE FROM auth_sessions WHERE profile_id = :id"), {"id": profile_id})
