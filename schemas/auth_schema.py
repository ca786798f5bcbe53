# schemas/auth_schema.py
"""
Staff accounts and sign-in sessions.
- profiles: one row per staff member (admin / nurse), bcrypt password hash
- auth_sessions: opaque tokens issued by core.auth.sign_in
"""
from __future__ import annotations
from sqlalchemy.engine import Engine
from sqlalchemy import text as sa_text
from core.schema_registry import register


@register("auth")
def install_schema(engine: Engine) -> None:
    with engine.begin() as conn:
        conn.execute(sa_text("""
            CREATE TABLE IF NOT EXISTS profiles (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                email TEXT NOT NULL UNIQUE,
                password_hash TEXT,
                full_name TEXT,
                role TEXT NOT NULL DEFAULT 'nurse' CHECK (role IN ('admin', 'nurse')),
                employee_id TEXT UNIQUE,
                department TEXT,
                phone_number TEXT,
                nhif_number TEXT,
                sha_number TEXT,
                is_active INTEGER NOT NULL DEFAULT 1,
                created_at TEXT DEFAULT CURRENT_TIMESTAMP,
                updated_at TEXT DEFAULT CURRENT_TIMESTAMP
            )
        """))
        conn.execute(sa_text("CREATE INDEX IF NOT EXISTS idx_profiles_role ON profiles(role)"))

        conn.execute(sa_text("""
            CREATE TABLE IF NOT EXISTS auth_sessions (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                token TEXT NOT NULL UNIQUE,
                profile_id INTEGER NOT NULL,
                expires_at TEXT NOT NULL,
                created_at TEXT DEFAULT CURRENT_TIMESTAMP,
                FOREIGN KEY (profile_id) REFERENCES profiles(id) ON DELETE CASCADE
            )
        """))
        conn.execute(sa_text("CREATE INDEX IF NOT EXISTS idx_auth_sessions_profile ON auth_sessions(profile_id)"))
