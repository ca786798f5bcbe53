# schemas/_seed.py
from __future__ import annotations

import json
import logging
import bcrypt
from sqlalchemy import text as sa_text
from sqlalchemy.engine import Engine
from core.schema_registry import register
from core.settings import load_settings

log = logging.getLogger(__name__)

# ──────────────────────────────────────────────────────────────────────────────
# Reference data
# ──────────────────────────────────────────────────────────────────────────────

ALL_FORMS = ["form_1", "form_2", "form_3", "form_4"]

VACCINATION_REQUIREMENTS = [
    # (vaccine_name, doses_required, is_mandatory, required_for_form_level)
    ("Tetanus Toxoid", 2, True, ALL_FORMS),
    ("HPV", 2, True, ["form_1", "form_2"]),
    ("Measles-Rubella", 1, True, ALL_FORMS),
    ("Hepatitis B", 3, False, ALL_FORMS),
    ("Typhoid", 1, False, ALL_FORMS),
]

HEALTH_SERVICE_FEES = [
    # (service_name, description, fee_amount)
    ("Consultation", "General clinic consultation", 0.0),
    ("Dressing", "Wound cleaning and dressing", 100.0),
    ("Medical Certificate", "Fitness / sick-leave certificate", 200.0),
]


def _seed_admin(conn, email: str, full_name: str, password: str) -> None:
    """Create the first admin only while no admin exists."""
    has_admin = conn.execute(sa_text(
        "SELECT 1 FROM profiles WHERE role = 'admin' AND is_active = 1 LIMIT 1"
    )).fetchone()
    if has_admin:
        return
    pw_hash = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")
    conn.execute(sa_text("""
        INSERT INTO profiles (email, password_hash, full_name, role, is_active)
        VALUES (:e, :h, :n, 'admin', 1)
        ON CONFLICT(email) DO UPDATE SET role = 'admin', is_active = 1
    """), {"e": email.strip().lower(), "h": pw_hash, "n": full_name})
    log.info("Seeded admin account %s", email)


@register("seed")
def seed(engine: Engine) -> None:
    settings = load_settings()
    with engine.begin() as conn:
        _seed_admin(
            conn,
            settings.auth.seed_admin_email,
            settings.auth.seed_admin_name,
            settings.auth.seed_admin_password,
        )

        for name, doses, mandatory, forms in VACCINATION_REQUIREMENTS:
            conn.execute(sa_text("""
                INSERT OR IGNORE INTO vaccination_requirements
                    (vaccine_name, doses_required, is_mandatory, required_for_form_level)
                VALUES (:n, :d, :m, :f)
            """), {"n": name, "d": doses, "m": 1 if mandatory else 0, "f": json.dumps(forms)})

        for name, desc, amount in HEALTH_SERVICE_FEES:
            conn.execute(sa_text("""
                INSERT OR IGNORE INTO health_service_fees (service_name, description, fee_amount)
                VALUES (:n, :d, :a)
            """), {"n": name, "d": desc, "a": amount})
