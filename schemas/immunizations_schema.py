# schemas/immunizations_schema.py
from __future__ import annotations
from sqlalchemy.engine import Engine
from sqlalchemy import text as sa_text
from core.schema_registry import register


@register("immunizations")
def install_schema(engine: Engine) -> None:
    with engine.begin() as conn:
        conn.execute(sa_text("""
            CREATE TABLE IF NOT EXISTS immunizations (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                student_id INTEGER NOT NULL,
                vaccine_name TEXT NOT NULL,
                date_administered TEXT NOT NULL
                    CONSTRAINT chk_immunizations_date_administered
                    CHECK (date(date_administered) IS NOT NULL),
                administered_by TEXT,
                batch_number TEXT,
                next_dose_date TEXT,
                notes TEXT,
                created_at TEXT DEFAULT CURRENT_TIMESTAMP,
                updated_at TEXT DEFAULT CURRENT_TIMESTAMP,
                FOREIGN KEY (student_id) REFERENCES students(id)
            )
        """))
        conn.execute(sa_text("CREATE INDEX IF NOT EXISTS idx_immunizations_student ON immunizations(student_id)"))

        # required_for_form_level holds a JSON list, e.g. ["form_1", "form_2"]
        conn.execute(sa_text("""
            CREATE TABLE IF NOT EXISTS vaccination_requirements (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                vaccine_name TEXT NOT NULL UNIQUE,
                doses_required INTEGER DEFAULT 1,
                is_mandatory INTEGER DEFAULT 1,
                required_for_form_level TEXT,
                created_at TEXT DEFAULT CURRENT_TIMESTAMP
            )
        """))
