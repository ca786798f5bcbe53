# schemas/medications_schema.py
from __future__ import annotations
from sqlalchemy.engine import Engine
from sqlalchemy import text as sa_text
from core.schema_registry import register


@register("medications")
def install_schema(engine: Engine) -> None:
    with engine.begin() as conn:
        conn.execute(sa_text("""
            CREATE TABLE IF NOT EXISTS medications (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL,
                generic_name TEXT,
                dosage TEXT,
                form TEXT,
                manufacturer TEXT,
                supplier TEXT,
                batch_number TEXT,
                quantity_in_stock INTEGER NOT NULL DEFAULT 0 CHECK (quantity_in_stock >= 0),
                minimum_stock_level INTEGER NOT NULL DEFAULT 10 CHECK (minimum_stock_level >= 0),
                unit_cost REAL,
                expiry_date TEXT
                    CONSTRAINT chk_medications_expiry_date
                    CHECK (expiry_date IS NULL OR date(expiry_date) IS NOT NULL),
                created_at TEXT DEFAULT CURRENT_TIMESTAMP,
                updated_at TEXT DEFAULT CURRENT_TIMESTAMP
            )
        """))
        conn.execute(sa_text("CREATE INDEX IF NOT EXISTS idx_medications_name ON medications(name)"))

        conn.execute(sa_text("""
            CREATE TABLE IF NOT EXISTS medication_dispensing (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                medication_id INTEGER NOT NULL,
                clinic_visit_id INTEGER,
                quantity_dispensed INTEGER NOT NULL CHECK (quantity_dispensed > 0),
                dosage_instructions TEXT,
                dispensed_by INTEGER,
                dispensed_at TEXT NOT NULL,
                FOREIGN KEY (medication_id) REFERENCES medications(id),
                FOREIGN KEY (clinic_visit_id) REFERENCES clinic_visits(id),
                FOREIGN KEY (dispensed_by) REFERENCES profiles(id)
            )
        """))
        conn.execute(sa_text("CREATE INDEX IF NOT EXISTS idx_dispensing_medication ON medication_dispensing(medication_id)"))
        conn.execute(sa_text("CREATE INDEX IF NOT EXISTS idx_dispensing_visit ON medication_dispensing(clinic_visit_id)"))
