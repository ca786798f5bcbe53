# schemas/clinic_schema.py
from __future__ import annotations
from sqlalchemy.engine import Engine
from sqlalchemy import text as sa_text
from core.schema_registry import register


@register("clinic")
def install_schema(engine: Engine) -> None:
    with engine.begin() as conn:
        conn.execute(sa_text("""
            CREATE TABLE IF NOT EXISTS clinic_visits (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                student_id INTEGER NOT NULL,
                visit_date TEXT NOT NULL,
                visit_type TEXT NOT NULL DEFAULT 'routine'
                    CHECK (visit_type IN ('routine', 'sick_visit', 'emergency', 'follow_up', 'screening')),
                symptoms TEXT,
                diagnosis TEXT,
                treatment_given TEXT,
                temperature REAL,
                blood_pressure TEXT,
                pulse_rate INTEGER,
                weight REAL,
                height REAL,
                follow_up_required INTEGER DEFAULT 0,
                follow_up_date TEXT,
                notes TEXT,
                attended_by INTEGER,
                created_at TEXT DEFAULT CURRENT_TIMESTAMP,
                updated_at TEXT DEFAULT CURRENT_TIMESTAMP,
                FOREIGN KEY (student_id) REFERENCES students(id),
                FOREIGN KEY (attended_by) REFERENCES profiles(id)
            )
        """))
        conn.execute(sa_text("CREATE INDEX IF NOT EXISTS idx_clinic_visits_student ON clinic_visits(student_id)"))
        conn.execute(sa_text("CREATE INDEX IF NOT EXISTS idx_clinic_visits_date ON clinic_visits(visit_date)"))

        conn.execute(sa_text("""
            CREATE TABLE IF NOT EXISTS health_service_fees (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                service_name TEXT NOT NULL UNIQUE,
                description TEXT,
                fee_amount REAL NOT NULL CHECK (fee_amount >= 0),
                is_active INTEGER DEFAULT 1,
                created_at TEXT DEFAULT CURRENT_TIMESTAMP,
                updated_at TEXT DEFAULT CURRENT_TIMESTAMP
            )
        """))

        conn.execute(sa_text("""
            CREATE TABLE IF NOT EXISTS fee_payments (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                clinic_visit_id INTEGER NOT NULL,
                service_id INTEGER NOT NULL,
                amount_paid REAL NOT NULL CHECK (amount_paid >= 0),
                payment_method TEXT,
                receipt_number TEXT UNIQUE,
                payment_date TEXT,
                staff_id INTEGER,
                created_at TEXT DEFAULT CURRENT_TIMESTAMP,
                FOREIGN KEY (clinic_visit_id) REFERENCES clinic_visits(id),
                FOREIGN KEY (service_id) REFERENCES health_service_fees(id),
                FOREIGN KEY (staff_id) REFERENCES profiles(id)
            )
        """))
        conn.execute(sa_text("CREATE INDEX IF NOT EXISTS idx_fee_payments_visit ON fee_payments(clinic_visit_id)"))
