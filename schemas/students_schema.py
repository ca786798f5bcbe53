# schemas/students_schema.py
"""
Student Health Records Schema
- students: the persisted Student Record (never hard-deleted, retired via is_active)
- student_progression: form-level promotion history
- medical_documents: files attached to a student
"""
from __future__ import annotations
from sqlalchemy.engine import Engine
from sqlalchemy import text as sa_text
from core.schema_registry import register


@register("students")
def install_schema(engine: Engine) -> None:
    """
    Installs all student-related tables.
    """
    with engine.begin() as conn:
        # 1. students
        conn.execute(sa_text("""
            CREATE TABLE IF NOT EXISTS students (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                full_name TEXT NOT NULL,
                student_id TEXT UNIQUE,
                admission_number TEXT UNIQUE,
                date_of_birth TEXT
                    CONSTRAINT chk_students_date_of_birth
                    CHECK (date_of_birth IS NULL OR date(date_of_birth) IS NOT NULL),
                gender TEXT,
                form_level TEXT
                    CONSTRAINT chk_students_form_level
                    CHECK (form_level IS NULL OR form_level IN ('form_1', 'form_2', 'form_3', 'form_4')),
                stream TEXT,
                blood_group TEXT
                    CONSTRAINT chk_students_blood_group
                    CHECK (blood_group IS NULL OR blood_group IN ('A+', 'A-', 'B+', 'B-', 'AB+', 'AB-', 'O+', 'O-')),
                allergies TEXT,
                chronic_conditions TEXT,
                parent_guardian_name TEXT,
                parent_guardian_phone TEXT,
                emergency_contact TEXT,
                county TEXT,
                sub_county TEXT,
                ward TEXT,
                village TEXT,
                admission_date TEXT
                    CONSTRAINT chk_students_admission_date
                    CHECK (admission_date IS NULL OR date(admission_date) IS NOT NULL),
                nhif_number TEXT,
                sha_number TEXT,
                is_active INTEGER NOT NULL DEFAULT 1,
                created_at TEXT DEFAULT CURRENT_TIMESTAMP,
                updated_at TEXT DEFAULT CURRENT_TIMESTAMP
            )
        """))
        conn.execute(sa_text("CREATE INDEX IF NOT EXISTS idx_students_full_name ON students(full_name)"))
        conn.execute(sa_text("CREATE INDEX IF NOT EXISTS idx_students_form_level ON students(form_level)"))
        conn.execute(sa_text("CREATE INDEX IF NOT EXISTS idx_students_active ON students(is_active)"))

        # 2. student_progression
        conn.execute(sa_text("""
            CREATE TABLE IF NOT EXISTS student_progression (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                student_id INTEGER NOT NULL,
                academic_year TEXT NOT NULL,
                term TEXT NOT NULL CHECK (term IN ('term_1', 'term_2', 'term_3')),
                form_level TEXT NOT NULL,
                stream TEXT,
                promoted INTEGER DEFAULT 0,
                promotion_date TEXT,
                notes TEXT,
                created_at TEXT DEFAULT CURRENT_TIMESTAMP,
                FOREIGN KEY (student_id) REFERENCES students(id)
            )
        """))
        conn.execute(sa_text("CREATE INDEX IF NOT EXISTS idx_student_progression_student ON student_progression(student_id)"))

        # 3. medical_documents
        conn.execute(sa_text("""
            CREATE TABLE IF NOT EXISTS medical_documents (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                student_id INTEGER NOT NULL,
                file_name TEXT NOT NULL,
                storage_path TEXT NOT NULL UNIQUE,
                content_type TEXT,
                size_bytes INTEGER,
                description TEXT,
                uploaded_by INTEGER,
                created_at TEXT DEFAULT CURRENT_TIMESTAMP,
                FOREIGN KEY (student_id) REFERENCES students(id),
                FOREIGN KEY (uploaded_by) REFERENCES profiles(id)
            )
        """))
        conn.execute(sa_text("CREATE INDEX IF NOT EXISTS idx_medical_documents_student ON medical_documents(student_id)"))
