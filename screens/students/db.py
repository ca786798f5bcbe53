# screens/students/db.py
"""
Student queries shared by every page that shows or changes students.

Reads return core.records models; writes go through the DataStore so the
audit trail and table policies apply. StoreError from unwrap() is left
for the page boundary to report.
"""
from __future__ import annotations

import logging
from datetime import date
from typing import Any, Dict, List, Mapping, Optional

from core.records import BLOOD_GROUPS, FORM_LEVELS, GENDERS, SCHOOL_TERMS, Student, StudentProgression
from core.store import DataStore, in_
from screens.bulk_upload.validator import validate_student_row

log = logging.getLogger(__name__)

# columns the single-record form may set, in display order
STUDENT_FIELDS = (
    "full_name", "student_id", "admission_number", "date_of_birth", "gender",
    "form_level", "stream", "blood_group", "allergies", "chronic_conditions",
    "parent_guardian_name", "parent_guardian_phone", "emergency_contact",
    "county", "sub_county", "ward", "village", "admission_date",
    "nhif_number", "sha_number",
)

NEXT_FORM = {"form_1": "form_2", "form_2": "form_3", "form_3": "form_4"}


def _clean(value: Any) -> Any:
    if isinstance(value, str):
        return value.strip() or None
    return value


def _as_date(value: Any, label: str, defects: List[str]) -> Optional[date]:
    if value in (None, ""):
        return None
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip())
    except ValueError:
        defects.append(f"{label} must be a date (YYYY-MM-DD)")
        return None


def validate_student_form(values: Mapping[str, Any]) -> List[str]:
    """Import-row rules plus the checks the database would otherwise reject."""
    as_text = {k: (v if isinstance(v, str) or v is None else str(v)) for k, v in values.items()}
    defects = validate_student_row(as_text)

    gender = _clean(values.get("gender"))
    if gender and gender not in GENDERS:
        defects.append(f"Gender must be one of: {', '.join(GENDERS)}")
    form_level = _clean(values.get("form_level"))
    if form_level and form_level not in FORM_LEVELS:
        defects.append(f"Form level must be one of: {', '.join(FORM_LEVELS)}")
    blood_group = _clean(values.get("blood_group"))
    if blood_group and blood_group not in BLOOD_GROUPS:
        defects.append(f"Blood group must be one of: {', '.join(BLOOD_GROUPS)}")

    dob = _as_date(values.get("date_of_birth"), "Date of birth", defects)
    if dob and dob > date.today():
        defects.append("Date of birth cannot be in the future")
    _as_date(values.get("admission_date"), "Admission date", defects)
    return defects


def _payload(values: Mapping[str, Any]) -> Dict[str, Any]:
    return {k: _clean(values[k]) for k in STUDENT_FIELDS if k in values}


# ── reads ──────────────────────────────────────────────────────────────────

def list_students(
    store: DataStore,
    *,
    active: Optional[bool] = True,
    form_level: Optional[str] = None,
    search: Optional[str] = None,
) -> List[Student]:
    filters: Dict[str, Any] = {}
    if active is not None:
        filters["is_active"] = active
    if form_level:
        filters["form_level"] = form_level
    rows = store.select("students", filters, order_by="full_name").unwrap()
    students = Student.from_rows(rows)

    term = (search or "").strip().lower()
    if term:
        students = [
            s for s in students
            if term in s.full_name.lower()
            or term in (s.student_id or "").lower()
            or term in (s.admission_number or "")
        ]
    return students


def get_student(store: DataStore, pk: int) -> Optional[Student]:
    row = store.get("students", pk).unwrap()
    return Student.model_validate(row) if row else None


def students_by_pk(store: DataStore, pks) -> Dict[int, Student]:
    pks = sorted({int(p) for p in pks if p is not None})
    if not pks:
        return {}
    rows = store.select("students", {"id": in_(pks)}).unwrap()
    return {s.id: s for s in Student.from_rows(rows)}


def count_students(store: DataStore, active: Optional[bool] = None) -> int:
    filters = {"is_active": active} if active is not None else None
    return store.count("students", filters).unwrap()


def progression_history(store: DataStore, student_pk: int) -> List[StudentProgression]:
    rows = store.select("student_progression", {"student_id": student_pk}, order_by="id", desc=True).unwrap()
    return StudentProgression.from_rows(rows)


# ── writes ─────────────────────────────────────────────────────────────────

def create_student(store: DataStore, values: Mapping[str, Any]) -> Student:
    defects = validate_student_form(values)
    if defects:
        raise ValueError(", ".join(defects))
    payload = _payload(values)
    payload["is_active"] = True
    row = store.insert("students", payload).unwrap()
    log.info("Created student %s", row["id"])
    return Student.model_validate(row)


def update_student(store: DataStore, pk: int, changes: Mapping[str, Any]) -> Student:
    current = get_student(store, pk)
    if current is None:
        raise ValueError(f"Student {pk} not found")
    merged = {**current.model_dump(mode="json"), **dict(changes)}
    defects = validate_student_form(merged)
    if defects:
        raise ValueError(", ".join(defects))
    rows = store.update("students", pk, _payload(changes)).unwrap()
    return Student.model_validate(rows[0])


def set_student_active(store: DataStore, pk: int, active: bool) -> Student:
    rows = store.update("students", pk, {"is_active": active}).unwrap()
    if not rows:
        raise ValueError(f"Student {pk} not found")
    log.info("Student %s %s", pk, "reactivated" if active else "retired")
    return Student.model_validate(rows[0])


def promote_form(
    store: DataStore,
    form_level: str,
    academic_year: str,
    term: str = "term_3",
    today: Optional[date] = None,
) -> int:
    """
    Move every active student in a form up one level and log the move.
    Form 4 students graduate: they are retired instead.
    """
    if form_level not in FORM_LEVELS:
        raise ValueError(f"Unknown form level: {form_level}")
    if term not in SCHOOL_TERMS:
        raise ValueError(f"Unknown term: {term}")
    today = today or date.today()

    promoted = 0
    for student in list_students(store, active=True, form_level=form_level):
        next_form = NEXT_FORM.get(form_level)
        if next_form:
            store.update("students", student.id, {"form_level": next_form}).unwrap()
            note = f"Promoted from {form_level} to {next_form}"
        else:
            store.update("students", student.id, {"is_active": False}).unwrap()
            note = "Graduated"
        store.insert("student_progression", {
            "student_id": student.id,
            "academic_year": academic_year,
            "term": term,
            "form_level": next_form or form_level,
            "stream": student.stream,
            "promoted": True,
            "promotion_date": today,
            "notes": note,
        }).unwrap()
        promoted += 1
    log.info("Promoted %d students from %s", promoted, form_level)
    return promoted
