# screens/reports/exports.py
"""
CSV report downloads. Every field is quoted; missing values are empty strings.
"""
from __future__ import annotations

import csv
from datetime import date
from typing import Dict, List, Optional

import pandas as pd

from core.records import Medication, Profile, form_label
from core.store import DataStore, in_
from screens.clinic.db import list_visits
from screens.immunizations.db import list_immunizations
from screens.medications.db import list_dispensing
from screens.students.db import list_students, students_by_pk

REPORT_KINDS = {
    "students": "students_report",
    "clinic": "clinic_visits_report",
    "immunizations": "immunizations_report",
    "medications": "medications_report",
}


def export_file_name(kind: str, day: date) -> str:
    return f"{REPORT_KINDS[kind]}_{day.isoformat()}.csv"


def _to_csv(columns: List[str], rows: List[List[object]]) -> bytes:
    df = pd.DataFrame(rows, columns=columns).fillna("")
    return df.to_csv(index=False, quoting=csv.QUOTE_ALL, lineterminator="\n").encode("utf-8")


def _s(value: object) -> str:
    return "" if value is None else str(value)


def _staff_names(store: DataStore, pks) -> Dict[int, str]:
    pks = sorted({p for p in pks if p is not None})
    if not pks:
        return {}
    rows = store.select("profiles", {"id": in_(pks)}).unwrap()
    return {p.id: p.display_name for p in Profile.from_rows(rows)}


def students_csv(store: DataStore) -> bytes:
    columns = [
        "Full Name", "Student ID", "Admission Number", "Date of Birth", "Gender",
        "Form Level", "Stream", "Blood Group", "Allergies", "Chronic Conditions",
        "Parent/Guardian", "Guardian Phone", "County", "Sub-County", "Ward", "Village",
    ]
    rows = [
        [s.full_name, _s(s.student_id), _s(s.admission_number), _s(s.date_of_birth), _s(s.gender),
         form_label(s.form_level), _s(s.stream), _s(s.blood_group), _s(s.allergies),
         _s(s.chronic_conditions), _s(s.parent_guardian_name), _s(s.parent_guardian_phone),
         _s(s.county), _s(s.sub_county), _s(s.ward), _s(s.village)]
        for s in list_students(store, active=True)
    ]
    return _to_csv(columns, rows)


def clinic_csv(store: DataStore, start: Optional[date] = None, end: Optional[date] = None) -> bytes:
    columns = [
        "Date", "Student Name", "Student ID", "Visit Type", "Symptoms",
        "Diagnosis", "Treatment", "Attended By", "Temperature", "Blood Pressure",
        "Pulse Rate", "Weight", "Height", "Follow Up Required",
    ]
    visits = list_visits(store, start=start, end=end)
    students = students_by_pk(store, (v.student_id for v in visits))
    staff = _staff_names(store, (v.attended_by for v in visits))
    rows = []
    for v in visits:
        s = students.get(v.student_id)
        rows.append([
            v.visit_date.date().isoformat(), s.full_name if s else "", _s(s.student_id if s else None),
            v.visit_type, _s(v.symptoms), _s(v.diagnosis), _s(v.treatment_given),
            staff.get(v.attended_by, ""), _s(v.temperature), _s(v.blood_pressure),
            _s(v.pulse_rate), _s(v.weight), _s(v.height), "Yes" if v.follow_up_required else "No",
        ])
    return _to_csv(columns, rows)


def immunizations_csv(store: DataStore) -> bytes:
    columns = [
        "Student Name", "Student ID", "Form Level", "Vaccine Name",
        "Date Administered", "Administered By", "Batch Number", "Next Dose Date", "Notes",
    ]
    records = list_immunizations(store)
    students = students_by_pk(store, (i.student_id for i in records))
    rows = []
    for i in records:
        s = students.get(i.student_id)
        rows.append([
            s.full_name if s else "", _s(s.student_id if s else None), form_label(s.form_level if s else None),
            i.vaccine_name, i.date_administered.isoformat(), _s(i.administered_by),
            _s(i.batch_number), _s(i.next_dose_date), _s(i.notes),
        ])
    return _to_csv(columns, rows)


def medications_csv(store: DataStore) -> bytes:
    """Dispensing log joined to medication, visit student and staff."""
    columns = [
        "Date Dispensed", "Student Name", "Student ID", "Medication Name",
        "Generic Name", "Quantity", "Dosage Instructions", "Dispensed By",
    ]
    records = list_dispensing(store)
    med_ids = sorted({d.medication_id for d in records})
    meds = {
        m.id: m for m in Medication.from_rows(
            store.select("medications", {"id": in_(med_ids)}).unwrap() if med_ids else []
        )
    }
    visit_ids = sorted({d.clinic_visit_id for d in records if d.clinic_visit_id})
    visit_rows = store.select("clinic_visits", {"id": in_(visit_ids)}).unwrap() if visit_ids else []
    visit_student = {r["id"]: r["student_id"] for r in visit_rows}
    students = students_by_pk(store, visit_student.values())
    staff = _staff_names(store, (d.dispensed_by for d in records))

    rows = []
    for d in records:
        med = meds.get(d.medication_id)
        s = students.get(visit_student.get(d.clinic_visit_id))
        rows.append([
            d.dispensed_at.date().isoformat(), s.full_name if s else "", _s(s.student_id if s else None),
            med.name if med else "", _s(med.generic_name if med else None), d.quantity_dispensed,
            _s(d.dosage_instructions), staff.get(d.dispensed_by, ""),
        ])
    return _to_csv(columns, rows)


EXPORTERS = {
    "students": students_csv,
    "clinic": clinic_csv,
    "immunizations": immunizations_csv,
    "medications": medications_csv,
}
