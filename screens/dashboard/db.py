# screens/dashboard/db.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional

from core.records import Immunization, Medication, Student
from core.store import DataStore
from screens.clinic.db import list_visits
from screens.medications.db import DEFAULT_WARNING_DAYS, medication_alerts
from screens.reports.analytics import students_with


@dataclass(frozen=True)
class HealthOverview:
    total_students: int
    active_students: int
    visits_today: int
    emergency_visits_this_month: int
    immunization_coverage: float
    medication_alerts: int
    insurance_coverage: int
    chronic_conditions: int


def health_overview(
    store: DataStore, today: Optional[date] = None, warning_days: int = DEFAULT_WARNING_DAYS
) -> HealthOverview:
    today = today or date.today()
    students = Student.from_rows(store.select("students").unwrap())
    active = [s for s in students if s.is_active]
    active_ids = {s.id for s in active}

    visits_today = len(list_visits(store, start=today, end=today))
    month_start = today.replace(day=1)
    emergencies = len(list_visits(store, start=month_start, end=today, visit_type="emergency"))

    immunized = {
        i.student_id for i in Immunization.from_rows(store.select("immunizations").unwrap())
        if i.student_id in active_ids
    }
    meds = Medication.from_rows(store.select("medications").unwrap())
    # one medication can raise two alerts, count medications
    flagged = {a.medication.id for a in medication_alerts(meds, today, warning_days)}
    insured = [s for s in active if s.nhif_number or s.sha_number]

    n = len(active)
    return HealthOverview(
        total_students=len(students),
        active_students=n,
        visits_today=visits_today,
        emergency_visits_this_month=emergencies,
        immunization_coverage=(len(immunized) / n * 100) if n else 0.0,
        medication_alerts=len(flagged),
        insurance_coverage=round(len(insured) / n * 100) if n else 0,
        chronic_conditions=students_with(active, "chronic_conditions"),
    )
