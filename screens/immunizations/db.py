# screens/immunizations/db.py
from __future__ import annotations

import logging
from datetime import date
from typing import Any, Dict, List, Mapping, Optional

from core.records import Immunization, VaccinationRequirement
from core.store import DataStore

log = logging.getLogger(__name__)

IMMUNIZATION_FIELDS = (
    "student_id", "vaccine_name", "date_administered", "administered_by",
    "batch_number", "next_dose_date", "notes",
)


def _as_date(value: Any) -> Optional[date]:
    if value in (None, ""):
        return None
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value).strip())


def record_immunization(store: DataStore, values: Mapping[str, Any]) -> Immunization:
    if not values.get("student_id"):
        raise ValueError("Select a student")
    vaccine = str(values.get("vaccine_name") or "").strip()
    if not vaccine:
        raise ValueError("Vaccine name is required")
    try:
        given = _as_date(values.get("date_administered"))
        next_dose = _as_date(values.get("next_dose_date"))
    except ValueError as e:
        raise ValueError("Dates must be YYYY-MM-DD") from e
    if given is None:
        raise ValueError("Date administered is required")
    if given > date.today():
        raise ValueError("Date administered cannot be in the future")
    if next_dose is not None and next_dose <= given:
        raise ValueError("Next dose date must be after the date administered")

    payload: Dict[str, Any] = {
        k: ((values[k].strip() or None) if isinstance(values[k], str) else values[k])
        for k in IMMUNIZATION_FIELDS if k in values
    }
    payload.update(vaccine_name=vaccine, date_administered=given, next_dose_date=next_dose)
    row = store.insert("immunizations", payload).unwrap()
    log.info("Recorded %s for student %s", vaccine, payload["student_id"])
    return Immunization.model_validate(row)


def list_immunizations(store: DataStore, student_pk: Optional[int] = None) -> List[Immunization]:
    filters = {"student_id": student_pk} if student_pk is not None else None
    rows = store.select("immunizations", filters, order_by="date_administered", desc=True).unwrap()
    return Immunization.from_rows(rows)


def list_requirements(store: DataStore) -> List[VaccinationRequirement]:
    rows = store.select("vaccination_requirements", order_by="vaccine_name").unwrap()
    return VaccinationRequirement.from_rows(rows)


def save_requirement(
    store: DataStore,
    vaccine_name: str,
    doses_required: int = 1,
    is_mandatory: bool = True,
    forms: Optional[List[str]] = None,
    pk: Optional[int] = None,
) -> VaccinationRequirement:
    if not (vaccine_name or "").strip():
        raise ValueError("Vaccine name is required")
    if int(doses_required) < 1:
        raise ValueError("At least one dose is required")
    values = {
        "vaccine_name": vaccine_name.strip(),
        "doses_required": int(doses_required),
        "is_mandatory": is_mandatory,
        "required_for_form_level": list(forms or []),
    }
    if pk is None:
        return VaccinationRequirement.model_validate(store.insert("vaccination_requirements", values).unwrap())
    rows = store.update("vaccination_requirements", pk, values).unwrap()
    return VaccinationRequirement.model_validate(rows[0])


def upcoming_doses(store: DataStore, until: date) -> List[Immunization]:
    today = date.today()
    return sorted(
        (i for i in list_immunizations(store) if i.next_dose_date and today <= i.next_dose_date <= until),
        key=lambda i: i.next_dose_date,
    )
