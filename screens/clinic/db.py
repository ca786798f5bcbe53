# screens/clinic/db.py
from __future__ import annotations

import logging
import re
from datetime import date, datetime, time, timedelta
from typing import Any, Dict, List, Mapping, Optional

from core.records import VISIT_TYPES, ClinicVisit, FeePayment, HealthServiceFee
from core.store import DataStore, eq, gte, lte
from screens.students.db import get_student

log = logging.getLogger(__name__)

# (low, high) inclusive
VITAL_RANGES = {
    "temperature": (30.0, 45.0, "Temperature must be between 30 and 45 °C"),
    "pulse_rate": (20, 250, "Pulse rate must be between 20 and 250 bpm"),
    "weight": (0.0, 300.0, "Weight must be between 0 and 300 kg"),
    "height": (0.0, 250.0, "Height must be between 0 and 250 cm"),
}
BP_RE = re.compile(r"^\s*(\d{2,3})\s*/\s*(\d{2,3})\s*$")

VISIT_FIELDS = (
    "student_id", "visit_date", "visit_type", "symptoms", "diagnosis", "treatment_given",
    "temperature", "blood_pressure", "pulse_rate", "weight", "height",
    "follow_up_required", "follow_up_date", "notes",
)
PAYMENT_METHODS = ("cash", "mpesa", "nhif", "sha", "waived")


def validate_vitals(values: Mapping[str, Any]) -> List[str]:
    defects: List[str] = []
    for key, (low, high, message) in VITAL_RANGES.items():
        raw = values.get(key)
        if raw in (None, ""):
            continue
        try:
            number = float(raw)
        except (TypeError, ValueError):
            defects.append(message)
            continue
        if not low <= number <= high:
            defects.append(message)

    bp = values.get("blood_pressure")
    if bp not in (None, ""):
        m = BP_RE.match(str(bp))
        if not m or int(m.group(1)) <= int(m.group(2)):
            defects.append("Blood pressure must look like 120/80 (systolic/diastolic)")
    return defects


def _visit_payload(values: Mapping[str, Any]) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for key in VISIT_FIELDS:
        if key not in values:
            continue
        value = values[key]
        if isinstance(value, str):
            value = value.strip() or None
        out[key] = value
    visit_date = out.get("visit_date")
    if isinstance(visit_date, date) and not isinstance(visit_date, datetime):
        out["visit_date"] = datetime.combine(visit_date, time.min)
    if out.get("blood_pressure"):
        m = BP_RE.match(out["blood_pressure"])
        if m:
            out["blood_pressure"] = f"{m.group(1)}/{m.group(2)}"
    if "follow_up_required" in out and not out["follow_up_required"]:
        out["follow_up_date"] = None
    return out


def log_visit(store: DataStore, values: Mapping[str, Any], attended_by: Optional[int] = None) -> ClinicVisit:
    student_pk = values.get("student_id")
    student = get_student(store, student_pk) if student_pk else None
    if student is None:
        raise ValueError("Select a student for the visit")
    if not student.is_active:
        raise ValueError(f"{student.full_name} is no longer active")

    defects = validate_vitals(values)
    visit_type = values.get("visit_type") or "routine"
    if visit_type not in VISIT_TYPES:
        defects.append(f"Unknown visit type: {visit_type}")
    if values.get("follow_up_required") and not values.get("follow_up_date"):
        defects.append("Follow-up date is required when a follow-up is needed")
    if defects:
        raise ValueError(", ".join(defects))

    payload = _visit_payload(values)
    payload["visit_type"] = visit_type
    payload.setdefault("visit_date", datetime.now())
    payload["attended_by"] = attended_by
    row = store.insert("clinic_visits", payload).unwrap()
    log.info("Logged %s visit %s for student %s", visit_type, row["id"], student_pk)
    return ClinicVisit.model_validate(row)


def update_visit(store: DataStore, pk: int, changes: Mapping[str, Any]) -> ClinicVisit:
    defects = validate_vitals(changes)
    if "visit_type" in changes and changes["visit_type"] not in VISIT_TYPES:
        defects.append(f"Unknown visit type: {changes['visit_type']}")
    if defects:
        raise ValueError(", ".join(defects))
    payload = _visit_payload(changes)
    payload.pop("student_id", None)
    rows = store.update("clinic_visits", pk, payload).unwrap()
    if not rows:
        raise ValueError(f"Visit {pk} not found")
    return ClinicVisit.model_validate(rows[0])


def get_visit(store: DataStore, pk: int) -> Optional[ClinicVisit]:
    row = store.get("clinic_visits", pk).unwrap()
    return ClinicVisit.model_validate(row) if row else None


def _day_start(d: date) -> datetime:
    return datetime.combine(d, time.min)


def list_visits(
    store: DataStore,
    *,
    student_pk: Optional[int] = None,
    start: Optional[date] = None,
    end: Optional[date] = None,
    visit_type: Optional[str] = None,
    limit: Optional[int] = None,
) -> List[ClinicVisit]:
    """Newest first. start/end are inclusive calendar days."""
    filters: Dict[str, Any] = {}
    if student_pk is not None:
        filters["student_id"] = student_pk
    if visit_type:
        filters["visit_type"] = eq(visit_type)
    rows = store.select("clinic_visits", filters, order_by="visit_date", desc=True).unwrap()
    visits = ClinicVisit.from_rows(rows)
    # visit_date is compared as a datetime, the stored text format may vary
    if start is not None:
        visits = [v for v in visits if v.visit_date >= _day_start(start)]
    if end is not None:
        visits = [v for v in visits if v.visit_date < _day_start(end + timedelta(days=1))]
    return visits[:limit] if limit else visits


def count_visits_between(store: DataStore, start: date, end: date, visit_type: Optional[str] = None) -> int:
    return len(list_visits(store, start=start, end=end, visit_type=visit_type))


def follow_ups_due(store: DataStore, on_or_before: Optional[date] = None) -> List[ClinicVisit]:
    on_or_before = on_or_before or date.today()
    rows = store.select(
        "clinic_visits",
        {"follow_up_required": True, "follow_up_date": lte(on_or_before)},
        order_by="follow_up_date",
    ).unwrap()
    return ClinicVisit.from_rows(rows)


# ── fees ───────────────────────────────────────────────────────────────────

def list_fees(store: DataStore, active_only: bool = True) -> List[HealthServiceFee]:
    filters = {"is_active": True} if active_only else None
    rows = store.select("health_service_fees", filters, order_by="service_name").unwrap()
    return HealthServiceFee.from_rows(rows)


def save_fee(store: DataStore, service_name: str, fee_amount: float, description: Optional[str] = None,
             pk: Optional[int] = None, is_active: bool = True) -> HealthServiceFee:
    if not (service_name or "").strip():
        raise ValueError("Service name is required")
    if fee_amount is None or float(fee_amount) < 0:
        raise ValueError("Fee amount cannot be negative")
    values = {
        "service_name": service_name.strip(),
        "fee_amount": float(fee_amount),
        "description": (description or "").strip() or None,
        "is_active": is_active,
    }
    if pk is None:
        return HealthServiceFee.model_validate(store.insert("health_service_fees", values).unwrap())
    rows = store.update("health_service_fees", pk, values).unwrap()
    return HealthServiceFee.model_validate(rows[0])


def record_payment(
    store: DataStore,
    visit_pk: int,
    service_pk: int,
    amount_paid: float,
    payment_method: Optional[str] = None,
    receipt_number: Optional[str] = None,
    staff_id: Optional[int] = None,
    payment_date: Optional[date] = None,
) -> FeePayment:
    if amount_paid is None or float(amount_paid) < 0:
        raise ValueError("Amount paid cannot be negative")
    if payment_method and payment_method not in PAYMENT_METHODS:
        raise ValueError(f"Payment method must be one of: {', '.join(PAYMENT_METHODS)}")
    row = store.insert("fee_payments", {
        "clinic_visit_id": visit_pk,
        "service_id": service_pk,
        "amount_paid": float(amount_paid),
        "payment_method": payment_method,
        "receipt_number": (receipt_number or "").strip() or None,
        "payment_date": payment_date or date.today(),
        "staff_id": staff_id,
    }).unwrap()
    return FeePayment.model_validate(row)


def list_payments(store: DataStore, visit_pk: Optional[int] = None, since: Optional[date] = None) -> List[FeePayment]:
    filters: Dict[str, Any] = {}
    if visit_pk is not None:
        filters["clinic_visit_id"] = visit_pk
    if since is not None:
        filters["payment_date"] = gte(since)
    rows = store.select("fee_payments", filters, order_by="id", desc=True).unwrap()
    return FeePayment.from_rows(rows)
