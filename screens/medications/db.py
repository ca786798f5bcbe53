# screens/medications/db.py
"""
Medication inventory: stock, expiry, dispensing and the alert sweep.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Mapping, Optional

from core.records import Medication, MedicationDispensing, Profile
from core.store import DataStore, gte, incr

log = logging.getLogger(__name__)

DEFAULT_WARNING_DAYS = 30
MEDICATION_FORMS = ("tablet", "capsule", "syrup", "injection", "cream", "drops", "inhaler", "other")
MEDICATION_FIELDS = (
    "name", "generic_name", "dosage", "form", "manufacturer", "supplier", "batch_number",
    "quantity_in_stock", "minimum_stock_level", "unit_cost", "expiry_date",
)


def stock_status(med: Medication) -> str:
    return "low-stock" if med.quantity_in_stock <= med.minimum_stock_level else "in-stock"


def expiry_status(med: Medication, today: Optional[date] = None, warning_days: int = DEFAULT_WARNING_DAYS) -> str:
    if med.expiry_date is None:
        return "no-expiry"
    today = today or date.today()
    if med.expiry_date < today:
        return "expired"
    if med.expiry_date <= today + timedelta(days=warning_days):
        return "expiring-soon"
    return "ok"


@dataclass(frozen=True)
class MedicationAlert:
    medication: Medication
    kind: str  # low-stock | expired | expiring-soon

    @property
    def title(self) -> str:
        return {
            "low-stock": "Low stock",
            "expired": "Medication expired",
            "expiring-soon": "Medication expiring soon",
        }[self.kind]

    @property
    def message(self) -> str:
        med = self.medication
        if self.kind == "low-stock":
            return (f"{med.name} has {med.quantity_in_stock} units left "
                    f"(minimum {med.minimum_stock_level}).")
        if self.kind == "expired":
            return f"{med.name} (batch {med.batch_number or '-'}) expired on {med.expiry_date}."
        return f"{med.name} (batch {med.batch_number or '-'}) expires on {med.expiry_date}."


def medication_alerts(
    meds: List[Medication], today: Optional[date] = None, warning_days: int = DEFAULT_WARNING_DAYS
) -> List[MedicationAlert]:
    alerts: List[MedicationAlert] = []
    for med in meds:
        if stock_status(med) == "low-stock":
            alerts.append(MedicationAlert(med, "low-stock"))
        exp = expiry_status(med, today, warning_days)
        if exp in ("expired", "expiring-soon"):
            alerts.append(MedicationAlert(med, exp))
    return alerts


def validate_medication(values: Mapping[str, Any]) -> List[str]:
    defects: List[str] = []
    if not str(values.get("name") or "").strip():
        defects.append("Medication name is required")
    for key, label in (("quantity_in_stock", "Quantity in stock"), ("minimum_stock_level", "Minimum stock level")):
        raw = values.get(key)
        if raw in (None, ""):
            continue
        try:
            if int(raw) < 0:
                defects.append(f"{label} cannot be negative")
        except (TypeError, ValueError):
            defects.append(f"{label} must be a whole number")
    cost = values.get("unit_cost")
    if cost not in (None, ""):
        try:
            if float(cost) < 0:
                defects.append("Unit cost cannot be negative")
        except (TypeError, ValueError):
            defects.append("Unit cost must be a number")
    return defects


def _payload(values: Mapping[str, Any]) -> Dict[str, Any]:
    out = {}
    for key in MEDICATION_FIELDS:
        if key in values:
            value = values[key]
            out[key] = (value.strip() or None) if isinstance(value, str) else value
    return out


# ── reads ──────────────────────────────────────────────────────────────────

def list_medications(store: DataStore, search: Optional[str] = None) -> List[Medication]:
    meds = Medication.from_rows(store.select("medications", order_by="name").unwrap())
    term = (search or "").strip().lower()
    if term:
        meds = [m for m in meds if term in m.name.lower() or term in (m.generic_name or "").lower()]
    return meds


def get_medication(store: DataStore, pk: int) -> Optional[Medication]:
    row = store.get("medications", pk).unwrap()
    return Medication.model_validate(row) if row else None


def list_dispensing(store: DataStore, medication_pk: Optional[int] = None,
                    visit_pk: Optional[int] = None) -> List[MedicationDispensing]:
    filters: Dict[str, Any] = {}
    if medication_pk is not None:
        filters["medication_id"] = medication_pk
    if visit_pk is not None:
        filters["clinic_visit_id"] = visit_pk
    rows = store.select("medication_dispensing", filters, order_by="dispensed_at", desc=True).unwrap()
    return MedicationDispensing.from_rows(rows)


# ── writes ─────────────────────────────────────────────────────────────────

def add_medication(store: DataStore, values: Mapping[str, Any]) -> Medication:
    defects = validate_medication(values)
    if defects:
        raise ValueError(", ".join(defects))
    row = store.insert("medications", _payload(values)).unwrap()
    log.info("Added medication %s (%s)", row["id"], row["name"])
    return Medication.model_validate(row)


def update_medication(store: DataStore, pk: int, changes: Mapping[str, Any]) -> Medication:
    current = get_medication(store, pk)
    if current is None:
        raise ValueError(f"Medication {pk} not found")
    defects = validate_medication({**current.model_dump(), **dict(changes)})
    if defects:
        raise ValueError(", ".join(defects))
    rows = store.update("medications", pk, _payload(changes)).unwrap()
    return Medication.model_validate(rows[0])


def dispense(
    store: DataStore,
    medication_pk: int,
    quantity: int,
    visit_pk: Optional[int] = None,
    instructions: Optional[str] = None,
    dispensed_by: Optional[int] = None,
) -> MedicationDispensing:
    """Take stock out and log who got it. Never lets stock go below zero."""
    quantity = int(quantity)
    if quantity <= 0:
        raise ValueError("Quantity must be at least 1")
    med = get_medication(store, medication_pk)
    if med is None:
        raise ValueError(f"Medication {medication_pk} not found")
    if quantity > med.quantity_in_stock:
        raise ValueError(
            f"Only {med.quantity_in_stock} units of {med.name} in stock; cannot dispense {quantity}"
        )

    # decrement and log commit together; the decrement is relative to the
    # stored value so a stale read above cannot overwrite another dispense
    with store.transaction() as tx:
        updated = tx.update(
            "medications",
            {"id": medication_pk, "quantity_in_stock": gte(quantity)},
            {"quantity_in_stock": incr(-quantity)},
        ).unwrap()
        if not updated:
            raise ValueError(f"Stock of {med.name} changed; reload and try again")

        row = tx.insert("medication_dispensing", {
            "medication_id": medication_pk,
            "clinic_visit_id": visit_pk,
            "quantity_dispensed": quantity,
            "dosage_instructions": (instructions or "").strip() or None,
            "dispensed_by": dispensed_by,
            "dispensed_at": datetime.now(),
        }).unwrap()
    log.info("Dispensed %d x %s", quantity, med.name)
    return MedicationDispensing.model_validate(row)


def run_alert_sweep(
    store: DataStore, today: Optional[date] = None, warning_days: int = DEFAULT_WARNING_DAYS
) -> int:
    """One notification per admin per alert. Returns how many were created."""
    alerts = medication_alerts(list_medications(store), today, warning_days)
    if not alerts:
        return 0
    admins = Profile.from_rows(
        store.select("profiles", {"role": "admin", "is_active": True}).unwrap()
    )
    created = 0
    for alert in alerts:
        for admin in admins:
            store.insert("notifications", {
                "user_id": admin.id,
                "title": alert.title,
                "message": alert.message,
                "type": "warning" if alert.kind != "expired" else "error",
                "related_table": "medications",
                "related_id": alert.medication.id,
            }).unwrap()
            created += 1
    log.info("Medication alert sweep: %d alerts, %d notifications", len(alerts), created)
    return created
