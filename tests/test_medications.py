from datetime import date, timedelta

import pytest

from core.records import Medication, Notification
from core.store import StoreError
from screens.medications import db

TODAY = date(2026, 10, 19)


def test_stock_status():
    assert db.stock_status(Medication(name="A", quantity_in_stock=10, minimum_stock_level=10)) == "low-stock"
    assert db.stock_status(Medication(name="A", quantity_in_stock=11, minimum_stock_level=10)) == "in-stock"


def test_expiry_status():
    def med(expiry):
        return Medication(name="A", expiry_date=expiry)

    assert db.expiry_status(med(None), TODAY) == "no-expiry"
    assert db.expiry_status(med(TODAY - timedelta(days=1)), TODAY) == "expired"
    assert db.expiry_status(med(TODAY), TODAY) == "expiring-soon"
    assert db.expiry_status(med(TODAY + timedelta(days=30)), TODAY) == "expiring-soon"
    assert db.expiry_status(med(TODAY + timedelta(days=31)), TODAY) == "ok"
    assert db.expiry_status(med(TODAY + timedelta(days=31)), TODAY, warning_days=60) == "expiring-soon"


def test_alerts_can_raise_two_per_medication():
    meds = [
        Medication(id=1, name="Paracetamol", quantity_in_stock=2, minimum_stock_level=10,
                   expiry_date=TODAY - timedelta(days=2)),
        Medication(id=2, name="ORS", quantity_in_stock=50, minimum_stock_level=10,
                   expiry_date=TODAY + timedelta(days=365)),
    ]
    alerts = db.medication_alerts(meds, TODAY)
    assert [(a.medication.id, a.kind) for a in alerts] == [(1, "low-stock"), (1, "expired")]
    assert alerts[0].title == "Low stock"
    assert "2 units left" in alerts[0].message


def test_validate_medication():
    assert db.validate_medication({"name": "", "quantity_in_stock": -1, "unit_cost": "abc"}) == [
        "Medication name is required",
        "Quantity in stock cannot be negative",
        "Unit cost must be a number",
    ]


def test_dispense_decrements_stock(nurse_store, nurse):
    med = db.add_medication(nurse_store, {"name": "Amoxicillin", "quantity_in_stock": 20, "minimum_stock_level": 5})
    record = db.dispense(nurse_store, med.id, 6, instructions="1x3 for 5 days", dispensed_by=nurse.id)
    assert record.quantity_dispensed == 6
    assert db.get_medication(nurse_store, med.id).quantity_in_stock == 14
    assert [d.id for d in db.list_dispensing(nurse_store, medication_pk=med.id)] == [record.id]


def test_dispense_rejects_bad_quantities(nurse_store):
    med = db.add_medication(nurse_store, {"name": "Ibuprofen", "quantity_in_stock": 3})
    with pytest.raises(ValueError, match="Only 3 units"):
        db.dispense(nurse_store, med.id, 4)
    with pytest.raises(ValueError, match="at least 1"):
        db.dispense(nurse_store, med.id, 0)
    with pytest.raises(ValueError, match="not found"):
        db.dispense(nurse_store, 999, 1)
    assert db.get_medication(nurse_store, med.id).quantity_in_stock == 3


def test_update_medication(nurse_store):
    med = db.add_medication(nurse_store, {"name": "Cetirizine", "quantity_in_stock": 30})
    updated = db.update_medication(nurse_store, med.id, {"minimum_stock_level": 40, "batch_number": " B-77 "})
    assert updated.minimum_stock_level == 40
    assert updated.batch_number == "B-77"
    with pytest.raises(ValueError):
        db.add_medication(nurse_store, {"name": ""})


def test_search(nurse_store):
    db.add_medication(nurse_store, {"name": "Panadol", "generic_name": "Paracetamol"})
    db.add_medication(nurse_store, {"name": "Brufen", "generic_name": "Ibuprofen"})
    assert [m.name for m in db.list_medications(nurse_store, "paracet")] == ["Panadol"]


def test_alert_sweep_notifies_each_admin(service, nurse_store, admin):
    db.add_medication(nurse_store, {"name": "Low", "quantity_in_stock": 1, "minimum_stock_level": 5})
    db.add_medication(nurse_store, {"name": "Fine", "quantity_in_stock": 100, "minimum_stock_level": 5})
    created = db.run_alert_sweep(nurse_store, today=TODAY)
    assert created == 1
    notes = Notification.from_rows(service.select("notifications", {"user_id": admin.id}).unwrap())
    assert [n.title for n in notes] == ["Low stock"]
    assert notes[0].related_table == "medications"


def test_stock_cannot_go_negative_at_the_table(service):
    med = db.add_medication(service, {"name": "Guarded", "quantity_in_stock": 1})
    with pytest.raises(StoreError):
        service.update("medications", med.id, {"quantity_in_stock": -1}).unwrap()


def test_failed_dispense_log_keeps_stock(service, nurse_store):
    med = db.add_medication(nurse_store, {"name": "Metronidazole", "quantity_in_stock": 10})
    # no such clinic visit, the dispensing row is rejected
    with pytest.raises(StoreError):
        db.dispense(nurse_store, med.id, 3, visit_pk=99999)
    assert db.get_medication(nurse_store, med.id).quantity_in_stock == 10
    assert db.list_dispensing(nurse_store, medication_pk=med.id) == []
    updates = service.select("audit_logs", {"table_name": "medications", "action": "UPDATE"}).unwrap()
    assert updates == []


def test_dispense_from_a_stale_read_keeps_other_dispenses(nurse_store, monkeypatch):
    med = db.add_medication(nurse_store, {"name": "Zinc", "quantity_in_stock": 10})
    stale = db.get_medication(nurse_store, med.id)
    db.dispense(nurse_store, med.id, 3)
    assert db.get_medication(nurse_store, med.id).quantity_in_stock == 7

    with monkeypatch.context() as m:
        m.setattr(db, "get_medication", lambda store, pk: stale)
        db.dispense(nurse_store, med.id, 2)
    assert db.get_medication(nurse_store, med.id).quantity_in_stock == 5


def test_stale_read_cannot_overdraw(nurse_store, monkeypatch):
    med = db.add_medication(nurse_store, {"name": "ORS", "quantity_in_stock": 4})
    stale = db.get_medication(nurse_store, med.id)
    db.dispense(nurse_store, med.id, 3)

    with monkeypatch.context() as m:
        m.setattr(db, "get_medication", lambda store, pk: stale)
        with pytest.raises(ValueError, match="changed"):
            db.dispense(nurse_store, med.id, 2)
    assert db.get_medication(nurse_store, med.id).quantity_in_stock == 1
