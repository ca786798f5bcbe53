import pytest

from core.records import AuditLog
from core.store import DataStore, StoreError, gte, ilike, in_, incr


def test_insert_returns_stored_row_with_defaults(service):
    row = service.insert("students", {"full_name": "Ann"}).unwrap()
    assert row["id"] > 0
    assert row["is_active"] == 1
    assert row["created_at"]


def test_unique_violation_carries_backend_message(service, make_student):
    make_student(student_id="DUP001")
    res = service.insert("students", {"full_name": "Other", "student_id": "DUP001"})
    assert not res.ok
    assert res.error.code == "unique_violation"
    assert "UNIQUE constraint failed" in res.error.message
    with pytest.raises(StoreError):
        res.unwrap()


def test_check_violation(service):
    res = service.insert("students", {"full_name": "Ann", "form_level": "form_9"})
    assert res.error.code == "check_violation"


def test_unknown_table(service):
    res = service.select("no_such_table")
    assert res.error.code == "not_found"


def test_filter_operators(service, make_student):
    a = make_student(full_name="Achieng Otieno")
    b = make_student(full_name="Brian Kip")
    make_student(full_name="Chebet Ruto")
    ids = [r["id"] for r in service.select("students", {"id": in_([a["id"], b["id"]])}).unwrap()]
    assert ids == [a["id"], b["id"]]
    assert len(service.select("students", {"id": gte(b["id"])}).unwrap()) == 2
    assert [r["full_name"] for r in service.select("students", {"full_name": ilike("%KIP%")}).unwrap()] == ["Brian Kip"]


def test_order_and_limit(service, make_student):
    for name in ("Zawadi", "Amani", "Baraka"):
        make_student(full_name=name)
    rows = service.select("students", order_by="full_name", desc=True, limit=2).unwrap()
    assert [r["full_name"] for r in rows] == ["Zawadi", "Baraka"]


def test_count_and_get(service, make_student):
    s = make_student()
    assert service.count("students").unwrap() == 1
    assert service.get("students", s["id"]).unwrap()["full_name"] == s["full_name"]
    assert service.get("students", 999).unwrap() is None


def test_update_returns_rows_and_writes_audit(admin_store, make_student, service):
    s = make_student(stream="East")
    rows = admin_store.update("students", s["id"], {"stream": "West"}).unwrap()
    assert rows[0]["stream"] == "West"
    logs = AuditLog.from_rows(service.select("audit_logs", {"record_id": s["id"], "action": "UPDATE"}).unwrap())
    assert logs[0].table_name == "students"
    assert logs[0].old_values["stream"] == "East"
    assert logs[0].new_values["stream"] == "West"


def test_update_without_match_returns_empty(service):
    assert service.update("students", 12345, {"stream": "X"}).unwrap() == []


def test_delete_requires_filters(service):
    res = service.delete("notifications", {})
    assert not res.ok
    assert "WHERE" in res.error.message


def test_public_identity_denied(engine):
    public = DataStore(engine).as_user(None, {"public"})
    res = public.select("students")
    assert res.error.code == "permission_denied"


def test_nurse_cannot_read_audit_logs(nurse_store):
    assert nurse_store.select("audit_logs").error.code == "permission_denied"


def test_nurse_cannot_edit_requirements(nurse_store):
    res = nurse_store.insert("vaccination_requirements", {"vaccine_name": "BCG"})
    assert res.error.code == "permission_denied"


def test_profile_selects_hide_password_hash(nurse_store):
    rows = nurse_store.select("profiles").unwrap()
    assert rows
    assert all("password_hash" not in r for r in rows)


def test_nurse_updates_only_own_profile(nurse_store, nurse, admin):
    assert nurse_store.update("profiles", admin.id, {"department": "X"}).unwrap() == []
    rows = nurse_store.update("profiles", nurse.id, {"department": "Clinic"}).unwrap()
    assert rows[0]["department"] == "Clinic"


def test_nurse_cannot_change_own_role(nurse_store, nurse):
    res = nurse_store.update("profiles", nurse.id, {"role": "admin"})
    assert res.error.code == "permission_denied"


def test_notifications_scoped_to_owner(service, nurse_store, nurse, admin):
    service.insert("notifications", {"user_id": nurse.id, "title": "Mine", "message": "m"}).unwrap()
    service.insert("notifications", {"user_id": admin.id, "title": "Theirs", "message": "m"}).unwrap()
    titles = [r["title"] for r in nurse_store.select("notifications").unwrap()]
    assert titles == ["Mine"]


def test_transaction_rolls_back_every_write(service, make_student):
    s = make_student()
    with pytest.raises(StoreError):
        with service.transaction() as tx:
            tx.update("students", s["id"], {"stream": "North"}).unwrap()
            tx.insert("students", {"full_name": "Dup", "student_id": s["student_id"]}).unwrap()
    assert service.get("students", s["id"]).unwrap()["stream"] is None
    assert service.count("students").unwrap() == 1


def test_transaction_commits_and_reads_its_own_writes(service, make_student):
    s = make_student()
    with service.transaction() as tx:
        tx.update("students", s["id"], {"stream": "East"}).unwrap()
        assert tx.get("students", s["id"]).unwrap()["stream"] == "East"
    assert service.get("students", s["id"]).unwrap()["stream"] == "East"


def test_increment_is_relative_to_stored_value(service):
    med = service.insert("medications", {"name": "Salbutamol", "quantity_in_stock": 10}).unwrap()
    service.update("medications", med["id"], {"quantity_in_stock": 4}).unwrap()
    rows = service.update("medications", med["id"], {"quantity_in_stock": incr(-3)}).unwrap()
    assert rows[0]["quantity_in_stock"] == 1
