import pytest

from core.records import insurance_status
from screens.insurance import db


def test_insurance_status():
    assert insurance_status("N1", "S1") == "Both"
    assert insurance_status("N1", None) == "NHIF"
    assert insurance_status("", "S1") == "SHA"
    assert insurance_status(None, None) == "None"


def test_coverage_rows_and_stats(nurse_store, make_student, nurse, admin):
    make_student(full_name="Both Covered", nhif_number="N1", sha_number="S1")
    make_student(full_name="Only Nhif", nhif_number="N2")
    make_student(full_name="Nobody")
    make_student(full_name="Retired", nhif_number="N3", is_active=False)

    rows = db.coverage_rows(nurse_store)
    assert [r.kind for r in rows].count("student") == 3
    assert [r.kind for r in rows].count("staff") == 2
    stats = db.coverage_stats(rows)
    assert stats == {"total": 5, "total_covered": 2, "nhif_members": 2, "sha_members": 1, "uncovered": 3}


def test_filter_coverage(nurse_store, make_student, nurse):
    make_student(full_name="Both Covered", nhif_number="N1", sha_number="S1")
    make_student(full_name="Nobody")
    rows = db.coverage_rows(nurse_store)
    assert [r.name for r in db.filter_coverage(rows, status="Both")] == ["Both Covered"]
    assert [r.name for r in db.filter_coverage(rows, search="s1")] == ["Both Covered"]
    staff = db.filter_coverage(rows, kind="staff")
    assert {r.name for r in staff} == {"Nurse Wanjiku", "School Administrator"}


def test_update_insurance(nurse_store, make_student, nurse, admin):
    s = make_student()
    db.update_insurance(nurse_store, "student", s["id"], " NHIF-9 ", "")
    row = nurse_store.get("students", s["id"]).unwrap()
    assert (row["nhif_number"], row["sha_number"]) == ("NHIF-9", None)

    db.update_insurance(nurse_store, "staff", nurse.id, None, "SHA-1")
    assert nurse_store.get("profiles", nurse.id).unwrap()["sha_number"] == "SHA-1"
    # a nurse may not edit somebody else's profile
    with pytest.raises(ValueError):
        db.update_insurance(nurse_store, "staff", admin.id, "X", None)
