from datetime import date, timedelta

import pytest

from core.records import Immunization, Student, VaccinationRequirement
from core.store import StoreError
from screens.immunizations import db
from screens.immunizations.compliance import build_report, render_report_text, report_file_name

REQUIREMENTS = [
    VaccinationRequirement(vaccine_name="Tetanus Toxoid", is_mandatory=True,
                           required_for_form_level=["form_1", "form_2", "form_3", "form_4"]),
    VaccinationRequirement(vaccine_name="HPV", is_mandatory=True, required_for_form_level=["form_1", "form_2"]),
    VaccinationRequirement(vaccine_name="Typhoid", is_mandatory=False,
                           required_for_form_level=["form_1", "form_2", "form_3", "form_4"]),
]


def _imm(pk, name):
    return Immunization(student_id=pk, vaccine_name=name, date_administered=date(2026, 2, 1))


def test_compliance_report():
    students = [
        Student(id=1, full_name="A", form_level="form_1"),
        Student(id=2, full_name="B", form_level="form_1"),
        Student(id=3, full_name="C", form_level="form_3"),
        Student(id=4, full_name="D"),
    ]
    given = [_imm(1, "tetanus toxoid"), _imm(1, "HPV"), _imm(2, "Tetanus Toxoid"), _imm(3, "Tetanus Toxoid")]
    report = build_report(students, given, REQUIREMENTS)

    assert report.total_students == 4
    # student 4 has no form, so nothing applies to them
    assert report.compliant_students == 3
    assert report.overall == 75.0
    assert report.missing == {2: ["HPV"]}
    assert (report.by_form["form_1"].done, report.by_form["form_1"].total) == (1, 2)
    assert (report.by_form["form_3"].done, report.by_form["form_3"].total) == (1, 1)
    assert report.by_form["form_4"].percent == 0.0
    assert (report.by_vaccine["HPV"].done, report.by_vaccine["HPV"].total) == (1, 2)
    assert report.by_vaccine["Typhoid"].total == 0
    assert report.mandatory_count == 2


def test_report_text_and_name():
    report = build_report([Student(id=1, full_name="A", form_level="form_2")], [], REQUIREMENTS)
    day = date(2026, 10, 19)
    text = render_report_text(report, day)
    assert report_file_name(day) == "vaccination-compliance-report-2026-10-19.txt"
    assert text.startswith("Vaccination Compliance Report\nGenerated on: 2026-10-19\n")
    assert "Overall Compliance: 0.0%" in text
    assert "FORM 2: 0/1 (0.0%)" in text
    assert "HPV: 0/1 (0.0%)" in text


def test_empty_report():
    report = build_report([], [], [])
    assert report.overall == 0.0


def test_record_immunization(nurse_store, make_student):
    s = make_student()
    imm = db.record_immunization(nurse_store, {
        "student_id": s["id"], "vaccine_name": " HPV ", "date_administered": "2026-02-01",
        "next_dose_date": date(2026, 8, 1), "administered_by": "Nurse W",
    })
    assert imm.vaccine_name == "HPV"
    assert imm.date_administered == date(2026, 2, 1)
    assert [i.id for i in db.list_immunizations(nurse_store, student_pk=s["id"])] == [imm.id]


def test_record_immunization_rules(nurse_store, make_student):
    s = make_student()
    with pytest.raises(ValueError, match="future"):
        db.record_immunization(nurse_store, {"student_id": s["id"], "vaccine_name": "HPV",
                                             "date_administered": date.today() + timedelta(days=1)})
    with pytest.raises(ValueError, match="Next dose"):
        db.record_immunization(nurse_store, {"student_id": s["id"], "vaccine_name": "HPV",
                                             "date_administered": date(2026, 2, 1),
                                             "next_dose_date": date(2026, 1, 1)})
    with pytest.raises(ValueError, match="YYYY-MM-DD"):
        db.record_immunization(nurse_store, {"student_id": s["id"], "vaccine_name": "HPV",
                                             "date_administered": "01/02/2026"})
    with pytest.raises(ValueError, match="Vaccine name"):
        db.record_immunization(nurse_store, {"student_id": s["id"], "vaccine_name": "",
                                             "date_administered": date(2026, 2, 1)})


def test_upcoming_doses(nurse_store, make_student):
    s = make_student()
    today = date.today()
    soon = db.record_immunization(nurse_store, {"student_id": s["id"], "vaccine_name": "HPV",
                                                "date_administered": today, "next_dose_date": today + timedelta(days=5)})
    db.record_immunization(nurse_store, {"student_id": s["id"], "vaccine_name": "Hepatitis B",
                                         "date_administered": today, "next_dose_date": today + timedelta(days=90)})
    assert [i.id for i in db.upcoming_doses(nurse_store, today + timedelta(days=30))] == [soon.id]


def test_seeded_requirements_and_admin_edit(admin_store, nurse_store):
    names = [r.vaccine_name for r in db.list_requirements(nurse_store)]
    assert "HPV" in names
    req = db.save_requirement(admin_store, "BCG", 1, True, ["form_1"])
    assert req.required_for_form_level == ["form_1"]
    req = db.save_requirement(admin_store, "BCG", 2, False, ["form_1", "form_2"], pk=req.id)
    assert req.doses_required == 2
    assert not req.is_mandatory
    with pytest.raises(StoreError):
        db.save_requirement(nurse_store, "Polio")
    with pytest.raises(ValueError):
        db.save_requirement(admin_store, "Polio", 0)
