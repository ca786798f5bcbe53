from datetime import date, datetime, timedelta

from core.records import ClinicVisit, Student
from screens.clinic.db import log_visit
from screens.medications.db import add_medication, dispense
from screens.reports import analytics
from screens.reports.exports import (
    EXPORTERS, clinic_csv, export_file_name, immunizations_csv, medications_csv, students_csv,
)


def _lines(data: bytes):
    return data.decode("utf-8").splitlines()


def test_export_file_names():
    day = date(2026, 10, 19)
    assert export_file_name("students", day) == "students_report_2026-10-19.csv"
    assert export_file_name("clinic", day) == "clinic_visits_report_2026-10-19.csv"
    assert set(EXPORTERS) == {"students", "clinic", "immunizations", "medications"}


def test_students_csv_quotes_everything(nurse_store, make_student):
    make_student(full_name="Zed Kamau", form_level="form_2", allergies="Peanuts, dust")
    make_student(full_name="Gone", is_active=False)
    lines = _lines(students_csv(nurse_store))
    assert lines[0].startswith('"Full Name","Student ID","Admission Number"')
    assert len(lines) == 2
    assert lines[1].startswith('"Zed Kamau","STU001","2024001","","","Form 2","","","Peanuts, dust"')


def test_empty_export_is_header_only(nurse_store):
    assert len(_lines(immunizations_csv(nurse_store))) == 1


def test_clinic_csv_names_student_and_staff(nurse_store, nurse, make_student):
    s = make_student(full_name="Mary Atieno")
    log_visit(nurse_store, {"student_id": s["id"], "visit_type": "sick_visit", "temperature": 37.9},
              attended_by=nurse.id)
    log_visit(nurse_store, {"student_id": s["id"], "visit_date": date.today() - timedelta(days=10)})
    lines = _lines(clinic_csv(nurse_store, start=date.today() - timedelta(days=1), end=date.today()))
    assert len(lines) == 2
    row = lines[1]
    assert row.startswith(f'"{date.today().isoformat()}","Mary Atieno","STU001","sick_visit"')
    assert '"Nurse Wanjiku","37.9"' in row
    assert row.endswith('"No"')
    assert len(_lines(clinic_csv(nurse_store))) == 3


def test_medications_csv_joins_visit_student(nurse_store, nurse, make_student):
    s = make_student(full_name="Peter Njoroge")
    visit = log_visit(nurse_store, {"student_id": s["id"]})
    med = add_medication(nurse_store, {"name": "Panadol", "generic_name": "Paracetamol", "quantity_in_stock": 10})
    dispense(nurse_store, med.id, 2, visit_pk=visit.id, instructions="2x3", dispensed_by=nurse.id)
    lines = _lines(medications_csv(nurse_store))
    assert lines[1].endswith('"Peter Njoroge","STU001","Panadol","Paracetamol","2","2x3","Nurse Wanjiku"')


def test_visit_trend_zero_fills():
    today = date(2026, 10, 19)
    visits = [
        ClinicVisit(student_id=1, visit_date=datetime(2026, 10, 19, 9)),
        ClinicVisit(student_id=2, visit_date=datetime(2026, 10, 19, 11)),
        ClinicVisit(student_id=1, visit_date=datetime(2026, 10, 17, 8)),
        ClinicVisit(student_id=1, visit_date=datetime(2026, 10, 1, 8)),
    ]
    trend = analytics.visit_trend(visits, today)
    assert len(trend) == 7
    assert trend[0] == (date(2026, 10, 13), 0)
    assert trend[-3:] == [(date(2026, 10, 17), 1), (date(2026, 10, 18), 0), (date(2026, 10, 19), 2)]


def test_condition_breakdown():
    students = [
        Student(full_name="A", chronic_conditions="Asthma, Diabetes"),
        Student(full_name="B", chronic_conditions="asthma"),
        Student(full_name="C", chronic_conditions="None"),
        Student(full_name="D"),
    ]
    result = analytics.condition_breakdown(students)
    assert [(c.condition, c.count, c.percentage) for c in result] == [("asthma", 2, 50), ("diabetes", 1, 25)]
    assert analytics.students_with(students, "chronic_conditions") == 2


def test_frequent_visitors():
    students = {1: Student(id=1, full_name="Amos"), 2: Student(id=2, full_name="Beth")}
    visits = [ClinicVisit(student_id=pk, visit_date=datetime(2026, 10, 1)) for pk in (1, 1, 1, 2, 2, 2, 2, 3, 3, 3)]
    result = analytics.frequent_visitors(visits, students)
    assert [(s.full_name, n) for s, n in result] == [("Beth", 4), ("Amos", 3)]
    assert analytics.frequent_visitors(visits, students, min_visits=4)[0][0].full_name == "Beth"
