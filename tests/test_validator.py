from screens.bulk_upload.parser import EXTRA_VALUES_KEY
from screens.bulk_upload.validator import validate_student_row


def test_valid_row_has_no_defects():
    assert validate_student_row({"full_name": "John Doe", "student_id": "AB12", "admission_number": "2024001"}) == []


def test_missing_or_blank_full_name():
    assert validate_student_row({}) == ["Full name is required"]
    assert validate_student_row({"full_name": "   "}) == ["Full name is required"]
    assert validate_student_row({"full_name": None}) == ["Full name is required"]


def test_student_id_format():
    defects = validate_student_row({"full_name": "A", "student_id": "AB-12"})
    assert defects == ["Student ID must contain only letters and numbers"]
    assert validate_student_row({"full_name": "A", "student_id": "AB12"}) == []


def test_student_id_too_short():
    assert validate_student_row({"full_name": "A", "student_id": "1"}) == [
        "Student ID must be at least 3 characters"
    ]


def test_student_id_both_rules_reported():
    assert validate_student_row({"full_name": "A", "student_id": "a-"}) == [
        "Student ID must contain only letters and numbers",
        "Student ID must be at least 3 characters",
    ]


def test_admission_number_rules():
    assert validate_student_row({"full_name": "A", "admission_number": "12a"}) == [
        "Admission number must contain only numbers",
        "Admission number must be at least 4 digits",
    ]
    assert validate_student_row({"full_name": "A", "admission_number": "123"}) == [
        "Admission number must be at least 4 digits"
    ]
    assert validate_student_row({"full_name": "A", "admission_number": "2024001"}) == []


def test_blank_optional_fields_are_absent():
    assert validate_student_row({"full_name": "A", "student_id": "", "admission_number": "  ", "email": ""}) == []


def test_email_format():
    assert validate_student_row({"full_name": "A", "email": "not-an-email"}) == ["Invalid email format"]
    assert validate_student_row({"full_name": "A", "email": "nurse@school.ke"}) == []


def test_all_rules_run_in_order():
    defects = validate_student_row({"student_id": "x!", "admission_number": "1a", "email": "bad"})
    assert defects == [
        "Full name is required",
        "Student ID must contain only letters and numbers",
        "Student ID must be at least 3 characters",
        "Admission number must contain only numbers",
        "Admission number must be at least 4 digits",
        "Invalid email format",
    ]


def test_extra_values_reported_last():
    assert validate_student_row({"full_name": "", EXTRA_VALUES_KEY: "x"}) == [
        "Full name is required",
        "Row has more values than the header has columns",
    ]
