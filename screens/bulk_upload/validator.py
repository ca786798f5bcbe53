# screens/bulk_upload/validator.py
from __future__ import annotations

import re
from typing import List, Mapping, Optional

from screens.bulk_upload.parser import EXTRA_VALUES_KEY

STUDENT_ID_RE = re.compile(r"^[A-Za-z0-9]+$")
ADMISSION_NUMBER_RE = re.compile(r"^[0-9]+$")
EMAIL_RE = re.compile(r"\S+@\S+\.\S+")

MIN_STUDENT_ID_LENGTH = 3
MIN_ADMISSION_NUMBER_LENGTH = 4


def _present(row: Mapping[str, Optional[str]], key: str) -> Optional[str]:
    value = row.get(key)
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def validate_student_row(row: Mapping[str, Optional[str]]) -> List[str]:
    """
    Return every defect found in one import row, in rule order.
    An empty list means the row may be written. All rules run; none
    short-circuits another.
    """
    defects: List[str] = []

    if not _present(row, "full_name"):
        defects.append("Full name is required")

    student_id = _present(row, "student_id")
    if student_id is not None:
        if not STUDENT_ID_RE.match(student_id):
            defects.append("Student ID must contain only letters and numbers")
        if len(student_id) < MIN_STUDENT_ID_LENGTH:
            defects.append(f"Student ID must be at least {MIN_STUDENT_ID_LENGTH} characters")

    admission_number = _present(row, "admission_number")
    if admission_number is not None:
        if not ADMISSION_NUMBER_RE.match(admission_number):
            defects.append("Admission number must contain only numbers")
        if len(admission_number) < MIN_ADMISSION_NUMBER_LENGTH:
            defects.append(f"Admission number must be at least {MIN_ADMISSION_NUMBER_LENGTH} digits")

    email = _present(row, "email")
    if email is not None and not EMAIL_RE.search(email):
        defects.append("Invalid email format")

    if EXTRA_VALUES_KEY in row:
        defects.append("Row has more values than the header has columns")

    return defects
