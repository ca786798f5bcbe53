# screens/bulk_upload/template.py
from __future__ import annotations

from typing import Tuple

TEMPLATE_FILE_NAME = "student_upload_template.csv"
TEMPLATE_MIME = "text/csv"

# Columns the importer recognizes, in template order.
TEMPLATE_HEADERS: Tuple[str, ...] = (
    "full_name", "student_id", "admission_number", "date_of_birth", "gender",
    "form_level", "stream", "blood_group", "allergies", "chronic_conditions",
    "parent_guardian_name", "parent_guardian_phone", "county", "sub_county",
    "ward", "village", "admission_date",
)

SAMPLE_ROW: Tuple[str, ...] = (
    "John Doe", "STU001", "2024001", "2010-01-15", "male",
    "form_1", "East", "O+", "", "None",
    "Jane Doe", "+254712345678", "Nairobi", "Westlands",
    "Parklands", "Parklands Estate", "2024-01-15",
)


def build_template() -> bytes:
    """Header line plus one sample row, as CSV bytes."""
    return "\n".join([",".join(TEMPLATE_HEADERS), ",".join(SAMPLE_ROW)]).encode("utf-8")
