# core/records.py
"""
Record schemas, one per table.

Rows come back from the data client as plain dicts; each screen's db.py
validates them into these models before anything else touches them.
"""
from __future__ import annotations

import json
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Literal, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, field_validator

FORM_LEVELS = ("form_1", "form_2", "form_3", "form_4")
BLOOD_GROUPS = ("A+", "A-", "B+", "B-", "AB+", "AB-", "O+", "O-")
GENDERS = ("male", "female")
SCHOOL_TERMS = ("term_1", "term_2", "term_3")
USER_ROLES = ("admin", "nurse")
VISIT_TYPES = {
    "routine": "Routine Check-up",
    "sick_visit": "Sick Visit",
    "emergency": "Emergency",
    "follow_up": "Follow-up",
    "screening": "Health Screening",
}

FormLevel = Literal["form_1", "form_2", "form_3", "form_4"]
UserRole = Literal["admin", "nurse"]
VisitType = Literal["routine", "sick_visit", "emergency", "follow_up", "screening"]

M = TypeVar("M", bound="Record")


def form_label(level: Optional[str]) -> str:
    """'form_1' -> 'Form 1'"""
    return (level or "").replace("_", " ").title()


class Record(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: Optional[int] = None
    created_at: Optional[str] = None

    @classmethod
    def from_rows(cls: Type[M], rows: Iterable[Dict[str, Any]]) -> List[M]:
        return [cls.model_validate(r) for r in rows]


def _json_field(value: Any) -> Any:
    if isinstance(value, str):
        return json.loads(value) if value.strip() else None
    return value


class Student(Record):
    full_name: str
    student_id: Optional[str] = None
    admission_number: Optional[str] = None
    date_of_birth: Optional[date] = None
    gender: Optional[str] = None
    form_level: Optional[FormLevel] = None
    stream: Optional[str] = None
    blood_group: Optional[str] = None
    allergies: Optional[str] = None
    chronic_conditions: Optional[str] = None
    parent_guardian_name: Optional[str] = None
    parent_guardian_phone: Optional[str] = None
    emergency_contact: Optional[Dict[str, Any]] = None
    county: Optional[str] = None
    sub_county: Optional[str] = None
    ward: Optional[str] = None
    village: Optional[str] = None
    admission_date: Optional[date] = None
    nhif_number: Optional[str] = None
    sha_number: Optional[str] = None
    is_active: bool = True
    updated_at: Optional[str] = None

    @field_validator("emergency_contact", mode="before")
    @classmethod
    def parse_contact(cls, value: Any) -> Any:
        return _json_field(value)

    @property
    def age(self) -> Optional[int]:
        if not self.date_of_birth:
            return None
        today = date.today()
        dob = self.date_of_birth
        return today.year - dob.year - ((today.month, today.day) < (dob.month, dob.day))

    @property
    def insurance_status(self) -> str:
        return insurance_status(self.nhif_number, self.sha_number)


class StudentProgression(Record):
    student_id: int
    academic_year: str
    term: Literal["term_1", "term_2", "term_3"]
    form_level: str
    stream: Optional[str] = None
    promoted: bool = False
    promotion_date: Optional[date] = None
    notes: Optional[str] = None


class MedicalDocument(Record):
    student_id: int
    file_name: str
    storage_path: str
    content_type: Optional[str] = None
    size_bytes: Optional[int] = None
    description: Optional[str] = None
    uploaded_by: Optional[int] = None


class Profile(Record):
    email: str
    full_name: Optional[str] = None
    role: UserRole = "nurse"
    employee_id: Optional[str] = None
    department: Optional[str] = None
    phone_number: Optional[str] = None
    nhif_number: Optional[str] = None
    sha_number: Optional[str] = None
    is_active: bool = True
    updated_at: Optional[str] = None

    @property
    def display_name(self) -> str:
        return (self.full_name or self.email or "").strip() or "User"

    @property
    def insurance_status(self) -> str:
        return insurance_status(self.nhif_number, self.sha_number)


class ClinicVisit(Record):
    student_id: int
    visit_date: datetime
    visit_type: VisitType = "routine"
    symptoms: Optional[str] = None
    diagnosis: Optional[str] = None
    treatment_given: Optional[str] = None
    temperature: Optional[float] = None
    blood_pressure: Optional[str] = None
    pulse_rate: Optional[int] = None
    weight: Optional[float] = None
    height: Optional[float] = None
    follow_up_required: bool = False
    follow_up_date: Optional[date] = None
    notes: Optional[str] = None
    attended_by: Optional[int] = None
    updated_at: Optional[str] = None


class HealthServiceFee(Record):
    service_name: str
    description: Optional[str] = None
    fee_amount: float
    is_active: bool = True


class FeePayment(Record):
    clinic_visit_id: int
    service_id: int
    amount_paid: float
    payment_method: Optional[str] = None
    receipt_number: Optional[str] = None
    payment_date: Optional[date] = None
    staff_id: Optional[int] = None


class Medication(Record):
    name: str
    generic_name: Optional[str] = None
    dosage: Optional[str] = None
    form: Optional[str] = None
    manufacturer: Optional[str] = None
    supplier: Optional[str] = None
    batch_number: Optional[str] = None
    quantity_in_stock: int = 0
    minimum_stock_level: int = 0
    unit_cost: Optional[float] = None
    expiry_date: Optional[date] = None
    updated_at: Optional[str] = None


class MedicationDispensing(Record):
    medication_id: int
    clinic_visit_id: Optional[int] = None
    quantity_dispensed: int
    dosage_instructions: Optional[str] = None
    dispensed_by: Optional[int] = None
    dispensed_at: datetime


class Immunization(Record):
    student_id: int
    vaccine_name: str
    date_administered: date
    administered_by: Optional[str] = None
    batch_number: Optional[str] = None
    next_dose_date: Optional[date] = None
    notes: Optional[str] = None


class VaccinationRequirement(Record):
    vaccine_name: str
    doses_required: int = 1
    is_mandatory: bool = True
    required_for_form_level: List[str] = []

    @field_validator("required_for_form_level", mode="before")
    @classmethod
    def parse_forms(cls, value: Any) -> Any:
        return _json_field(value) or []


class Notification(Record):
    user_id: Optional[int] = None
    title: str
    message: str
    type: Optional[str] = "info"
    related_table: Optional[str] = None
    related_id: Optional[int] = None
    is_read: bool = False


class AuditLog(Record):
    user_id: Optional[int] = None
    action: str
    table_name: Optional[str] = None
    record_id: Optional[int] = None
    old_values: Optional[Dict[str, Any]] = None
    new_values: Optional[Dict[str, Any]] = None

    @field_validator("old_values", "new_values", mode="before")
    @classmethod
    def parse_values(cls, value: Any) -> Any:
        return _json_field(value)


def insurance_status(nhif_number: Optional[str], sha_number: Optional[str]) -> str:
    if nhif_number and sha_number:
        return "Both"
    if nhif_number:
        return "NHIF"
    if sha_number:
        return "SHA"
    return "None"
