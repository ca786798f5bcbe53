# screens/immunizations/compliance.py
"""
Vaccination compliance over already-loaded rows.

A student is compliant when every mandatory requirement that applies to
their form level has at least one matching immunization on record.
"""
from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Iterable, List, Set

from core.records import FORM_LEVELS, Immunization, Student, VaccinationRequirement

REPORT_FILE_PATTERN = "vaccination-compliance-report-{day}.txt"


def _pct(part: int, whole: int) -> float:
    return (part / whole) * 100 if whole else 0.0


@dataclass
class Tally:
    done: int = 0
    total: int = 0

    @property
    def percent(self) -> float:
        return _pct(self.done, self.total)


@dataclass
class ComplianceReport:
    total_students: int = 0
    compliant_students: int = 0
    by_form: Dict[str, Tally] = field(default_factory=dict)
    by_vaccine: Dict[str, Tally] = field(default_factory=dict)
    missing: Dict[int, List[str]] = field(default_factory=dict)  # student pk -> vaccines still due
    mandatory_count: int = 0

    @property
    def overall(self) -> float:
        return _pct(self.compliant_students, self.total_students)


def required_for(student: Student, requirements: Iterable[VaccinationRequirement]) -> List[VaccinationRequirement]:
    return [
        r for r in requirements
        if r.is_mandatory and student.form_level in (r.required_for_form_level or [])
    ]


def build_report(
    students: Iterable[Student],
    immunizations: Iterable[Immunization],
    requirements: Iterable[VaccinationRequirement],
) -> ComplianceReport:
    students = list(students)
    requirements = list(requirements)

    received: Dict[int, Set[str]] = defaultdict(set)
    for imm in immunizations:
        received[imm.student_id].add(imm.vaccine_name.strip().lower())

    report = ComplianceReport(
        total_students=len(students),
        by_form={f: Tally() for f in FORM_LEVELS},
        by_vaccine={r.vaccine_name: Tally() for r in requirements},
        mandatory_count=sum(1 for r in requirements if r.is_mandatory),
    )

    for student in students:
        due = []
        for req in required_for(student, requirements):
            tally = report.by_vaccine[req.vaccine_name]
            tally.total += 1
            if req.vaccine_name.strip().lower() in received.get(student.id, set()):
                tally.done += 1
            else:
                due.append(req.vaccine_name)

        form = report.by_form.get(student.form_level or "")
        if form is not None:
            form.total += 1
        if due:
            report.missing[student.id] = due
        else:
            report.compliant_students += 1
            if form is not None:
                form.done += 1
    return report


def report_file_name(day: date) -> str:
    return REPORT_FILE_PATTERN.format(day=day.isoformat())


def render_report_text(report: ComplianceReport, day: date) -> str:
    lines = [
        "Vaccination Compliance Report",
        f"Generated on: {day.isoformat()}",
        "",
        f"Overall Compliance: {report.overall:.1f}%",
        f"Total Students: {report.total_students}",
        f"Compliant Students: {report.compliant_students}",
        "",
        "Form Level Breakdown:",
    ]
    for form, t in report.by_form.items():
        lines.append(f"{form.replace('_', ' ').upper()}: {t.done}/{t.total} ({t.percent:.1f}%)")
    lines += ["", "Vaccine Coverage:"]
    for vaccine, t in report.by_vaccine.items():
        lines.append(f"{vaccine}: {t.done}/{t.total} ({t.percent:.1f}%)")
    return "\n".join(lines) + "\n"
