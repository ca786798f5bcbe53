# screens/insurance/db.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Literal, Optional

from core.records import Profile, Student, insurance_status
from core.store import DataStore

MemberKind = Literal["student", "staff"]
INSURANCE_STATUSES = ("NHIF", "SHA", "Both", "None")


@dataclass(frozen=True)
class CoverageRow:
    kind: MemberKind
    pk: int
    name: str
    identifier: str
    nhif_number: Optional[str]
    sha_number: Optional[str]

    @property
    def status(self) -> str:
        return insurance_status(self.nhif_number, self.sha_number)


def coverage_rows(store: DataStore) -> List[CoverageRow]:
    """Active students then active staff."""
    students = Student.from_rows(
        store.select("students", {"is_active": True}, order_by="full_name").unwrap()
    )
    staff = Profile.from_rows(
        store.select("profiles", {"is_active": True}, order_by="full_name").unwrap()
    )
    rows = [
        CoverageRow("student", s.id, s.full_name, s.student_id or s.admission_number or "",
                    s.nhif_number, s.sha_number)
        for s in students
    ]
    rows += [
        CoverageRow("staff", p.id, p.display_name, p.employee_id or p.email, p.nhif_number, p.sha_number)
        for p in staff
    ]
    return rows


def coverage_stats(rows: Iterable[CoverageRow]) -> Dict[str, int]:
    rows = list(rows)
    return {
        "total": len(rows),
        "total_covered": sum(1 for r in rows if r.status != "None"),
        "nhif_members": sum(1 for r in rows if r.nhif_number),
        "sha_members": sum(1 for r in rows if r.sha_number),
        "uncovered": sum(1 for r in rows if r.status == "None"),
    }


def filter_coverage(
    rows: Iterable[CoverageRow],
    search: Optional[str] = None,
    status: Optional[str] = None,
    kind: Optional[MemberKind] = None,
) -> List[CoverageRow]:
    term = (search or "").strip().lower()
    out = []
    for r in rows:
        if kind and r.kind != kind:
            continue
        if status and r.status != status:
            continue
        if term and not any(term in (v or "").lower()
                            for v in (r.name, r.identifier, r.nhif_number, r.sha_number)):
            continue
        out.append(r)
    return out


def update_insurance(
    store: DataStore, kind: MemberKind, pk: int, nhif_number: Optional[str], sha_number: Optional[str]
) -> None:
    table = "students" if kind == "student" else "profiles"
    changes = {
        "nhif_number": (nhif_number or "").strip() or None,
        "sha_number": (sha_number or "").strip() or None,
    }
    rows = store.update(table, pk, changes).unwrap()
    if not rows:
        raise ValueError("Record not found or not editable by you")
