# screens/reports/analytics.py
from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Dict, Iterable, List, Tuple

from core.records import ClinicVisit, Student


@dataclass(frozen=True)
class ConditionCount:
    condition: str
    count: int
    percentage: int


def visit_trend(visits: Iterable[ClinicVisit], today: date, days: int = 7) -> List[Tuple[date, int]]:
    """Visits per day for the last `days` days, oldest first, zero-filled."""
    window = [today - timedelta(days=i) for i in range(days - 1, -1, -1)]
    counts = Counter(v.visit_date.date() for v in visits)
    return [(d, counts.get(d, 0)) for d in window]


def condition_breakdown(students: Iterable[Student], top: int = 5) -> List[ConditionCount]:
    """Comma separated chronic conditions, counted case-insensitively."""
    students = list(students)
    counts: Counter = Counter()
    for s in students:
        for part in (s.chronic_conditions or "").lower().split(","):
            part = part.strip()
            if part and part != "none":
                counts[part] += 1
    total = len(students)
    ranked = sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))[:top]
    return [ConditionCount(c, n, round(n / total * 100) if total else 0) for c, n in ranked]


def frequent_visitors(
    visits: Iterable[ClinicVisit],
    students: Dict[int, Student],
    min_visits: int = 3,
    top: int = 5,
) -> List[Tuple[Student, int]]:
    counts = Counter(v.student_id for v in visits if v.student_id in students)
    ranked = sorted(
        ((pk, n) for pk, n in counts.items() if n >= min_visits),
        key=lambda kv: (-kv[1], students[kv[0]].full_name),
    )[:top]
    return [(students[pk], n) for pk, n in ranked]


def students_with(students: Iterable[Student], field: str) -> int:
    """How many students have a non-blank, non-'None' value in a free-text field."""
    return sum(
        1 for s in students
        if (getattr(s, field) or "").strip() and (getattr(s, field) or "").strip().lower() != "none"
    )
