# screens/bulk_upload/orchestrator.py
"""
Row-by-row student import.

One insert per valid row, each finished before the next starts. A failed
row never stops the loop and nothing already written is rolled back; the
operator re-uploads the failed rows to retry.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from core.store import DataStore
from screens.bulk_upload.template import TEMPLATE_HEADERS
from screens.bulk_upload.validator import validate_student_row

log = logging.getLogger(__name__)

MAX_SHOWN_ERRORS = 10
HEADER_OFFSET = 2  # data row i sits on file line i + 2

ProgressFn = Callable[[float], None]


@dataclass
class UploadSummary:
    total: int = 0
    success: int = 0
    failed: int = 0
    errors: List[str] = field(default_factory=list)

    @property
    def hidden_error_count(self) -> int:
        return max(0, len(self.errors) - MAX_SHOWN_ERRORS)

    def display_errors(self) -> List[str]:
        shown = self.errors[:MAX_SHOWN_ERRORS]
        if self.hidden_error_count:
            shown.append(f"+{self.hidden_error_count} more errors")
        return shown


def student_payload(row: Mapping[str, Optional[str]]) -> Dict[str, Any]:
    """Import row -> students record. Blank values become None, extra columns are dropped."""
    record: Dict[str, Any] = {}
    for col in TEMPLATE_HEADERS:
        value = row.get(col)
        record[col] = (str(value).strip() or None) if value is not None else None
    record["is_active"] = True
    return record


def upload_students(
    rows: Sequence[Mapping[str, Optional[str]]],
    store: DataStore,
    progress: Optional[ProgressFn] = None,
) -> UploadSummary:
    total = len(rows)
    summary = UploadSummary(total=total)
    log.info("Student upload started: %d rows", total)

    for i, row in enumerate(rows):
        row_num = i + HEADER_OFFSET
        defects = validate_student_row(row)
        if defects:
            summary.failed += 1
            summary.errors.append(f"Row {row_num}: {', '.join(defects)}")
        else:
            result = store.insert("students", student_payload(row))
            if result.ok:
                summary.success += 1
            else:
                summary.failed += 1
                summary.errors.append(f"Row {row_num}: {result.error.message}")

        if progress is not None:
            progress((i + 1) / total * 100)

    log.info("Student upload finished: %d ok, %d failed of %d", summary.success, summary.failed, total)
    return summary
