import io

from core.store import DataStore
from screens.bulk_upload.orchestrator import MAX_SHOWN_ERRORS, UploadSummary, student_payload, upload_students
from screens.bulk_upload.parser import parse_rows


def _rows(n):
    return [
        {"full_name": f"Pupil {i}", "student_id": f"P{i:04d}", "admission_number": f"{3000000 + i}"}
        for i in range(n)
    ]


def _stored(service):
    return service.select("students", order_by="id").unwrap()


def test_three_row_file(service):
    rows = [
        {"full_name": "Valid Student"},
        {"full_name": ""},
        {"full_name": "Short Id", "student_id": "1"},
    ]
    summary = upload_students(rows, service)
    assert (summary.total, summary.success, summary.failed) == (3, 1, 2)
    assert summary.errors == [
        "Row 3: Full name is required",
        "Row 4: Student ID must be at least 3 characters",
    ]
    assert [r["full_name"] for r in _stored(service)] == ["Valid Student"]


def test_invalid_rows_reported_by_file_line(service):
    rows = _rows(7)
    rows[2]["full_name"] = ""
    rows[5]["admission_number"] = "12a4"
    summary = upload_students(rows, service)
    assert summary.success == 5
    assert summary.failed == 2
    assert [e.split(":")[0] for e in summary.errors] == ["Row 4", "Row 7"]
    assert len(_stored(service)) == 5


def test_insert_failure_does_not_stop_later_rows(service):
    rows = _rows(4)
    rows[1]["student_id"] = rows[0]["student_id"]  # duplicate -> unique violation
    summary = upload_students(rows, service)
    assert summary.success == 3
    assert summary.failed == 1
    assert summary.errors[0].startswith("Row 3: ")
    assert "UNIQUE" in summary.errors[0]
    names = [r["full_name"] for r in _stored(service)]
    assert names == ["Pupil 0", "Pupil 2", "Pupil 3"]


def test_progress_called_once_per_row_ending_at_100(service):
    seen = []
    upload_students(_rows(4), service, seen.append)
    assert seen == [25.0, 50.0, 75.0, 100.0]
    assert all(a < b for a, b in zip(seen, seen[1:]))


def test_permission_error_is_a_row_failure(engine):
    public = DataStore(engine).as_user(None, {"public"})
    summary = upload_students(_rows(1), public)
    assert summary.failed == 1
    assert "permission denied" in summary.errors[0]


def test_nurse_can_import(nurse_store, service):
    summary = upload_students(_rows(2), nurse_store)
    assert summary.success == 2
    assert len(_stored(service)) == 2


def test_payload_drops_unknown_columns_and_blanks():
    payload = student_payload({"full_name": " Ann ", "stream": "", "favourite_colour": "blue"})
    assert payload["full_name"] == "Ann"
    assert payload["stream"] is None
    assert payload["is_active"] is True
    assert "favourite_colour" not in payload


def test_display_errors_capped():
    summary = UploadSummary(total=15, failed=15, errors=[f"Row {i}: bad" for i in range(2, 17)])
    shown = summary.display_errors()
    assert len(shown) == MAX_SHOWN_ERRORS + 1
    assert shown[-1] == "+5 more errors"
    assert len(summary.errors) == 15


def test_line_with_extra_values_is_rejected(service):
    data = b"full_name,student_id\nAnn Wairimu,STU101,oops\nBen Kiprop,STU102\n"
    summary = upload_students(list(parse_rows(io.BytesIO(data))), service)
    assert (summary.success, summary.failed) == (1, 1)
    assert summary.errors == ["Row 2: Row has more values than the header has columns"]
    assert [r["full_name"] for r in _stored(service)] == ["Ben Kiprop"]
