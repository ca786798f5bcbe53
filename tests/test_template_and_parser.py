import io

import pytest

from screens.bulk_upload.parser import EXTRA_VALUES_KEY, ParseError, normalize_header, parse_rows
from screens.bulk_upload.template import SAMPLE_ROW, TEMPLATE_HEADERS, build_template


def test_template_is_deterministic():
    assert build_template() == build_template()


def test_template_has_header_and_sample():
    lines = build_template().decode("utf-8").split("\n")
    assert len(lines) == 2
    assert lines[0].split(",") == list(TEMPLATE_HEADERS)
    assert lines[1].split(",") == list(SAMPLE_ROW)
    assert len(TEMPLATE_HEADERS) == 17


def test_template_parses_back_into_one_valid_row():
    rows = list(parse_rows(io.BytesIO(build_template())))
    assert len(rows) == 1
    assert rows[0]["full_name"] == "John Doe"
    assert rows[0]["student_id"] == "STU001"
    assert rows[0]["allergies"] == ""


def test_normalize_header():
    assert normalize_header("  Full Name ") == "full_name"
    assert normalize_header("Student_ID") == "student_id"


def test_rows_are_trimmed_strings_and_blank_lines_skipped():
    data = "Full Name,Student ID,admission_number\n  Ann Njeri , 007 ,2024001\n\nBob,,\n"
    rows = list(parse_rows(io.StringIO(data)))
    assert rows == [
        {"full_name": "Ann Njeri", "student_id": "007", "admission_number": "2024001"},
        {"full_name": "Bob", "student_id": "", "admission_number": ""},
    ]


def test_short_line_leaves_missing_columns_none():
    rows = list(parse_rows(io.StringIO("full_name,student_id,stream\nAnn\n")))
    assert rows[0]["full_name"] == "Ann"
    assert rows[0]["student_id"] is None
    assert rows[0]["stream"] is None


def test_each_call_restarts_from_the_top():
    handle = io.BytesIO(b"full_name\nA\nB\n")
    assert len(list(parse_rows(handle))) == 2
    assert len(list(parse_rows(handle))) == 2


def test_utf8_bom_is_ignored():
    rows = list(parse_rows(io.BytesIO("\ufefffull_name\nÉlodie\n".encode("utf-8"))))
    assert rows == [{"full_name": "Élodie"}]


def test_empty_file_yields_nothing():
    assert list(parse_rows(io.BytesIO(b""))) == []


def test_header_only_yields_nothing():
    assert list(parse_rows(io.BytesIO(b"full_name,student_id\n"))) == []


def test_unterminated_quote_raises_parse_error():
    with pytest.raises(ParseError):
        list(parse_rows(io.StringIO('full_name,student_id\n"Ann,STU1\n')))


def test_extra_values_are_flagged_not_dropped_silently():
    data = "full_name,student_id\nAnn,STU1,EXTRA\nBob,STU2\nCid,STU3,x,y\n"
    rows = list(parse_rows(io.StringIO(data)))
    assert rows[0] == {"full_name": "Ann", "student_id": "STU1", EXTRA_VALUES_KEY: "EXTRA"}
    assert rows[1] == {"full_name": "Bob", "student_id": "STU2"}
    assert rows[2][EXTRA_VALUES_KEY] == "x"
