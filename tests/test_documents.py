import pytest

from core.store import StoreError
from screens.students import documents


@pytest.mark.parametrize("raw, expected", [
    ("report.pdf", "report.pdf"),
    ("../../etc/passwd", "passwd"),
    ("lab results (1).png", "lab_results_1_.png"),
    ("...", "document"),
    ("", "document"),
])
def test_safe_file_name(raw, expected):
    assert documents.safe_file_name(raw) == expected


def test_save_list_and_read(tmp_path, nurse_store, nurse, make_student):
    s = make_student()
    doc = documents.save_document(
        nurse_store, tmp_path, s["id"], "x-ray scan.jpg", b"\xff\xd8data",
        content_type="image/jpeg", description=" Chest ", uploaded_by=nurse.id,
    )
    assert doc.file_name == "x-ray scan.jpg"
    assert doc.size_bytes == 6
    assert doc.description == "Chest"
    assert (tmp_path / str(s["id"])).is_dir()
    assert documents.read_document(doc) == b"\xff\xd8data"
    assert [d.id for d in documents.list_documents(nurse_store, s["id"])] == [doc.id]


def test_size_limits(tmp_path, nurse_store, make_student, monkeypatch):
    s = make_student()
    with pytest.raises(ValueError, match="empty"):
        documents.save_document(nurse_store, tmp_path, s["id"], "a.txt", b"")
    monkeypatch.setattr(documents, "MAX_DOCUMENT_BYTES", 4)
    with pytest.raises(ValueError, match="10 MB"):
        documents.save_document(nurse_store, tmp_path, s["id"], "a.txt", b"12345")


def test_failed_insert_removes_file(tmp_path, nurse_store):
    # no such student, the foreign key rejects the row
    with pytest.raises(StoreError):
        documents.save_document(nurse_store, tmp_path, 404, "a.txt", b"abc")
    assert list((tmp_path / "404").iterdir()) == []
