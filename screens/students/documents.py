# screens/students/documents.py
"""Files attached to a student: bytes on disk under storage.root, metadata in medical_documents."""
from __future__ import annotations

import logging
import re
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from core.records import MedicalDocument
from core.store import DataStore

log = logging.getLogger(__name__)

MAX_DOCUMENT_BYTES = 10 * 1024 * 1024
_UNSAFE = re.compile(r"[^A-Za-z0-9._-]+")


def safe_file_name(name: str) -> str:
    base = Path(name or "").name
    cleaned = _UNSAFE.sub("_", base).strip("._")
    return cleaned or "document"


def save_document(
    store: DataStore,
    storage_root: str | Path,
    student_pk: int,
    file_name: str,
    data: bytes,
    content_type: Optional[str] = None,
    description: Optional[str] = None,
    uploaded_by: Optional[int] = None,
) -> MedicalDocument:
    if not data:
        raise ValueError("The file is empty")
    if len(data) > MAX_DOCUMENT_BYTES:
        raise ValueError("Files larger than 10 MB cannot be attached")

    folder = Path(storage_root) / str(int(student_pk))
    folder.mkdir(parents=True, exist_ok=True)
    stamp = datetime.now().strftime("%Y%m%d%H%M%S%f")
    target = folder / f"{stamp}_{safe_file_name(file_name)}"
    target.write_bytes(data)

    res = store.insert("medical_documents", {
        "student_id": student_pk,
        "file_name": Path(file_name).name or target.name,
        "storage_path": str(target),
        "content_type": content_type,
        "size_bytes": len(data),
        "description": (description or "").strip() or None,
        "uploaded_by": uploaded_by,
    })
    if not res.ok:
        # keep disk and table in step
        target.unlink(missing_ok=True)
        raise res.error
    log.info("Stored document %s for student %s", target.name, student_pk)
    return MedicalDocument.model_validate(res.data)


def list_documents(store: DataStore, student_pk: int) -> List[MedicalDocument]:
    rows = store.select("medical_documents", {"student_id": student_pk}, order_by="id", desc=True).unwrap()
    return MedicalDocument.from_rows(rows)


def read_document(doc: MedicalDocument) -> bytes:
    return Path(doc.storage_path).read_bytes()
