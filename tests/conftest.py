from __future__ import annotations

import pytest

from core.auth import sign_up
from core.db import get_engine, init_db
from core.records import Profile
from core.store import DataStore


@pytest.fixture
def engine(tmp_path):
    eng = get_engine(f"sqlite:///{tmp_path / 'health.db'}")
    init_db(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def service(engine):
    return DataStore.service(engine)


@pytest.fixture
def admin(service):
    rows = service.select("profiles", {"role": "admin"}).unwrap()
    return Profile.model_validate(rows[0])


@pytest.fixture
def admin_store(service, admin):
    return service.as_user(admin.id, {"admin"})


@pytest.fixture
def nurse(engine):
    return sign_up(engine, "nurse@school.local", "nurse-pass-1", "Nurse Wanjiku")


@pytest.fixture
def nurse_store(service, nurse):
    return service.as_user(nurse.id, {"nurse"})


@pytest.fixture
def make_student(service):
    counter = {"n": 0}

    def _make(**overrides):
        counter["n"] += 1
        n = counter["n"]
        values = {
            "full_name": f"Student {n}",
            "student_id": f"STU{n:03d}",
            "admission_number": f"{2024000 + n}",
            "form_level": "form_1",
            "is_active": True,
        }
        values.update(overrides)
        return service.insert("students", values).unwrap()

    return _make
