import pytest

from screens.bulk_upload.orchestrator import UploadSummary
from screens.bulk_upload.state import (
    INTERRUPTED_MESSAGE, FileCleared, FileSelected, Progressed, RunStarted, UploadFailed, UploadFinished,
    UploadStarted, UploadState, reduce,
)


def _uploading():
    return reduce(reduce(UploadState(), FileSelected("students.csv")), UploadStarted())


def test_happy_path():
    state = _uploading()
    assert state.status == "uploading"
    state = reduce(state, Progressed(50))
    assert state.progress == 50
    summary = UploadSummary(total=2, success=2)
    state = reduce(state, UploadFinished(summary))
    assert state.status == "done"
    assert state.progress == 100
    assert state.summary is summary
    assert state.file_name == "students.csv"


def test_start_requires_a_selected_file():
    assert reduce(UploadState(), UploadStarted()) == UploadState()


def test_selection_ignored_while_uploading():
    state = _uploading()
    assert reduce(state, FileSelected("other.csv")) is state
    assert reduce(state, FileCleared()) is state


def test_progress_is_monotonic_and_clamped():
    state = reduce(_uploading(), Progressed(60))
    assert reduce(state, Progressed(40)).progress == 60
    assert reduce(state, Progressed(140)).progress == 100


def test_failure_keeps_file_and_allows_retry():
    state = reduce(_uploading(), UploadFailed("Could not read CSV file"))
    assert state.status == "failed"
    assert state.error == "Could not read CSV file"
    retry = reduce(state, FileSelected(state.file_name))
    assert retry.status == "selected"
    assert retry.error is None


def test_finish_ignored_unless_uploading():
    state = reduce(UploadState(), FileSelected("a.csv"))
    assert reduce(state, UploadFinished(UploadSummary())) is state


def test_clear_resets():
    state = reduce(UploadState(), FileSelected("a.csv"))
    assert reduce(state, FileCleared()) == UploadState()


def test_unknown_event():
    with pytest.raises(TypeError):
        reduce(UploadState(), object())


def test_run_that_finds_an_upload_in_flight_abandons_it():
    state = reduce(_uploading(), Progressed(40))
    state = reduce(state, RunStarted())
    assert state.status == "failed"
    assert state.error == INTERRUPTED_MESSAGE
    assert state.file_name == "students.csv"
    # the same file still sitting in the uploader does not restart the import
    assert reduce(state, UploadStarted()) == state


def test_interrupted_upload_restarts_only_after_reselecting():
    state = reduce(_uploading(), RunStarted())
    state = reduce(state, FileSelected("students.csv"))
    assert state.status == "selected"
    assert reduce(state, UploadStarted()).status == "uploading"


@pytest.mark.parametrize("state", [
    UploadState(),
    UploadState(status="selected", file_name="a.csv"),
    UploadState(status="done", file_name="a.csv", summary=UploadSummary(total=1, success=1)),
    UploadState(status="failed", file_name="a.csv", error="bad"),
])
def test_run_started_leaves_settled_states_alone(state):
    assert reduce(state, RunStarted()) is state
