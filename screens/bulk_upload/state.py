# screens/bulk_upload/state.py
"""
Upload page state.

The page holds one UploadState in st.session_state and only ever replaces
it with reduce(state, event). Writes to the store happen in the page,
never in here.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Literal, Optional, Union

from screens.bulk_upload.orchestrator import UploadSummary

Status = Literal["idle", "selected", "uploading", "done", "failed"]

INTERRUPTED_MESSAGE = (
    "The upload was interrupted before it finished. Rows imported before the "
    "interruption were kept; check the student list before uploading again."
)


@dataclass(frozen=True)
class UploadState:
    status: Status = "idle"
    file_name: Optional[str] = None
    progress: float = 0.0
    summary: Optional[UploadSummary] = None
    error: Optional[str] = None


@dataclass(frozen=True)
class FileSelected:
    file_name: str


@dataclass(frozen=True)
class FileCleared:
    pass


@dataclass(frozen=True)
class RunStarted:
    """Dispatched first on every page run."""


@dataclass(frozen=True)
class UploadStarted:
    pass


@dataclass(frozen=True)
class Progressed:
    percent: float


@dataclass(frozen=True)
class UploadFinished:
    summary: UploadSummary


@dataclass(frozen=True)
class UploadFailed:
    message: str


Event = Union[RunStarted, FileSelected, FileCleared, UploadStarted, Progressed, UploadFinished, UploadFailed]


def reduce(state: UploadState, event: Event) -> UploadState:
    """Next state for an event; events that make no sense in the current state are ignored."""
    if isinstance(event, RunStarted):
        # only the run that dispatched UploadStarted drives the import; a
        # later run finding it still uploading means that run was cut short
        if state.status != "uploading":
            return state
        return replace(state, status="failed", error=INTERRUPTED_MESSAGE)

    if isinstance(event, FileSelected):
        if state.status == "uploading":
            return state
        return UploadState(status="selected", file_name=event.file_name)

    if isinstance(event, FileCleared):
        if state.status == "uploading":
            return state
        return UploadState()

    if isinstance(event, UploadStarted):
        if state.status != "selected":
            return state
        return replace(state, status="uploading", progress=0.0, summary=None, error=None)

    if isinstance(event, Progressed):
        if state.status != "uploading":
            return state
        return replace(state, progress=max(state.progress, min(100.0, event.percent)))

    if isinstance(event, UploadFinished):
        if state.status != "uploading":
            return state
        return replace(state, status="done", progress=100.0, summary=event.summary)

    if isinstance(event, UploadFailed):
        if state.status != "uploading":
            return state
        return replace(state, status="failed", error=event.message)

    raise TypeError(f"Unknown upload event: {event!r}")
