# screens/bulk_upload/page.py
from __future__ import annotations

import logging

import streamlit as st

from core.cache import bump
from core.policy import current_store, require_page
from core.ui import handle_error
from screens.bulk_upload.orchestrator import upload_students
from screens.bulk_upload.parser import ParseError, parse_rows
from screens.bulk_upload.state import (
    FileCleared, FileSelected, Progressed, RunStarted, UploadFailed, UploadFinished, UploadStarted,
    UploadState, reduce,
)
from screens.bulk_upload.template import TEMPLATE_FILE_NAME, TEMPLATE_HEADERS, TEMPLATE_MIME, build_template

log = logging.getLogger(__name__)


def _k(s: str) -> str:
    return f"bulk_upload__{s}"


def _state() -> UploadState:
    return st.session_state.get(_k("state")) or UploadState()


def _dispatch(event) -> UploadState:
    new_state = reduce(_state(), event)
    st.session_state[_k("state")] = new_state
    return new_state


def _render_format_help():
    with st.expander("📋 File format requirements"):
        st.markdown(
            "- Comma-separated text with a header line\n"
            "- `full_name` is required on every row\n"
            "- `student_id`: letters and numbers only, at least 3 characters\n"
            "- `admission_number`: digits only, at least 4 digits\n"
            "- `form_level`: one of `form_1`, `form_2`, `form_3`, `form_4`\n"
            "- `blood_group`: one of `A+ A- B+ B- AB+ AB- O+ O-`\n"
            "- Dates as `YYYY-MM-DD`; unknown columns are ignored\n"
            "- A line with more values than the header has columns is rejected"
        )
        st.caption("Recognized columns: " + ", ".join(TEMPLATE_HEADERS))


def _render_results(state: UploadState):
    summary = state.summary
    if summary is None:
        return
    st.markdown("#### " + ("✅ Upload Results" if summary.failed == 0 else "⚠️ Upload Results"))
    c1, c2, c3 = st.columns(3)
    c1.metric("Total Records", summary.total)
    c2.metric("Successful", summary.success)
    c3.metric("Failed", summary.failed)
    if summary.errors:
        st.markdown("**Errors:**")
        for line in summary.display_errors():
            if line.startswith("Row "):
                st.error(line)
            else:
                st.caption(line)


@require_page("Data Import")
def render():
    st.title("📥 Data Import")
    st.caption("Bulk-create student records from a CSV file.")

    st.download_button(
        label="Download CSV Template",
        data=build_template(),
        file_name=TEMPLATE_FILE_NAME,
        mime=TEMPLATE_MIME,
        key=_k("template"),
    )
    _render_format_help()

    # a rerun raised mid-import (widget click, navigation) is a BaseException
    # and skips the except below; settle that upload before anything else
    prev = _state()
    state = _dispatch(RunStarted())
    if prev.status == "uploading":
        log.warning("Upload of %s was interrupted at %.0f%%", prev.file_name, prev.progress)

    up = st.file_uploader("Upload CSV", type="csv", key=_k("uploader"))
    if up is not None and (state.file_name != up.name or state.status == "idle"):
        state = _dispatch(FileSelected(up.name))
    elif up is None and state.status in ("selected", "done", "failed"):
        state = _dispatch(FileCleared())

    if state.status == "selected":
        st.info(f"Ready to import **{state.file_name}**")
        if st.button("Upload Students", type="primary", key=_k("go")):
            state = _dispatch(UploadStarted())

    if state.status == "uploading" and up is not None:
        try:
            rows = list(parse_rows(up))
        except ParseError as e:
            log.warning("Upload of %s rejected: %s", up.name, e)
            state = _dispatch(UploadFailed(str(e)))
        else:
            if not rows:
                state = _dispatch(UploadFailed("The file has no data rows"))
            else:
                bar = st.progress(0, text=f"Importing {len(rows)} rows...")

                def _progress(pct: float):
                    _dispatch(Progressed(pct))
                    bar.progress(min(100, int(pct)), text=f"Importing... {pct:.0f}%")

                try:
                    summary = upload_students(rows, current_store(), _progress)
                except Exception as e:
                    handle_error(e, "The upload stopped unexpectedly.")
                    state = _dispatch(UploadFailed(str(e)))
                else:
                    bump()
                    state = _dispatch(UploadFinished(summary))

    if state.status == "failed":
        st.error(f"Upload failed: {state.error}")
        if up is not None and st.button("Try again", key=_k("retry")):
            _dispatch(FileSelected(up.name))
            st.rerun()
    elif state.status == "done":
        _render_results(state)
