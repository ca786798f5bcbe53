# screens/bulk_upload/parser.py
"""
CSV -> import rows.

Every value stays a string; a short line leaves the missing trailing
columns as None. A line with more values than the header has columns
keeps its header columns and carries EXTRA_VALUES_KEY so the validator
can reject it. Nothing is coerced here, the validator and the
orchestrator decide what a value means.
"""
from __future__ import annotations

import logging
import warnings
from typing import IO, Dict, Iterator, Optional, Union

import pandas as pd

log = logging.getLogger(__name__)

ImportRow = Dict[str, Optional[str]]
CsvSource = Union[IO[bytes], IO[str]]

DEFAULT_CHUNK_SIZE = 500
# overflow column read after the header's own columns
EXTRA_VALUES_KEY = "__extra_values__"

_READ_OPTIONS = dict(
    dtype=str,
    keep_default_na=False,
    skip_blank_lines=True,
    index_col=False,
    encoding="utf-8-sig",
)


class ParseError(Exception):
    """The uploaded file could not be tokenized as CSV."""


def normalize_header(name: object) -> str:
    return str(name).strip().lower().replace(" ", "_")


def _cell(value: object) -> Optional[str]:
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return None
    return str(value).strip()


def _rewind(handle: CsvSource) -> None:
    if hasattr(handle, "seek") and getattr(handle, "seekable", lambda: True)():
        handle.seek(0)


def parse_rows(handle: CsvSource, chunk_size: int = DEFAULT_CHUNK_SIZE) -> Iterator[ImportRow]:
    """
    Lazily yield one mapping per non-empty data line, keyed by the
    normalized header names. The handle must be seekable; each call
    starts over from the top.
    """
    _rewind(handle)
    try:
        header = list(pd.read_csv(handle, nrows=0, **_READ_OPTIONS).columns)
        _rewind(handle)
        reader = pd.read_csv(
            handle,
            header=0,
            names=header + [EXTRA_VALUES_KEY],
            chunksize=chunk_size,
            **_READ_OPTIONS,
        )
    except pd.errors.EmptyDataError:
        log.info("CSV upload has no header line; nothing to import")
        return
    except (pd.errors.ParserError, UnicodeDecodeError, ValueError) as e:
        raise ParseError(f"Could not read CSV file: {e}") from e

    columns = [normalize_header(c) for c in header] + [EXTRA_VALUES_KEY]
    with reader:
        while True:
            try:
                with warnings.catch_warnings():
                    # values past the overflow column are dropped; the row is rejected anyway
                    warnings.simplefilter("ignore", pd.errors.ParserWarning)
                    chunk = next(reader, None)
            except (pd.errors.ParserError, UnicodeDecodeError) as e:
                raise ParseError(f"Could not read CSV file: {e}") from e
            if chunk is None:
                return
            for values in chunk.itertuples(index=False, name=None):
                row = {col: _cell(v) for col, v in zip(columns, values)}
                if row.get(EXTRA_VALUES_KEY) is None:
                    row.pop(EXTRA_VALUES_KEY, None)
                yield row
