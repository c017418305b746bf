"""Decode CSV text into rows of named fields."""

from __future__ import annotations

import csv
import io
from dataclasses import dataclass
from pathlib import Path

import pandas as pd

from .errors import EmptyFileError, ParseError
from .fileops import FileOps
from .models import CellValue, DetectedFile

NO_DATA_MESSAGE = "No data found in CSV file"


@dataclass(frozen=True)
class DecodedCsv:
    """Rows and headers of a decoded CSV document."""

    rows: list[dict[str, CellValue]]
    headers: list[str]

    @property
    def row_count(self) -> int:
        return len(self.rows)


def _check_field_counts(text: str, file_name: str) -> None:
    """Reject records whose field count differs from the header's.

    pandas pads short records with empty cells, so record widths are
    checked on the raw records.

    Raises:
        ParseError: On the first record with too few or too many fields.

    """
    try:
        records = [record for record in csv.reader(io.StringIO(text)) if record]
    except csv.Error as e:
        raise ParseError(file_name, str(e)) from e
    if not records:
        return

    expected = len(records[0])
    for row, record in enumerate(records[1:], start=1):
        if len(record) < expected:
            problem = "Too few fields"
        elif len(record) > expected:
            problem = "Too many fields"
        else:
            continue
        raise ParseError(
            file_name,
            f"{problem}: expected {expected} fields but parsed {len(record)} (row {row})",
        )


def decode_csv(text: str, file_name: str = "<text>") -> DecodedCsv:
    """Decode CSV text using the first record as header.

    Blank lines are skipped and every cell is kept as the string found in
    the file, so ``007`` stays ``"007"``.

    Args:
        text: CSV document.
        file_name: Name used in error messages.

    Returns:
        Decoded rows and headers.

    Raises:
        ParseError: If the tokenizer rejects a row or a row's field count
            differs from the header's.
        EmptyFileError: If there are no data rows.

    """
    try:
        # header=None keeps a too-long first row from becoming an index column
        frame = pd.read_csv(
            io.StringIO(text),
            header=None,
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
        )
    except pd.errors.EmptyDataError as e:
        raise EmptyFileError(file_name, NO_DATA_MESSAGE) from e
    except (pd.errors.ParserError, UnicodeDecodeError, ValueError) as e:
        raise ParseError(file_name, str(e).strip()) from e

    _check_field_counts(text, file_name)

    if len(frame.index) < 2:
        raise EmptyFileError(file_name, NO_DATA_MESSAGE)

    headers = [str(value) for value in frame.iloc[0]]
    rows = [
        dict(zip(headers, (str(value) for value in values)))
        for values in frame.iloc[1:].itertuples(index=False, name=None)
    ]
    return DecodedCsv(rows=rows, headers=headers)


def detect_file(path: Path) -> DetectedFile:
    """Snapshot metadata and decode ``path`` into a ``DetectedFile``.

    Read and decode failures end up in ``parse_error`` instead of raising.

    Args:
        path: CSV file to inspect.

    Returns:
        Detected file record.

    Raises:
        OSError: If the file cannot be stat'ed.

    """
    info = FileOps.get_file_info(path)
    detected = DetectedFile(
        file_name=info.name,
        file_path=path,
        size=info.size,
        last_modified=info.last_modified,
    )

    try:
        text = FileOps.read_text(path)
    except (OSError, UnicodeDecodeError) as e:
        detected.parse_error = f"Failed to read file: {e}"
        return detected

    try:
        decoded = decode_csv(text, info.name)
    except (ParseError, EmptyFileError) as e:
        detected.parse_error = e.reason
        return detected

    detected.parsed_rows = decoded.rows
    detected.headers = decoded.headers
    return detected
