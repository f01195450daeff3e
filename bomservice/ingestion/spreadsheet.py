# bomservice/ingestion/spreadsheet.py

from __future__ import annotations

import csv
import io
import logging
import zipfile
from datetime import date, datetime, time
from pathlib import PurePath
from typing import Any, Dict, Iterable, List, Optional, Sequence

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

logger = logging.getLogger(__name__)

CSV_SUFFIXES = {".csv"}

RawRow = Dict[str, Any]


class SpreadsheetParseError(RuntimeError):
    """Raised when an uploaded file cannot be read as a spreadsheet."""


def _cell_value(value: Any) -> Any:
    if isinstance(value, str):
        value = value.strip()
        return value or None
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    return value


def _rows_to_records(rows: Iterable[Sequence[Any]]) -> List[RawRow]:
    """
    Turn a header row plus data rows into header -> value mappings.

    Blank cells are left out of the mapping and fully blank rows are skipped.
    Columns without a header are ignored.
    """
    iterator = iter(rows)
    header_row = next(iterator, None)
    if header_row is None:
        return []

    headers: List[Optional[str]] = [
        str(h).strip() if h is not None and str(h).strip() else None
        for h in header_row
    ]

    records: List[RawRow] = []
    for values in iterator:
        record: RawRow = {}
        for header, raw in zip(headers, values):
            if header is None:
                continue
            value = _cell_value(raw)
            if value is not None:
                record[header] = value
        if record:
            records.append(record)
    return records


def _read_xlsx(content: bytes) -> List[RawRow]:
    try:
        workbook = load_workbook(io.BytesIO(content), read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError) as exc:
        raise SpreadsheetParseError(f"Not a readable Excel workbook: {exc}") from exc

    try:
        worksheet = workbook.worksheets[0]
        logger.debug("Reading worksheet %r", worksheet.title)
        return _rows_to_records(worksheet.iter_rows(values_only=True))
    finally:
        workbook.close()


def _read_csv(content: bytes) -> List[RawRow]:
    try:
        text = content.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise SpreadsheetParseError(f"CSV file is not UTF-8 encoded: {exc}") from exc
    return _rows_to_records(csv.reader(io.StringIO(text)))


def read_spreadsheet_rows(content: bytes, filename: str | None = None) -> List[RawRow]:
    """
    Parse an uploaded spreadsheet into ordered row records.

    - `.csv` files are read as UTF-8 text.
    - Everything else is opened as an Excel workbook; only the first
      worksheet is used.
    - The first row holds the column headers.
    """
    if not content:
        raise SpreadsheetParseError("Uploaded file is empty.")

    suffix = PurePath(filename).suffix.lower() if filename else ""
    if suffix in CSV_SUFFIXES:
        records = _read_csv(content)
    else:
        records = _read_xlsx(content)

    logger.info("Parsed %d data rows from %s", len(records), filename or "<upload>")
    return records
