from __future__ import annotations

import csv
import io
import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import pandas as pd

"""Tabular readers for vendor feeds and uploaded price files.

Vendor feeds are addressed by column letter and are frequently ragged (title
rows with one cell, notes rows, trailing empty cells trimmed by the sheet
export), so they are read positionally into lists of strings with no header
interpretation. The header row position comes from the source profile.

Uploaded price files are regular tables: first row is the header, blank lines
are skipped, every cell is kept as text. CSV and XLSX are accepted.
"""

__all__ = [
    "FeedParseError",
    "HeaderRowError",
    "PriceFileError",
    "FeedSheet",
    "parse_feed_text",
    "split_header",
    "header_preview",
    "read_price_file",
    "read_price_table",
]

PREVIEW_CELLS = 10
EXCEL_SUFFIXES = {".xlsx", ".xlsm"}


class FeedParseError(Exception):
    """Raised when feed text cannot be split into rows."""


class HeaderRowError(Exception):
    """Raised when the configured header row lies outside the sheet."""


class PriceFileError(Exception):
    """Raised when an uploaded price file cannot be read."""


@dataclass
class FeedSheet:
    header: list[str]
    rows: list[list[str]]  # data rows after the header row, ragged


def parse_feed_text(text: str, delimiter: str = ",") -> list[list[str]]:
    """Split delimited feed text into rows of cell strings.

    Rows keep their own length; blank lines become empty rows so that row
    numbers line up with the spreadsheet.
    """
    if text is None:
        raise FeedParseError("feed text is empty")
    # Sheets exports may start with a BOM
    if text.startswith("\ufeff"):
        text = text[1:]
    try:
        return [row for row in csv.reader(io.StringIO(text, newline=""), delimiter=delimiter)]
    except csv.Error as e:
        raise FeedParseError(f"malformed delimited text: {e}") from e


def split_header(rows: list[list[str]], header_row: int) -> FeedSheet:
    """Slice a parsed sheet at the 1-based ``header_row``.

    Rows up to and including ``header_row`` are header/noise; data starts on
    the next row.

    Raises:
        HeaderRowError: If ``header_row`` is < 1 or beyond the last row
    """
    if header_row < 1:
        raise HeaderRowError(f"header row must be >= 1, got {header_row}")
    if len(rows) < header_row:
        raise HeaderRowError(
            f"No data found or header row is out of bounds "
            f"(header row {header_row}, sheet has {len(rows)} rows)."
        )
    return FeedSheet(header=list(rows[header_row - 1]), rows=rows[header_row:])


def header_preview(header: list[str], cells: int = PREVIEW_CELLS) -> str:
    return " | ".join(str(c) for c in header[:cells])


def _frame_to_rows(df: pd.DataFrame) -> list[dict[str, str]]:
    df = df.fillna("")
    df.columns = [str(c).strip() for c in df.columns]
    rows: list[dict[str, str]] = []
    for rec in df.to_dict(orient="records"):
        row = {k: str(v) for k, v in rec.items()}
        # Skip rows where every cell is blank
        if any(v.strip() for v in row.values()):
            rows.append(row)
    return rows


def read_price_table(text: str, delimiter: str = ",") -> list[dict[str, str]]:
    """Read an uploaded price table from text (header row first)."""
    try:
        df = pd.read_csv(
            io.StringIO(text),
            sep=delimiter,
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
        )
    except pd.errors.EmptyDataError as e:
        raise PriceFileError("price file is empty") from e
    except (pd.errors.ParserError, ValueError) as e:
        raise PriceFileError(f"cannot parse price file: {e}") from e
    return _frame_to_rows(df)


def read_price_file(path: Path, delimiter: str = ",") -> list[dict[str, Any]]:
    """Read an uploaded price file (CSV or XLSX) into header-keyed rows.

    Raises:
        PriceFileError: If the file is missing or cannot be parsed
    """
    if not path.exists():
        raise PriceFileError(f"price file not found: {path}")
    if path.suffix.lower() in EXCEL_SUFFIXES:
        try:
            df = pd.read_excel(path, dtype=str, keep_default_na=False)
        except (ValueError, OSError, zipfile.BadZipFile) as e:
            raise PriceFileError(f"cannot read workbook {path.name}: {e}") from e
        return _frame_to_rows(df)
    try:
        text = path.read_text(encoding="utf-8-sig")
    except (OSError, UnicodeDecodeError) as e:
        raise PriceFileError(f"cannot read {path.name}: {e}") from e
    return read_price_table(text, delimiter=delimiter)
