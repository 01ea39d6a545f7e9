from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

"""Spreadsheet column letter helpers.

Source profiles address feed cells by column letter (``A`` = first column).
One- and two-letter columns are accepted (``A``..``ZZ``); feeds observed so far
only use single letters.
"""

__all__ = [
    "NOT_FOUND",
    "MAX_COLUMN_INDEX",
    "column_letter_to_index",
    "index_to_column_letter",
    "extract_fields",
]

NOT_FOUND = -1
MAX_LETTERS = 2
# ZZ -> 26 * 26 + 26 - 1
MAX_COLUMN_INDEX = 701


def column_letter_to_index(letter: Any) -> int:
    """Translate a column letter into a zero-based column index.

    Returns ``NOT_FOUND`` (-1) for ``None``, non-strings, empty strings,
    anything that is not made of ASCII letters, and columns beyond ``ZZ``.

    >>> column_letter_to_index("a")
    0
    >>> column_letter_to_index(" AB ")
    27
    >>> column_letter_to_index("A1")
    -1
    """
    if not letter or not isinstance(letter, str):
        return NOT_FOUND
    clean = letter.strip().upper()
    if not clean or len(clean) > MAX_LETTERS:
        return NOT_FOUND
    value = 0
    for ch in clean:
        if not ("A" <= ch <= "Z"):
            return NOT_FOUND
        value = value * 26 + (ord(ch) - ord("A") + 1)
    return value - 1


def index_to_column_letter(index: int) -> str:
    """Inverse of :func:`column_letter_to_index` for indexes 0..701."""
    if index < 0 or index > MAX_COLUMN_INDEX:
        raise ValueError(f"column index out of range: {index}")
    letters = ""
    n = index + 1
    while n > 0:
        n, rem = divmod(n - 1, 26)
        letters = chr(ord("A") + rem) + letters
    return letters


def extract_fields(columns: Mapping[str, str], row: Sequence[Any]) -> dict[str, Any]:
    """Pick the mapped cells out of a raw feed row.

    Short rows are expected: a field whose column is unresolvable or lies past
    the end of the row yields ``None``.
    """
    values: dict[str, Any] = {}
    for field, letter in columns.items():
        idx = column_letter_to_index(letter)
        if idx != NOT_FOUND and idx < len(row):
            values[field] = row[idx]
        else:
            values[field] = None
    return values
