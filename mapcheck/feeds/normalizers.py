from __future__ import annotations

import math
import re
from typing import Any

import pandas as pd

"""Value normalizers applied to feed cells and uploaded price rows.

All three functions are total: bad input maps to ``None`` (or ``""`` for
SKUs), never to an exception.
"""

__all__ = [
    "HYPHEN_TO_SPACE_BRANDS",
    "NO_EXPIRY_TOKENS",
    "normalize_price",
    "normalize_date",
    "normalize_sku",
]

# Vendors whose feed SKUs use spaces where retailers type hyphens.
HYPHEN_TO_SPACE_BRANDS = frozenset({"nike", "jordan"})

NO_EXPIRY_TOKENS = frozenset({"", "ALWAYS ON", "-"})

_NON_NUMERIC = re.compile(r"[^0-9.\-]+")
_LEADING_NUMBER = re.compile(r"-?(?:\d+(?:\.\d*)?|\.\d+)")


def normalize_price(value: Any) -> float | None:
    """Parse a currency-ish cell into a float.

    Everything except digits, ``.`` and ``-`` is stripped first, then the
    leading numeric part is parsed, so ``"$1,234.56"`` becomes ``1234.56``
    and ``"N/A"`` becomes ``None``.
    """
    if value is None:
        return None
    if isinstance(value, float) and pd.isna(value):
        return None
    cleaned = _NON_NUMERIC.sub("", str(value))
    match = _LEADING_NUMBER.match(cleaned)
    if match is None:
        return None
    try:
        result = float(match.group(0))
    except ValueError:  # pragma: no cover - regex guarantees a float literal
        return None
    # very long digit runs overflow to inf
    if not math.isfinite(result):
        return None
    return result


def normalize_date(value: Any) -> str | None:
    """Return the (trimmed) date text if it parses, ``None`` otherwise.

    ``ALWAYS ON``, ``-`` and blank cells mean the MAP window has no end and
    also map to ``None``.
    """
    if value is None:
        return None
    text = str(value).strip()
    if text.upper() in NO_EXPIRY_TOKENS:
        return None
    try:
        parsed = pd.to_datetime(text, errors="coerce")
    except (ValueError, TypeError, OverflowError):
        return None
    if pd.isna(parsed):
        return None
    return text


def normalize_sku(sku: Any, brand_id: str | None = None) -> str:
    """Comparison key for a SKU.

    The default rule trims whitespace. Brands listed in
    ``HYPHEN_TO_SPACE_BRANDS`` also turn every hyphen into a space; hyphens are
    replaced before trimming so the function is idempotent.
    """
    if sku is None:
        return ""
    text = str(sku)
    if not text:
        return ""
    if brand_id is not None and brand_id.lower() in HYPHEN_TO_SPACE_BRANDS:
        text = text.replace("-", " ")
    return text.strip()
