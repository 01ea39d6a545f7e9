from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path
from typing import Any

import pandas as pd

from mapcheck.services.query import ProductView

"""CSV export of listed products.

``default``
    Every product field except ``id`` and ``tolerance``, followed by the
    price check columns when the product was checked.
``rics``
    Point-of-sale import layout: ``SKU``, ``Price``, ``Sale Price`` taken
    from the price check (blank when unchecked).
"""

__all__ = [
    "EXPORT_FORMATS",
    "ExportError",
    "default_filename",
    "export_products",
    "export_rows",
]

EXPORT_FORMATS = ("default", "rics")
RICS_COLUMNS = ["SKU", "Price", "Sale Price"]
_DEFAULT_EXCLUDED = {"id", "tolerance"}


class ExportError(Exception):
    pass


def default_filename(fmt: str) -> str:
    return "rics_export.csv" if fmt == "rics" else "selected_products.csv"


def _default_row(view: ProductView) -> dict[str, Any]:
    row = {k: v for k, v in view.product.to_dict().items() if k not in _DEFAULT_EXCLUDED}
    a = view.annotation
    if a is not None:
        row.update(
            {
                "ourPrice": a.our_price,
                "salePrice": a.sale_price,
                "mapPrice": a.map_price,
                "isViolation": a.is_violation,
                "difference": round(a.difference, 2),
            }
        )
    return row


def _rics_row(view: ProductView) -> dict[str, Any]:
    a = view.annotation
    return {
        "SKU": view.product.sku,
        "Price": a.our_price if a is not None else "",
        "Sale Price": a.sale_price if a is not None and a.sale_price is not None else "",
    }


def export_rows(views: Iterable[ProductView], fmt: str = "default") -> list[dict[str, Any]]:
    if fmt not in EXPORT_FORMATS:
        raise ExportError(f"unknown export format: {fmt}")
    build = _rics_row if fmt == "rics" else _default_row
    return [build(v) for v in views]


def export_products(views: Iterable[ProductView], path: Path, fmt: str = "default") -> int:
    """Write ``views`` to ``path`` as CSV and return the number of rows.

    Raises:
        ExportError: On an unknown format, an empty selection or a write failure
    """
    rows = export_rows(views, fmt)
    if not rows:
        raise ExportError("No products selected for export.")
    df = pd.DataFrame(rows, columns=RICS_COLUMNS if fmt == "rics" else None)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        df.to_csv(path, index=False)
    except OSError as e:
        raise ExportError(f"cannot write {path}: {e}") from e
    return len(rows)
