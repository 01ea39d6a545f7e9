from __future__ import annotations

from typing import Any

"""Built-in vendor source profiles and default settings.

A profile is plain data: display name, feed URL, header row, tolerance and
the column letters of each canonical field. Supporting a new brand means
adding a profile here (or in the YAML config), not adding code.
"""

__all__ = [
    "COLUMN_MAPPINGS",
    "default_settings",
]

COLUMN_MAPPINGS: dict[str, dict[str, str]] = {
    "nike": {
        "season": "A", "category": "B", "styleCode": "C", "sku": "D", "productName": "E",
        "color": "F", "gender": "K", "ageGroup": "J", "class": "L", "price": "M",
        "promotion": "P", "exceptionPrice": "Q",
    },
    "adidas": {
        "category": "A", "productName": "B", "color": "C", "sku": "E", "price": "F",
        "promotion": "I", "mapStartDate": "K", "mapEndDate": "L",
    },
    "puma": {
        "sku": "A", "productName": "B", "color": "C", "price": "D", "gender": "E", "category": "F",
    },
    "new_balance": {
        "sku": "I", "productName": "C", "color": "J", "price": "N", "gender": "E",
        "category": "B", "promotion": "F", "exception": "R", "mapEndDate": "O",
    },
    "vans": {
        "category": "B", "sku": "C", "productName": "D", "color": "E", "price": "F",
    },
}

_SHEETS = "https://docs.google.com/spreadsheets/d/e/{key}/pub?output=csv"
_NIKE_KEY = "2PACX-1vQUry3OuGo26H7oTV3nZlRh3k0k0wV82m1Y9mDBXCIH1upQAIlpkYXmal42DB6Cig"


def _source(
    source_id: str,
    name: str,
    key: str,
    header_row: int,
    *,
    enabled: bool = True,
    columns: str | None = None,
) -> dict[str, Any]:
    return {
        "id": source_id,
        "name": name,
        "url": _SHEETS.format(key=key),
        "delimiter": ",",
        "enabled": enabled,
        "headerRow": header_row,
        "tolerance": 0.05,
        "columns": dict(COLUMN_MAPPINGS[columns or source_id]),
    }


def default_settings() -> dict[str, Any]:
    """Fresh copy of the default settings document (YAML/JSON shape)."""
    return {
        "dataSources": [
            _source("puma", "Puma",
                    "2PACX-1vRZvhcSwzg6uE6dHOOANX_4DBqIP_cUEHycIjfMwFpjONxofEgWbkFsdlOL-JDm2w", 3),
            _source("nike", "Nike / Jordan", _NIKE_KEY, 2),
            _source("new_balance", "New Balance",
                    "2PACX-1vTna228DtiB54_PP6ZRNi7i2Ocbt8fYXEap05kVaMkGyQnebBqfl16yAm9BMEKfEw", 1),
            _source("adidas", "Adidas",
                    "2PACX-1vTVE1EueNaZebSSEluaC2rmOT0YOZAVncIxQmOKRVCuT7dLuy9uu4aD8IMfj6nvHA", 1),
            _source("jordan", "Jordan", _NIKE_KEY, 2, enabled=False, columns="nike"),
            _source("vans", "Vans",
                    "2PACX-1vQ80PhQE3tpEddVahbx7IBG9wt2qvdmlUaQIA0CGsoD1fvcEqt3MAnOWESpOdJiLA", 9),
        ],
        "uploadColumnMapping": {"sku": "sku", "price": "price", "salePrice": "salePrice"},
        "store": {"path": "data/mapcheck.db"},
        "proxyPrefix": None,
        "logsDirectory": "logs",
    }
