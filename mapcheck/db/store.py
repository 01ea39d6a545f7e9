from __future__ import annotations

import json
import math
import sqlite3
from collections.abc import Callable, Iterable
from pathlib import Path
from typing import Any

from mapcheck.db.batch_insert import BatchInsertError, BatchMetrics, batch_insert
from mapcheck.models.annotation import ComplianceAnnotation
from mapcheck.models.product import CORE_FIELDS, ProductRecord

"""Embedded product store (SQLite).

Two tables:

- ``products``: one row per ProductRecord. Ids come from AUTOINCREMENT so
  they are never reused, even after a full clear.
- ``compliance_annotations``: at most one row per product (primary key is the
  product id), cascaded away with the product.

Every public write runs in its own transaction: a batch is written entirely
or not at all.
"""

__all__ = [
    "StoreError",
    "ProductStore",
]

_SCHEMA = """
CREATE TABLE IF NOT EXISTS products (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    brand TEXT NOT NULL,
    sku TEXT NOT NULL,
    product_name TEXT,
    price REAL,
    color TEXT,
    category TEXT,
    gender TEXT,
    tolerance REAL NOT NULL DEFAULT 0,
    extra TEXT NOT NULL DEFAULT '{}'
);
CREATE INDEX IF NOT EXISTS idx_products_sku ON products (sku);
CREATE INDEX IF NOT EXISTS idx_products_brand ON products (brand);
CREATE TABLE IF NOT EXISTS compliance_annotations (
    product_id INTEGER PRIMARY KEY REFERENCES products (id) ON DELETE CASCADE,
    our_price REAL NOT NULL,
    sale_price REAL,
    map_price REAL NOT NULL,
    tolerance REAL NOT NULL,
    is_violation INTEGER NOT NULL,
    difference REAL NOT NULL
);
"""

PRODUCT_COLUMNS = [
    "brand", "sku", "product_name", "price", "color", "category", "gender", "tolerance", "extra",
]
ANNOTATION_COLUMNS = [
    "product_id", "our_price", "sale_price", "map_price", "tolerance", "is_violation", "difference",
]
# Attributes editable through update_field (extras are edited inside the JSON blob)
_EDITABLE_COLUMNS = {"brand", "sku", "product_name", "price", "color", "category", "gender", "tolerance"}


class StoreError(Exception):
    """Raised when a store read or write fails."""


def _product_values(record: ProductRecord) -> tuple[Any, ...]:
    return (
        record.brand,
        record.sku,
        record.product_name,
        record.price,
        record.color,
        record.category,
        record.gender,
        record.tolerance,
        json.dumps(record.extra, ensure_ascii=False),
    )


def _row_to_product(row: sqlite3.Row) -> ProductRecord:
    return ProductRecord(
        id=row["id"],
        brand=row["brand"],
        sku=row["sku"],
        product_name=row["product_name"],
        price=row["price"],
        color=row["color"],
        category=row["category"],
        gender=row["gender"],
        tolerance=row["tolerance"],
        extra=json.loads(row["extra"] or "{}"),
    )


def _row_to_annotation(row: sqlite3.Row) -> ComplianceAnnotation:
    return ComplianceAnnotation(
        product_id=row["product_id"],
        our_price=row["our_price"],
        sale_price=row["sale_price"],
        map_price=row["map_price"],
        tolerance=row["tolerance"],
        is_violation=bool(row["is_violation"]),
        difference=row["difference"],
    )


def _check_price(value: Any) -> None:
    if value is None:
        return
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"price must be a number or None, got {value!r}")
    if math.isnan(value) or math.isinf(value) or value < 0:
        raise ValueError(f"price must be a non-negative number, got {value!r}")


def _check_tolerance(value: Any) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"tolerance must be a number, got {value!r}")
    if not math.isfinite(value) or value < 0:
        raise ValueError(f"tolerance must be a non-negative number, got {value!r}")


class ProductStore:
    """SQLite-backed ProductRecord store.

    Usage:
        with ProductStore("data/mapcheck.db") as store:
            store.replace_all(records)
            products = store.get_all()
    """

    def __init__(self, path: str | Path = ":memory:") -> None:
        self.path = str(path)
        if self.path != ":memory:":
            Path(self.path).parent.mkdir(parents=True, exist_ok=True)
        try:
            self._conn = sqlite3.connect(self.path)
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA foreign_keys = ON")
            self._conn.executescript(_SCHEMA)
        except sqlite3.Error as e:
            raise StoreError(f"cannot open store {self.path}: {e}") from e

    def close(self) -> None:
        self._conn.close()

    def __enter__(self) -> ProductStore:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    # -- products ---------------------------------------------------------

    def clear(self) -> None:
        """Delete every product and annotation."""
        try:
            with self._conn:
                self._conn.execute("DELETE FROM compliance_annotations")
                self._conn.execute("DELETE FROM products")
        except sqlite3.Error as e:
            raise StoreError(f"clear failed: {e}") from e

    def _insert(
        self,
        cursor: sqlite3.Cursor,
        records: list[ProductRecord],
        metrics_callback: Callable[[BatchMetrics], None] | None,
    ) -> list[ProductRecord]:
        for record in records:
            _check_price(record.price)
            _check_tolerance(record.tolerance)
        result = batch_insert(
            cursor,
            "products",
            PRODUCT_COLUMNS,
            (_product_values(r) for r in records),
            returning=True,
            metrics_callback=metrics_callback,
        )
        return [r.with_id(i) for r, i in zip(records, result.row_ids or [], strict=True)]

    def bulk_insert(
        self,
        records: Iterable[ProductRecord],
        metrics_callback: Callable[[BatchMetrics], None] | None = None,
    ) -> list[ProductRecord]:
        """Insert a batch of new records atomically; returns them with ids."""
        batch = list(records)
        try:
            with self._conn:
                return self._insert(self._conn.cursor(), batch, metrics_callback)
        except (sqlite3.Error, BatchInsertError) as e:
            raise StoreError(f"bulk insert failed: {e}") from e

    def replace_all(self, records: Iterable[ProductRecord]) -> list[ProductRecord]:
        """Drop the current generation and insert ``records`` in one transaction."""
        batch = list(records)
        try:
            with self._conn:
                cur = self._conn.cursor()
                cur.execute("DELETE FROM compliance_annotations")
                cur.execute("DELETE FROM products")
                return self._insert(cur, batch, None)
        except (sqlite3.Error, BatchInsertError) as e:
            raise StoreError(f"replace failed: {e}") from e

    def bulk_upsert(self, records: Iterable[ProductRecord]) -> list[ProductRecord]:
        """Update records that carry an id, insert the others; one transaction."""
        batch = list(records)
        for record in batch:
            _check_price(record.price)
            _check_tolerance(record.tolerance)
        assignments = ",".join(f'"{c}"=excluded."{c}"' for c in PRODUCT_COLUMNS)
        cols_sql = ",".join(f'"{c}"' for c in ["id", *PRODUCT_COLUMNS])
        placeholders = ",".join("?" for _ in range(len(PRODUCT_COLUMNS) + 1))
        upsert_sql = (
            f"INSERT INTO products ({cols_sql}) VALUES ({placeholders}) "
            f"ON CONFLICT(id) DO UPDATE SET {assignments}"
        )
        out: list[ProductRecord] = []
        try:
            with self._conn:
                cur = self._conn.cursor()
                for record in batch:
                    if record.id is None:
                        out.extend(self._insert(cur, [record], None))
                    else:
                        cur.execute(upsert_sql, (record.id, *_product_values(record)))
                        out.append(record)
        except (sqlite3.Error, BatchInsertError) as e:
            raise StoreError(f"bulk upsert failed: {e}") from e
        return out

    def get_all(self) -> list[ProductRecord]:
        try:
            rows = self._conn.execute("SELECT * FROM products ORDER BY id").fetchall()
        except sqlite3.Error as e:
            raise StoreError(f"read failed: {e}") from e
        return [_row_to_product(r) for r in rows]

    def get(self, product_id: int) -> ProductRecord | None:
        row = self._conn.execute("SELECT * FROM products WHERE id = ?", (product_id,)).fetchone()
        return _row_to_product(row) if row is not None else None

    def count(self) -> int:
        return self._conn.execute("SELECT COUNT(*) FROM products").fetchone()[0]

    def update_field(self, product_id: int, field: str, value: Any) -> ProductRecord:
        """Edit a single field of one product.

        ``field`` may be a feed field name (``productName``), an attribute
        name (``product_name``) or an extra field (``mapEndDate``).

        Raises:
            KeyError: If the product does not exist
            ValueError: For ``id``, an empty SKU, an invalid price or tolerance
        """
        current = self.get(product_id)
        if current is None:
            raise KeyError(product_id)
        column = CORE_FIELDS.get(field, field)
        if column == "id":
            raise ValueError("the product id cannot be edited")
        if column == "sku" and not str(value or "").strip():
            raise ValueError("sku cannot be empty")
        if column == "price":
            _check_price(value)
        if column == "tolerance":
            _check_tolerance(value)
        try:
            with self._conn:
                if column in _EDITABLE_COLUMNS:
                    self._conn.execute(
                        f'UPDATE products SET "{column}" = ? WHERE id = ?', (value, product_id)
                    )
                else:
                    extra = dict(current.extra)
                    extra[field] = value
                    self._conn.execute(
                        "UPDATE products SET extra = ? WHERE id = ?",
                        (json.dumps(extra, ensure_ascii=False), product_id),
                    )
        except sqlite3.Error as e:
            raise StoreError(f"update failed: {e}") from e
        updated = self.get(product_id)
        if updated is None:
            raise StoreError(f"product {product_id} vanished during update")
        return updated

    # -- annotations ------------------------------------------------------

    def replace_annotations(self, annotations: Iterable[ComplianceAnnotation]) -> int:
        """Swap the whole annotation set for ``annotations``."""
        rows = [
            (
                a.product_id, a.our_price, a.sale_price, a.map_price,
                a.tolerance, int(a.is_violation), a.difference,
            )
            for a in annotations
        ]
        try:
            with self._conn:
                cur = self._conn.cursor()
                cur.execute("DELETE FROM compliance_annotations")
                result = batch_insert(cur, "compliance_annotations", ANNOTATION_COLUMNS, rows)
        except (sqlite3.Error, BatchInsertError) as e:
            raise StoreError(f"annotation write failed: {e}") from e
        return result.inserted_rows

    def clear_annotations(self) -> int:
        try:
            with self._conn:
                cur = self._conn.execute("DELETE FROM compliance_annotations")
        except sqlite3.Error as e:
            raise StoreError(f"clear check failed: {e}") from e
        return cur.rowcount

    def get_annotations(self) -> dict[int, ComplianceAnnotation]:
        rows = self._conn.execute(
            "SELECT * FROM compliance_annotations ORDER BY product_id"
        ).fetchall()
        return {r["product_id"]: _row_to_annotation(r) for r in rows}

    def has_annotations(self) -> bool:
        return self._conn.execute(
            "SELECT EXISTS (SELECT 1 FROM compliance_annotations)"
        ).fetchone()[0] == 1
