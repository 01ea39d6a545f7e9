from __future__ import annotations

import sqlite3
import time
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from typing import Any

"""Batch INSERT helper for the embedded store.

Rows are written with ``cursor.executemany``. When the caller needs the
generated primary keys (``returning=True``) rows are executed one by one and
``cursor.lastrowid`` is collected, since executemany does not report ids.

Transaction boundaries belong to the caller; this function never commits.
"""

__all__ = [
    "BatchInsertError",
    "BatchMetrics",
    "InsertResult",
    "batch_insert",
]


class BatchInsertError(Exception):
    pass


@dataclass(frozen=True)
class BatchMetrics:
    """Timing data for one batch insert."""
    batch_size: int  # Number of rows in this batch
    elapsed_seconds: float
    start_time: float  # time.time() at start
    end_time: float  # time.time() at end


@dataclass(frozen=True)
class InsertResult:
    inserted_rows: int
    row_ids: list[int] | None = None


def batch_insert(
    cursor: Any,
    table: str,
    columns: Sequence[str],
    rows: Iterable[Sequence[Any]],
    returning: bool = False,
    metrics_callback: Callable[[BatchMetrics], None] | None = None,
) -> InsertResult:
    """Insert ``rows`` into ``table``.

    Parameters
    ----------
    cursor: DB-API cursor (sqlite3)
    table: target table name (trusted, not user input)
    columns: column names, in row order
    rows: row value sequences
    returning: collect generated row ids into ``InsertResult.row_ids``
    metrics_callback: receives one BatchMetrics per non-empty call
    """
    rows_list = [tuple(r) for r in rows]
    if not rows_list:
        return InsertResult(inserted_rows=0, row_ids=[] if returning else None)

    cols_sql = ",".join(f'"{c}"' for c in columns)
    placeholders = ",".join("?" for _ in columns)
    sql = f'INSERT INTO "{table}" ({cols_sql}) VALUES ({placeholders})'

    row_ids: list[int] | None = [] if returning else None
    start_time = time.time()
    try:
        if returning:
            for row in rows_list:
                cursor.execute(sql, row)
                row_ids.append(cursor.lastrowid)  # type: ignore[union-attr]
        else:
            cursor.executemany(sql, rows_list)
    except sqlite3.Error as e:
        raise BatchInsertError(str(e)) from e
    finally:
        end_time = time.time()
        if metrics_callback is not None:
            metrics_callback(
                BatchMetrics(
                    batch_size=len(rows_list),
                    elapsed_seconds=end_time - start_time,
                    start_time=start_time,
                    end_time=end_time,
                )
            )

    return InsertResult(inserted_rows=len(rows_list), row_ids=row_ids)
