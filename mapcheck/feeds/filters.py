from __future__ import annotations

from collections.abc import Callable

from mapcheck.feeds.columns import NOT_FOUND, column_letter_to_index
from mapcheck.logging.run_log import RunLog
from mapcheck.models.config_models import SourceConfig

"""Brand-specific row filters applied to feed data rows before mapping.

Filters are looked up by source id in ``ROW_FILTERS``. A source without an
entry keeps every row.
"""

__all__ = [
    "MAP_WINDOW_FIELD",
    "MAP_WINDOW_TOKEN",
    "ROW_FILTERS",
    "RowFilter",
    "apply_row_filter",
    "map_window_filter",
]

RowFilter = Callable[[SourceConfig, list[list[str]], RunLog], list[list[str]]]

MAP_WINDOW_FIELD = "promotion"
MAP_WINDOW_TOKEN = "MAP"


def map_window_filter(
    source: SourceConfig, rows: list[list[str]], run_log: RunLog
) -> list[list[str]]:
    """Keep rows whose pricing-window column reads ``MAP``.

    The vendor interleaves MAP and non-MAP pricing windows in one sheet. If the
    window column cannot be resolved the rows are passed through unfiltered
    with a warning.
    """
    letter = source.columns.get(MAP_WINDOW_FIELD)
    idx = column_letter_to_index(letter)
    if idx == NOT_FOUND:
        run_log.warning(
            f"[{source.name}] WARNING: MAP window column not found for filtering. "
            "Importing all rows.",
            source=source.id,
        )
        return rows
    kept = [
        row for row in rows
        if idx < len(row) and row[idx].strip().upper() == MAP_WINDOW_TOKEN
    ]
    run_log.info(
        f"[{source.name}] Filtered to {len(kept)} rows where Column {letter} is "
        f"'{MAP_WINDOW_TOKEN}'.",
        source=source.id,
    )
    return kept


ROW_FILTERS: dict[str, RowFilter] = {
    "adidas": map_window_filter,
}


def apply_row_filter(
    source: SourceConfig, rows: list[list[str]], run_log: RunLog
) -> list[list[str]]:
    row_filter = ROW_FILTERS.get(source.id)
    if row_filter is None:
        return rows
    return row_filter(source, rows, run_log)
