from __future__ import annotations

import time
from collections.abc import Callable, Iterable
from datetime import UTC, datetime
from functools import partial
from typing import Any

from mapcheck.db.store import ProductStore, StoreError
from mapcheck.feeds.columns import extract_fields
from mapcheck.feeds.fetch import fetch_feed_text
from mapcheck.feeds.filters import apply_row_filter
from mapcheck.feeds.normalizers import normalize_date, normalize_price, normalize_sku
from mapcheck.feeds.reader import header_preview, parse_feed_text, split_header
from mapcheck.logging.init import log_summary
from mapcheck.logging.run_log import RunLog
from mapcheck.models.config_models import SourceConfig
from mapcheck.models.product import ProductRecord
from mapcheck.models.run_result import ImportResult, SourceResult, SourceStatus
from mapcheck.services.progress import ProgressTracker
from mapcheck.services.summary import render_import_summary_line

"""Source import pipeline.

A run is a full refresh: the store is cleared first, then each enabled
source is fetched, parsed, sliced at its header row, filtered, mapped to
ProductRecords and persisted in its own transaction. Sources run one after
the other.

Only a failed clear aborts the run (ImportAbortedError). Anything that goes
wrong inside a source is caught at the source boundary, logged once to the
run log, and recorded as a failed SourceResult; the next source still runs.
"""

__all__ = [
    "Fetcher",
    "ImportAbortedError",
    "SourceConfigError",
    "build_records",
    "run_import",
]

Fetcher = Callable[[str], str]


class ImportAbortedError(Exception):
    """Raised when the store cannot be cleared; nothing was imported."""

    def __init__(self, message: str, result: ImportResult | None = None) -> None:
        super().__init__(message)
        self.result = result


class SourceConfigError(Exception):
    """Raised when a source profile cannot be applied to its feed."""


def _normalize_value(field_name: str, value: Any) -> Any:
    lowered = field_name.lower()
    if "price" in lowered:
        price = normalize_price(value)
        # MAP can't be negative; a negative cell is a data error, not a price
        if price is not None and price < 0:
            return None
        return price
    if "date" in lowered:
        return normalize_date(value)
    return value


def build_records(source: SourceConfig, rows: Iterable[list[str]]) -> list[ProductRecord]:
    """Map data rows to ProductRecords; rows without a SKU are dropped.

    Raises:
        SourceConfigError: If the source has no column mapping or no SKU column
    """
    if not source.columns:
        raise SourceConfigError(f"No column mapping found for {source.name}.")
    if "sku" not in source.columns:
        raise SourceConfigError(f"No SKU column mapped for {source.name}.")

    records: list[ProductRecord] = []
    for row in rows:
        values = {
            name: _normalize_value(name, cell)
            for name, cell in extract_fields(source.columns, row).items()
        }
        values["sku"] = normalize_sku(values.get("sku"), source.id)
        if not values["sku"]:
            continue
        records.append(ProductRecord.from_fields(source.name, source.tolerance, values))
    return records


def _import_single_source(
    source: SourceConfig,
    store: ProductStore,
    fetcher: Fetcher,
    run_log: RunLog,
) -> SourceResult:
    """Run one source through fetch → parse → filter → map → persist.

    Every exception is converted into a failed SourceResult here.
    """
    start = time.perf_counter()
    stage = SourceStatus.FETCHING
    rows_in = 0
    rows_after_filter = 0
    run_log.info(f"[{source.name}] Starting import...", source=source.id)
    try:
        text = fetcher(source.url or "")

        stage = SourceStatus.PARSING
        all_rows = parse_feed_text(text, delimiter=source.delimiter)
        sheet = split_header(all_rows, source.header_row)
        run_log.info(
            f"[{source.name}] Header row preview: {header_preview(sheet.header)}",
            source=source.id,
        )
        rows_in = len(sheet.rows)

        stage = SourceStatus.FILTERING
        data_rows = apply_row_filter(source, sheet.rows, run_log)
        rows_after_filter = len(data_rows)

        stage = SourceStatus.MAPPING
        records = build_records(source, data_rows)

        stage = SourceStatus.PERSISTING
        saved = store.bulk_insert(records)
    except Exception as e:
        run_log.error(f"[{source.name}] Import failed: {e}", source=source.id)
        return SourceResult(
            source_id=source.id,
            source_name=source.name,
            status=SourceStatus.FAILED,
            rows_in=rows_in,
            rows_after_filter=rows_after_filter,
            elapsed_seconds=time.perf_counter() - start,
            error=str(e),
            failed_stage=stage,
        )

    run_log.success(
        f"[{source.name}] Successfully imported {len(saved)} products.", source=source.id
    )
    return SourceResult(
        source_id=source.id,
        source_name=source.name,
        status=SourceStatus.SUCCESS,
        rows_in=rows_in,
        rows_after_filter=rows_after_filter,
        rows_persisted=len(saved),
        elapsed_seconds=time.perf_counter() - start,
    )


def run_import(
    sources: Iterable[SourceConfig],
    store: ProductStore,
    *,
    fetcher: Fetcher | None = None,
    run_log: RunLog | None = None,
    proxy_prefix: str | None = None,
    progress: bool = True,
) -> ImportResult:
    """Replace the store contents with a fresh import of every enabled source.

    Args:
        sources: Configured source profiles, in import order
        store: Target product store (cleared first)
        fetcher: ``url -> text``; defaults to an HTTP fetch honoring ``proxy_prefix``
        run_log: Run log receiving user-facing entries (a new one if omitted)
        proxy_prefix: Pass-through proxy for the default fetcher
        progress: Show a progress bar when stdout is a TTY

    Returns:
        ImportResult with one SourceResult per configured source

    Raises:
        ImportAbortedError: If the store could not be cleared
    """
    sources = list(sources)
    run_log = run_log if run_log is not None else RunLog()
    if fetcher is None:
        fetcher = partial(fetch_feed_text, proxy_prefix=proxy_prefix)

    start_time = datetime.now(UTC)
    run_log.info("Starting data import process...")

    try:
        store.clear()
    except StoreError as e:
        run_log.error(f"Error clearing database: {e}")
        end_time = datetime.now(UTC)
        aborted = ImportResult(
            start_time=start_time,
            end_time=end_time,
            elapsed_seconds=(end_time - start_time).total_seconds(),
            aborted=True,
            error=str(e),
        )
        raise ImportAbortedError(f"store clear failed: {e}", aborted) from e
    run_log.info("Cleared existing product data.")

    results: list[SourceResult] = []
    importable = [s for s in sources if s.is_importable]
    succeeded = failed = persisted = 0

    with ProgressTracker(len(importable), enabled=progress) as tracker:
        for source in sources:
            if not source.is_importable:
                results.append(
                    SourceResult(
                        source_id=source.id,
                        source_name=source.name,
                        status=SourceStatus.SKIPPED,
                    )
                )
                continue

            tracker.start_source(source.name)
            result = _import_single_source(source, store, fetcher, run_log)
            results.append(result)
            if result.ok:
                succeeded += 1
                persisted += result.rows_persisted
            else:
                failed += 1
            tracker.set_postfix(success=succeeded, failed=failed, products=persisted)
            tracker.finish_source()

    run_log.info(f"Import process finished. Total products imported: {persisted}.")

    end_time = datetime.now(UTC)
    result = ImportResult(
        start_time=start_time,
        end_time=end_time,
        elapsed_seconds=(end_time - start_time).total_seconds(),
        source_results=results,
    )
    log_summary(render_import_summary_line(len(sources), result).removeprefix("SUMMARY "))
    return result

