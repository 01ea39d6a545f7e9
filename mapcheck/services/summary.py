from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from mapcheck.models.annotation import ComplianceAnnotation
from mapcheck.models.product import ProductRecord
from mapcheck.models.run_result import ImportResult

"""Aggregation and SUMMARY line rendering.

Stats are pure reductions over the in-memory product set plus the current
annotation set. Brand breakdowns are sorted by count descending, ties by
brand name so the output is deterministic.

SUMMARY line formats:

    SUMMARY sources={run}/{configured} success={n} failed={n} skipped={n} products={n} elapsed_sec={x}
    SUMMARY rows={n} matched={n} violations={n} savings_at_risk={x.xx}
"""

__all__ = [
    "BrandCount",
    "CatalogStats",
    "PriceCheckStats",
    "catalog_stats",
    "price_check_stats",
    "render_import_summary_line",
    "render_check_summary_line",
]


@dataclass(frozen=True)
class BrandCount:
    name: str
    count: int


@dataclass(frozen=True)
class CatalogStats:
    total_records: int
    violation_count: int
    brand_breakdown: list[BrandCount] = field(default_factory=list)


@dataclass(frozen=True)
class PriceCheckStats:
    products_checked: int
    violation_count: int
    savings_at_risk: float
    brands_affected: list[BrandCount] = field(default_factory=list)


def _brand_counts(brands: Iterable[str]) -> list[BrandCount]:
    counts = Counter(b for b in brands if b)
    ordered = sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))
    return [BrandCount(name=name, count=count) for name, count in ordered]


def catalog_stats(
    products: list[ProductRecord],
    annotations: Mapping[int, ComplianceAnnotation] | None = None,
) -> CatalogStats:
    """Total records, violations and per-brand record counts."""
    annotations = annotations or {}
    violations = sum(1 for a in annotations.values() if a.is_violation)
    return CatalogStats(
        total_records=len(products),
        violation_count=violations,
        brand_breakdown=_brand_counts(p.brand for p in products),
    )


def price_check_stats(
    products: list[ProductRecord],
    annotations: Mapping[int, ComplianceAnnotation],
) -> PriceCheckStats:
    """Stats of the last price check.

    Savings at risk is the sum of ``|difference|`` over violations, i.e. the
    total amount by which violating prices undercut MAP.
    """
    by_id = {p.id: p for p in products}
    violating = [a for a in annotations.values() if a.is_violation]
    savings = sum(abs(a.difference) for a in violating)
    brands = (by_id[a.product_id].brand for a in violating if a.product_id in by_id)
    return PriceCheckStats(
        products_checked=len(annotations),
        violation_count=len(violating),
        savings_at_risk=round(savings, 2),
        brands_affected=_brand_counts(brands),
    )


def _format_seconds(value: float) -> str:
    if value == 0:
        return "0"
    if value == int(value):
        return str(int(value))
    if value < 0.01:
        # Avoid scientific notation for very small numbers
        return f"{value:.6f}".rstrip("0").rstrip(".")
    return f"{value:.3f}".rstrip("0").rstrip(".")


def render_import_summary_line(total_sources: int, result: ImportResult) -> str:
    """Render the import SUMMARY line.

    Args:
        total_sources: Number of configured sources (enabled or not)
        result: Finished import run

    Examples:
        >>> from datetime import datetime, timezone
        >>> t = datetime(2024, 1, 1, tzinfo=timezone.utc)
        >>> render_import_summary_line(0, ImportResult(t, t, 0.0))
        'SUMMARY sources=0/0 success=0 failed=0 skipped=0 products=0 elapsed_sec=0'
    """
    attempted = result.succeeded + result.failed
    return (
        f"SUMMARY sources={attempted}/{total_sources} "
        f"success={result.succeeded} "
        f"failed={result.failed} "
        f"skipped={result.skipped} "
        f"products={result.total_persisted} "
        f"elapsed_sec={_format_seconds(result.elapsed_seconds)}"
    )


def render_check_summary_line(rows_read: int, stats: PriceCheckStats) -> str:
    return (
        f"SUMMARY rows={rows_read} "
        f"matched={stats.products_checked} "
        f"violations={stats.violation_count} "
        f"savings_at_risk={stats.savings_at_risk:.2f}"
    )
