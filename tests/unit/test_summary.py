from __future__ import annotations

import re
from datetime import UTC, datetime

import pytest

from mapcheck.models.annotation import ComplianceAnnotation
from mapcheck.models.product import ProductRecord
from mapcheck.models.run_result import ImportResult, SourceResult, SourceStatus
from mapcheck.services.summary import (
    BrandCount,
    catalog_stats,
    price_check_stats,
    render_check_summary_line,
    render_import_summary_line,
)


def _annotation(pid: int, difference: float, violation: bool) -> ComplianceAnnotation:
    return ComplianceAnnotation(
        product_id=pid,
        our_price=100.0 + difference,
        sale_price=None,
        map_price=100.0,
        tolerance=0.0,
        is_violation=violation,
        difference=difference,
    )


@pytest.fixture()
def products() -> list[ProductRecord]:
    return [
        ProductRecord(brand="Puma", sku="P1", id=1),
        ProductRecord(brand="Adidas", sku="A1", id=2),
        ProductRecord(brand="Adidas", sku="A2", id=3),
        ProductRecord(brand="Vans", sku="V1", id=4),
        ProductRecord(brand="Puma", sku="P2", id=5),
    ]


def test_catalog_stats_without_check(products):
    stats = catalog_stats(products)
    assert stats.total_records == 5
    assert stats.violation_count == 0
    # count desc, ties by name
    assert stats.brand_breakdown == [
        BrandCount("Adidas", 2),
        BrandCount("Puma", 2),
        BrandCount("Vans", 1),
    ]


def test_catalog_stats_counts_violations(products):
    annotations = {1: _annotation(1, -10, True), 2: _annotation(2, 5, False)}
    assert catalog_stats(products, annotations).violation_count == 1


def test_price_check_stats(products):
    annotations = {
        1: _annotation(1, -10.25, True),
        2: _annotation(2, -2.5, True),
        3: _annotation(3, 3.0, False),
        5: _annotation(5, -1.0, True),
    }
    stats = price_check_stats(products, annotations)
    assert stats.products_checked == 4
    assert stats.violation_count == 3
    assert stats.savings_at_risk == 13.75
    assert stats.brands_affected == [BrandCount("Puma", 2), BrandCount("Adidas", 1)]


def test_price_check_stats_empty(products):
    stats = price_check_stats(products, {})
    assert stats.products_checked == 0
    assert stats.savings_at_risk == 0
    assert stats.brands_affected == []


def test_render_import_summary_line():
    t = datetime.now(UTC)
    result = ImportResult(
        start_time=t,
        end_time=t,
        elapsed_seconds=1.5,
        source_results=[
            SourceResult("a", "A", SourceStatus.SUCCESS, rows_persisted=10),
            SourceResult("b", "B", SourceStatus.FAILED, error="boom"),
            SourceResult("c", "C", SourceStatus.SKIPPED),
        ],
    )
    line = render_import_summary_line(4, result)
    assert line == "SUMMARY sources=2/4 success=1 failed=1 skipped=1 products=10 elapsed_sec=1.5"


@pytest.mark.parametrize(
    "elapsed, rendered",
    [(0.0, "0"), (2.0, "2"), (0.1234, "0.123"), (0.0012341, "0.001234")],
)
def test_render_import_summary_elapsed_formatting(elapsed: float, rendered: str):
    t = datetime.now(UTC)
    line = render_import_summary_line(0, ImportResult(t, t, elapsed))
    assert line.endswith(f"elapsed_sec={rendered}")
    assert "e-" not in line


def test_render_check_summary_line(products):
    stats = price_check_stats(products, {1: _annotation(1, -6, True)})
    line = render_check_summary_line(3, stats)
    assert line == "SUMMARY rows=3 matched=1 violations=1 savings_at_risk=6.00"
    assert re.fullmatch(r"SUMMARY rows=\d+ matched=\d+ violations=\d+ savings_at_risk=\d+\.\d{2}", line)
