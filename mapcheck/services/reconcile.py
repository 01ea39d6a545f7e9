from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from mapcheck.feeds.normalizers import normalize_price, normalize_sku
from mapcheck.models.annotation import ComplianceAnnotation
from mapcheck.models.config_models import UploadColumnMapping
from mapcheck.models.product import ProductRecord

"""Reconciliation of an uploaded price file against stored MAP data.

Matching is first-match-wins over two explicit, ordered lists:

``SKU_CANDIDATE_STRATEGIES``
    Variants derived from the uploaded SKU (raw, hyphens as spaces, spaces
    removed, hyphens removed). Identical variants collapse, order is kept.

``LOOKUP_NORMALIZATIONS``
    For each candidate, the index is probed with the default SKU
    normalization first, then with the hyphen-to-space brand rule.

Uploaded rows that match nothing, or that have no usable price, are left
out of the result without a diagnostic. The engine is pure: persisting
the annotations is up to the caller.
"""

__all__ = [
    "SKU_CANDIDATE_STRATEGIES",
    "LOOKUP_NORMALIZATIONS",
    "ReconciliationResult",
    "build_sku_index",
    "sku_candidates",
    "match_product",
    "check_price",
    "reconcile",
]

SkuStrategy = tuple[str, Callable[[str], str]]

SKU_CANDIDATE_STRATEGIES: list[SkuStrategy] = [
    ("raw", lambda s: s),
    ("hyphen_to_space", lambda s: s.replace("-", " ")),
    ("no_spaces", lambda s: s.replace(" ", "")),
    ("no_hyphens", lambda s: s.replace("-", "")),
]

LOOKUP_NORMALIZATIONS: list[SkuStrategy] = [
    ("default", lambda s: normalize_sku(s)),
    # any brand of HYPHEN_TO_SPACE_BRANDS selects the rule
    ("hyphen_to_space", lambda s: normalize_sku(s, "nike")),
]


@dataclass(frozen=True)
class ReconciliationResult:
    """Annotations keyed by product id plus row accounting."""
    annotations: dict[int, ComplianceAnnotation] = field(default_factory=dict)
    rows_read: int = 0
    rows_matched: int = 0  # rows that produced an annotation
    rows_skipped: int = 0  # blank SKU, no match, or no usable price

    @property
    def violation_count(self) -> int:
        return sum(1 for a in self.annotations.values() if a.is_violation)


def build_sku_index(products: Iterable[ProductRecord]) -> dict[str, ProductRecord]:
    """Index products by default-normalized SKU. Later duplicates win."""
    index: dict[str, ProductRecord] = {}
    for product in products:
        key = normalize_sku(product.sku)
        if key:
            index[key] = product
    return index


def sku_candidates(raw_sku: str) -> list[str]:
    """Ordered, de-duplicated SKU variants of a trimmed uploaded SKU."""
    candidates: list[str] = []
    for _, strategy in SKU_CANDIDATE_STRATEGIES:
        candidate = strategy(raw_sku)
        if candidate not in candidates:
            candidates.append(candidate)
    return candidates


def match_product(raw_sku: Any, index: Mapping[str, ProductRecord]) -> ProductRecord | None:
    """Find the stored product for an uploaded SKU, or None."""
    sku = "" if raw_sku is None else str(raw_sku).strip()
    if not sku:
        return None
    for candidate in sku_candidates(sku):
        for _, normalization in LOOKUP_NORMALIZATIONS:
            hit = index.get(normalization(candidate))
            if hit is not None:
                return hit
    return None


def check_price(
    product: ProductRecord, our_price: float, sale_price: float | None
) -> ComplianceAnnotation | None:
    """Compare a retailer price against the product's MAP.

    Returns None when the product has no MAP. The floor is MAP minus the
    brand tolerance and a price exactly at the floor is compliant.
    """
    if product.price is None or product.id is None:
        return None
    map_price = product.price
    tolerance = product.tolerance or 0.0
    price_used = sale_price if sale_price is not None else our_price
    return ComplianceAnnotation(
        product_id=product.id,
        our_price=our_price,
        sale_price=sale_price,
        map_price=map_price,
        tolerance=tolerance,
        is_violation=price_used < map_price - tolerance,
        difference=price_used - map_price,
    )


def reconcile(
    rows: Iterable[Mapping[str, Any]],
    mapping: UploadColumnMapping,
    products: Iterable[ProductRecord],
) -> ReconciliationResult:
    """Build the annotation set for an uploaded price table.

    Args:
        rows: Uploaded rows keyed by header name
        mapping: Which headers hold SKU, price and sale price
        products: Current store contents (with ids)

    Returns:
        ReconciliationResult; when several rows hit the same product the
        last one wins
    """
    index = build_sku_index(products)
    annotations: dict[int, ComplianceAnnotation] = {}
    rows_read = 0
    rows_matched = 0

    for row in rows:
        rows_read += 1
        product = match_product(row.get(mapping.sku), index)
        if product is None:
            continue
        our_price = normalize_price(row.get(mapping.price))
        if our_price is None:
            continue
        sale_raw = row.get(mapping.sale_price) if mapping.sale_price else None
        sale_price = normalize_price(sale_raw) if sale_raw else None
        annotation = check_price(product, our_price, sale_price)
        if annotation is None:
            continue
        annotations[annotation.product_id] = annotation
        rows_matched += 1

    return ReconciliationResult(
        annotations=annotations,
        rows_read=rows_read,
        rows_matched=rows_matched,
        rows_skipped=rows_read - rows_matched,
    )
