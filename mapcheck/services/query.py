from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from mapcheck.models.annotation import ComplianceAnnotation
from mapcheck.models.product import ProductRecord

"""Product listing: filtering and sorting over store contents.

Annotation fields (``ourPrice``, ``salePrice``, ``difference``,
``isViolation``) can be used as sort keys next to the product fields.
"""

__all__ = [
    "ProductFilter",
    "ProductView",
    "filter_products",
    "join_annotations",
    "sort_products",
]

ANNOTATION_KEYS = {
    "ourPrice": "our_price",
    "salePrice": "sale_price",
    "mapPrice": "map_price",
    "difference": "difference",
    "isViolation": "is_violation",
}


@dataclass(frozen=True)
class ProductView:
    """A product together with its annotation from the last price check."""
    product: ProductRecord
    annotation: ComplianceAnnotation | None = None

    def value(self, key: str) -> Any:
        attr = ANNOTATION_KEYS.get(key)
        if attr is not None:
            return getattr(self.annotation, attr) if self.annotation is not None else None
        return self.product.get(key)


@dataclass(frozen=True)
class ProductFilter:
    """Listing filter. Empty/None criteria match everything.

    ``min_price`` and ``max_price`` apply to the MAP price; products
    without a price always pass them.
    """
    search: str = ""
    brand: str | None = None
    category: str | None = None
    map_only: bool = False
    violations_only: bool = False
    min_price: float | None = None
    max_price: float | None = None

    def matches(self, view: ProductView) -> bool:
        p = view.product
        if self.brand and p.brand != self.brand:
            return False
        if self.category and p.category != self.category:
            return False
        if self.search:
            needle = self.search.lower()
            in_sku = needle in (p.sku or "").lower()
            in_name = needle in (p.product_name or "").lower()
            if not (in_sku or in_name):
                return False
        if self.map_only and not (p.price is not None and p.price > 0):
            return False
        if self.violations_only and not (view.annotation and view.annotation.is_violation):
            return False
        if self.min_price is not None and p.price is not None and p.price < self.min_price:
            return False
        if self.max_price is not None and p.price is not None and p.price > self.max_price:
            return False
        return True


def join_annotations(
    products: Iterable[ProductRecord],
    annotations: Mapping[int, ComplianceAnnotation] | None = None,
    *,
    checked_only: bool = False,
) -> list[ProductView]:
    """Pair products with their annotations.

    With ``checked_only`` only products matched by the last price check are
    returned.
    """
    annotations = annotations or {}
    views = []
    for product in products:
        annotation = annotations.get(product.id) if product.id is not None else None
        if checked_only and annotation is None:
            continue
        views.append(ProductView(product, annotation))
    return views


def filter_products(views: Iterable[ProductView], criteria: ProductFilter) -> list[ProductView]:
    return [v for v in views if criteria.matches(v)]


def sort_products(
    views: Iterable[ProductView], key: str, descending: bool = False
) -> list[ProductView]:
    """Sort by a field name; rows where the field is None always go last."""
    views = list(views)
    present = [v for v in views if v.value(key) is not None]
    missing = [v for v in views if v.value(key) is None]
    present.sort(key=lambda v: v.value(key), reverse=descending)
    return present + missing
