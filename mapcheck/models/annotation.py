from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any

"""ComplianceAnnotation model.

Produced by a reconciliation run for each stored product matched by the
uploaded price file. Annotations live beside the products (1:0..1, keyed by
product id) and the whole set is replaced on every run.
"""

__all__ = [
    "ComplianceAnnotation",
]


@dataclass(frozen=True)
class ComplianceAnnotation:
    """Price check result for one product.

    Attributes:
        product_id: Store id of the matched ProductRecord
        our_price: Regular price from the uploaded file
        sale_price: Sale price from the uploaded file, if any
        map_price: MAP copied from the product at match time
        tolerance: Brand tolerance used for the comparison
        is_violation: True when the price used is below MAP minus tolerance
        difference: price used minus MAP (negative means underpriced)
    """
    product_id: int
    our_price: float
    sale_price: float | None
    map_price: float
    tolerance: float
    is_violation: bool
    difference: float

    @property
    def price_used(self) -> float:
        return self.sale_price if self.sale_price is not None else self.our_price

    @property
    def floor(self) -> float:
        return self.map_price - self.tolerance

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
