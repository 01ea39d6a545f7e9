from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any

"""ProductRecord model: the canonical vendor catalog entry.

A record is built from one feed row. Column-mapping field names use the
feed vocabulary (``productName``); the well-known ones land on attributes and
everything else is kept in ``extra`` (``promotion``, ``mapEndDate``...).
"""

__all__ = [
    "CORE_FIELDS",
    "ProductRecord",
]

# feed field name -> attribute name
CORE_FIELDS: dict[str, str] = {
    "sku": "sku",
    "productName": "product_name",
    "price": "price",
    "color": "color",
    "category": "category",
    "gender": "gender",
}


@dataclass(frozen=True)
class ProductRecord:
    """Canonical product entity persisted in the store.

    ``id`` is ``None`` until the store assigns one. ``price`` is the MAP price
    (non-negative) or ``None`` when the feed has no usable price.
    """
    brand: str
    sku: str
    product_name: str | None = None
    price: float | None = None
    color: str | None = None
    category: str | None = None
    gender: str | None = None
    tolerance: float = 0.0
    extra: dict[str, Any] = field(default_factory=dict)
    id: int | None = None

    @classmethod
    def from_fields(
        cls, brand: str, tolerance: float, values: dict[str, Any]
    ) -> ProductRecord:
        """Build a record from normalized feed values keyed by feed field name."""
        core: dict[str, Any] = {}
        extra: dict[str, Any] = {}
        for name, value in values.items():
            attr = CORE_FIELDS.get(name)
            if attr is not None:
                core[attr] = value
            else:
                extra[name] = value
        return cls(
            brand=brand,
            tolerance=tolerance,
            sku=core.pop("sku", "") or "",
            extra=extra,
            **core,
        )

    def with_id(self, record_id: int) -> ProductRecord:
        return replace(self, id=record_id)

    def get(self, name: str, default: Any = None) -> Any:
        """Field lookup by either feed name or attribute name."""
        attr = CORE_FIELDS.get(name, name)
        if attr in ("brand", "tolerance", "id") or attr in CORE_FIELDS.values():
            return getattr(self, attr)
        return self.extra.get(name, default)

    def to_dict(self) -> dict[str, Any]:
        """Flat dict using feed field names; extras follow the core fields."""
        out: dict[str, Any] = {
            "id": self.id,
            "brand": self.brand,
            "sku": self.sku,
            "productName": self.product_name,
            "price": self.price,
            "color": self.color,
            "category": self.category,
            "gender": self.gender,
            "tolerance": self.tolerance,
        }
        for key, value in self.extra.items():
            out.setdefault(key, value)
        return out
