from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest

from mapcheck.db.store import ProductStore, StoreError
from mapcheck.models.annotation import ComplianceAnnotation
from mapcheck.models.product import ProductRecord


def _annotation(product_id: int, violation: bool = True) -> ComplianceAnnotation:
    return ComplianceAnnotation(
        product_id=product_id,
        our_price=90.0,
        sale_price=None,
        map_price=100.0,
        tolerance=0.0,
        is_violation=violation,
        difference=-10.0,
    )


def test_bulk_insert_assigns_ids(store: ProductStore, sample_products):
    saved = store.bulk_insert(sample_products)
    assert [p.id for p in saved] == [1, 2, 3, 4]
    assert store.count() == 4
    assert store.get_all() == saved


def test_round_trip_keeps_extra_fields(store: ProductStore):
    record = ProductRecord(
        brand="Adidas", sku="GZ1234", price=None, extra={"promotion": "MAP", "mapEndDate": None}
    )
    (saved,) = store.bulk_insert([record])
    loaded = store.get(saved.id)
    assert loaded is not None
    assert loaded.price is None
    assert loaded.extra == {"promotion": "MAP", "mapEndDate": None}


def test_bulk_insert_is_atomic(store: ProductStore, sample_products):
    bad = ProductRecord(brand="X", sku="BAD", price=-1.0)
    with pytest.raises(ValueError):
        store.bulk_insert([*sample_products, bad])
    assert store.count() == 0


def test_clear_removes_products_and_annotations(seeded_store: ProductStore):
    seeded_store.replace_annotations([_annotation(1)])
    seeded_store.clear()
    assert seeded_store.count() == 0
    assert seeded_store.get_annotations() == {}


def test_ids_are_not_reused_after_clear(seeded_store: ProductStore):
    seeded_store.clear()
    (saved,) = seeded_store.bulk_insert([ProductRecord(brand="Puma", sku="P1")])
    assert saved.id == 5


def test_replace_all(seeded_store: ProductStore):
    saved = seeded_store.replace_all([ProductRecord(brand="Vans", sku="V1", price=55.0)])
    assert seeded_store.count() == 1
    assert seeded_store.get_all() == saved


def test_bulk_upsert_updates_and_inserts(seeded_store: ProductStore):
    first = seeded_store.get(1)
    assert first is not None
    changed = ProductRecord(
        id=first.id, brand=first.brand, sku=first.sku, product_name="Renamed", price=130.0
    )
    new = ProductRecord(brand="Puma", sku="NEW-1", price=10.0)
    out = seeded_store.bulk_upsert([changed, new])
    assert out[0].id == 1
    assert out[1].id == 5
    assert seeded_store.get(1).product_name == "Renamed"  # type: ignore[union-attr]
    assert seeded_store.count() == 5


def test_update_field_core_and_extra(seeded_store: ProductStore):
    updated = seeded_store.update_field(1, "productName", "Air Max")
    assert updated.product_name == "Air Max"
    assert updated.id == 1
    updated = seeded_store.update_field(1, "price", 99.5)
    assert updated.price == 99.5
    updated = seeded_store.update_field(1, "mapEndDate", "2025-01-31")
    assert updated.extra["mapEndDate"] == "2025-01-31"


def test_update_field_validation(seeded_store: ProductStore):
    with pytest.raises(KeyError):
        seeded_store.update_field(999, "price", 1.0)
    with pytest.raises(ValueError):
        seeded_store.update_field(1, "id", 7)
    with pytest.raises(ValueError):
        seeded_store.update_field(1, "price", -5.0)
    with pytest.raises(ValueError):
        seeded_store.update_field(1, "price", "12")
    with pytest.raises(ValueError):
        seeded_store.update_field(1, "sku", "  ")
    assert seeded_store.get(1).price == 120.0  # type: ignore[union-attr]


def test_replace_annotations_wipes_previous_set(seeded_store: ProductStore):
    assert seeded_store.replace_annotations([_annotation(1), _annotation(2, violation=False)]) == 2
    assert set(seeded_store.get_annotations()) == {1, 2}
    seeded_store.replace_annotations([_annotation(3)])
    annotations = seeded_store.get_annotations()
    assert set(annotations) == {3}
    assert annotations[3].is_violation is True
    assert seeded_store.has_annotations()


def test_clear_annotations(seeded_store: ProductStore):
    seeded_store.replace_annotations([_annotation(1), _annotation(2)])
    assert seeded_store.clear_annotations() == 2
    assert not seeded_store.has_annotations()
    assert seeded_store.count() == 4


def test_annotation_for_unknown_product_rejected(seeded_store: ProductStore):
    with pytest.raises(StoreError):
        seeded_store.replace_annotations([_annotation(42)])


def test_file_store_persists(tmp_path: Path):
    path = tmp_path / "nested" / "mapcheck.db"
    with ProductStore(path) as s:
        s.bulk_insert([ProductRecord(brand="Puma", sku="P1", price=1.0)])
    with ProductStore(path) as s:
        assert [p.sku for p in s.get_all()] == ["P1"]


@pytest.mark.parametrize("bad", [-50.0, float("nan"), float("inf"), None, "5", True])
def test_update_field_rejects_invalid_tolerance(seeded_store: ProductStore, bad):
    with pytest.raises(ValueError, match="tolerance"):
        seeded_store.update_field(1, "tolerance", bad)
    assert seeded_store.get(1).tolerance == 0.05  # type: ignore[union-attr]


def test_update_field_tolerance(seeded_store: ProductStore):
    assert seeded_store.update_field(1, "tolerance", 2.5).tolerance == 2.5
    assert seeded_store.update_field(1, "tolerance", 0).tolerance == 0


def test_bulk_upsert_rejects_negative_tolerance(seeded_store: ProductStore):
    first = seeded_store.get(1)
    assert first is not None
    bad = ProductRecord(id=1, brand=first.brand, sku=first.sku, price=first.price, tolerance=-1.0)
    with pytest.raises(ValueError, match="tolerance"):
        seeded_store.bulk_upsert([bad])
    assert seeded_store.get(1).tolerance == 0.05  # type: ignore[union-attr]


def test_bulk_insert_rejects_negative_tolerance(store: ProductStore):
    with pytest.raises(ValueError, match="tolerance"):
        store.bulk_insert([ProductRecord(brand="X", sku="T1", tolerance=-0.5)])
    assert store.count() == 0


def test_update_field_product_removed_mid_update(seeded_store: ProductStore):
    current = seeded_store.get(1)
    with patch.object(seeded_store, "get", side_effect=[current, None]):
        with pytest.raises(StoreError, match="vanished"):
            seeded_store.update_field(1, "color", "Red")
