# Shared pytest fixtures
from __future__ import annotations

import tempfile
from collections.abc import Callable
from pathlib import Path

import pytest

from mapcheck.db.store import ProductStore
from mapcheck.logging.init import reset_logging
from mapcheck.logging.run_log import RunLog
from mapcheck.models.config_models import SourceConfig
from mapcheck.models.product import ProductRecord


@pytest.fixture(autouse=True)
def fresh_logging():
    # The console handler binds sys.stdout at setup time; rebind per test so
    # capsys sees the output.
    reset_logging()
    yield
    reset_logging()


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        monkeypatch.delenv("MAPCHECK_CONFIG", raising=False)
        monkeypatch.delenv("MAPCHECK_DB_PATH", raising=False)
        yield p


@pytest.fixture()
def sample_config_yaml() -> str:
    return """dataSources:
  - id: nike
    name: Nike / Jordan
    url: https://feeds.example.com/nike.csv
    headerRow: 2
    tolerance: 0.05
    columns:
      sku: D
      productName: E
      color: F
      price: M
  - id: adidas
    name: Adidas
    url: https://feeds.example.com/adidas.csv
    headerRow: 1
    tolerance: 0.05
    columns:
      category: A
      productName: B
      color: C
      sku: E
      price: F
      promotion: I
      mapStartDate: K
      mapEndDate: L
  - id: vans
    name: Vans
    url: ""
    enabled: true
    columns:
      sku: C
      price: F
uploadColumnMapping:
  sku: sku
  price: price
  salePrice: salePrice
store:
  path: data/mapcheck.db
logsDirectory: logs
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "mapcheck.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture()
def store():
    with ProductStore(":memory:") as s:
        yield s


@pytest.fixture()
def run_log(tmp_path: Path) -> RunLog:
    return RunLog(logs_dir=tmp_path / "logs")


@pytest.fixture()
def make_source() -> Callable[..., SourceConfig]:
    def _make(
        source_id: str = "puma",
        name: str = "Puma",
        *,
        url: str | None = "https://feeds.example.com/feed.csv",
        header_row: int = 1,
        tolerance: float = 0.05,
        columns: dict[str, str] | None = None,
        enabled: bool = True,
    ) -> SourceConfig:
        return SourceConfig(
            id=source_id,
            name=name,
            url=url,
            enabled=enabled,
            header_row=header_row,
            tolerance=tolerance,
            columns=columns if columns is not None else {
                "sku": "A", "productName": "B", "color": "C", "price": "D",
            },
        )
    return _make


@pytest.fixture()
def sample_products() -> list[ProductRecord]:
    return [
        ProductRecord(brand="Nike / Jordan", sku="N123", product_name="Air Zoom", price=120.0, tolerance=0.05),
        ProductRecord(brand="Nike / Jordan", sku="AB 123", product_name="Dunk Low", price=100.0, tolerance=5.0),
        ProductRecord(brand="Puma", sku="PU-900", product_name="Suede", price=70.0, tolerance=0.0),
        ProductRecord(brand="Vans", sku="VN0A", product_name="Old Skool", price=None, tolerance=0.05),
    ]


@pytest.fixture()
def seeded_store(store: ProductStore, sample_products: list[ProductRecord]) -> ProductStore:
    store.bulk_insert(sample_products)
    return store


class FakeFetcher:
    """``url -> text`` stand-in; URLs mapped to an Exception raise it."""

    def __init__(self, responses: dict[str, str | Exception]) -> None:
        self.responses = responses
        self.calls: list[str] = []

    def __call__(self, url: str) -> str:
        self.calls.append(url)
        resp = self.responses[url]
        if isinstance(resp, Exception):
            raise resp
        return resp


@pytest.fixture()
def fake_fetcher() -> type[FakeFetcher]:
    return FakeFetcher
