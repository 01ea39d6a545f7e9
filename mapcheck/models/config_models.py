from __future__ import annotations

from dataclasses import dataclass, field
from collections.abc import Mapping

"""Configuration dataclasses for the MAP compliance tool.

These are the immutable values produced by ``mapcheck.config.loader``. The
loader validates the raw YAML; the dataclasses only carry the result.
"""


@dataclass(frozen=True)
class SourceConfig:
    """One vendor feed (a "source profile").

    ``columns`` maps a canonical field name (``sku``, ``price``,
    ``productName``...) to the spreadsheet column letter holding it.
    ``header_row`` is 1-based: data starts on the row right after it.
    ``tolerance`` is the currency amount subtracted from MAP before comparing.
    """
    id: str
    name: str
    url: str | None
    enabled: bool = True
    header_row: int = 1
    tolerance: float = 0.0
    columns: Mapping[str, str] = field(default_factory=dict)
    delimiter: str = ","

    @property
    def is_importable(self) -> bool:
        return self.enabled and bool(self.url)


@dataclass(frozen=True)
class UploadColumnMapping:
    """Header names of the retailer's uploaded price file."""
    sku: str = "sku"
    price: str = "price"
    sale_price: str | None = "salePrice"


@dataclass(frozen=True)
class StoreConfig:
    """Location of the embedded product store (SQLite file)."""
    path: str = "data/mapcheck.db"


@dataclass(frozen=True)
class AppConfig:
    """Root configuration object, built once per process."""
    sources: tuple[SourceConfig, ...]
    upload_column_mapping: UploadColumnMapping
    store: StoreConfig
    proxy_prefix: str | None = None  # pass-through proxy, feed URL is appended encoded
    logs_directory: str = "logs"

    def source(self, source_id: str) -> SourceConfig:
        for src in self.sources:
            if src.id == source_id:
                return src
        raise KeyError(source_id)

    @property
    def enabled_sources(self) -> tuple[SourceConfig, ...]:
        return tuple(s for s in self.sources if s.is_importable)
