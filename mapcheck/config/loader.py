from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from mapcheck.config.profiles import default_settings
from mapcheck.models.config_models import (
    AppConfig,
    SourceConfig,
    StoreConfig,
    UploadColumnMapping,
)

"""Settings loader.

Responsibilities:
- Load the YAML settings file (``config/mapcheck.yml`` by default)
- Validate it against the packaged JSON schema
- Merge it over the built-in defaults, once, at load time
- Apply environment overrides (``MAPCHECK_DB_PATH``)
- Return an immutable AppConfig

Top-level keys present in the file replace the default value wholesale: a
file that lists ``dataSources`` replaces the whole built-in source list.
"""

__all__ = [
    "ConfigError",
    "DEFAULT_CONFIG_PATH",
    "SCHEMA_PATH",
    "build_config",
    "default_config",
    "load_config",
    "resolve_config_path",
]

SCHEMA_PATH = Path(__file__).with_name("config_schema.json")
DEFAULT_CONFIG_PATH = Path("config/mapcheck.yml")

CONFIG_PATH_ENV = "MAPCHECK_CONFIG"
DB_PATH_ENV = "MAPCHECK_DB_PATH"


class ConfigError(Exception):
    pass


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate raw settings data against the JSON schema.

    Raises:
        ConfigError: If the schema file is missing or unreadable, or the data
            fails validation (unknown keys, wrong types, header row < 1,
            negative tolerance, malformed column letters...).
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")
    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"config validation failed: {e.message}") from e


def _build_source(raw: dict[str, Any]) -> SourceConfig:
    columns = {
        field: (letter or "").strip().upper()
        for field, letter in (raw.get("columns") or {}).items()
    }
    return SourceConfig(
        id=raw["id"],
        name=raw["name"],
        url=raw.get("url") or None,
        enabled=bool(raw.get("enabled", True)),
        header_row=int(raw.get("headerRow", 1)),
        tolerance=float(raw.get("tolerance", 0.0)),
        columns=columns,
        delimiter=raw.get("delimiter") or ",",
    )


def build_config(data: dict[str, Any] | None = None) -> AppConfig:
    """Merge ``data`` over the defaults and build the AppConfig.

    ``data`` is validated before merging; the defaults are trusted.
    """
    data = data or {}
    _validate_config_schema(data)
    merged = {**default_settings(), **data}

    sources = tuple(_build_source(s) for s in merged["dataSources"])
    ids = [s.id for s in sources]
    duplicates = sorted({i for i in ids if ids.count(i) > 1})
    if duplicates:
        raise ConfigError(f"duplicate source ids: {duplicates}")

    upload_raw = merged["uploadColumnMapping"]
    upload = UploadColumnMapping(
        sku=upload_raw["sku"],
        price=upload_raw["price"],
        sale_price=upload_raw.get("salePrice") or None,
    )

    store_raw = merged.get("store") or {}
    db_path = os.getenv(DB_PATH_ENV) or store_raw.get("path") or StoreConfig.path

    return AppConfig(
        sources=sources,
        upload_column_mapping=upload,
        store=StoreConfig(path=db_path),
        proxy_prefix=merged.get("proxyPrefix") or None,
        logs_directory=merged.get("logsDirectory") or "logs",
    )


def default_config() -> AppConfig:
    return build_config({})


def load_config(path: Path) -> AppConfig:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"config root must be a mapping: {path}")
    return build_config(data)


def resolve_config_path(explicit: str | None = None) -> Path | None:
    """Pick the settings file: explicit argument, then env, then the default.

    Returns None when no explicit path was asked for and the default file does
    not exist, meaning "run on built-in defaults".
    """
    if explicit:
        return Path(explicit)
    env_path = os.getenv(CONFIG_PATH_ENV)
    if env_path:
        return Path(env_path)
    if DEFAULT_CONFIG_PATH.exists():
        return DEFAULT_CONFIG_PATH
    return None
