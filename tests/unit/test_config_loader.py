from __future__ import annotations

from pathlib import Path

import pytest

from mapcheck.config.loader import (
    ConfigError,
    build_config,
    default_config,
    load_config,
    resolve_config_path,
)


def test_load_config_success(write_config: Path):
    cfg = load_config(write_config)
    assert [s.id for s in cfg.sources] == ["nike", "adidas", "vans"]
    nike = cfg.source("nike")
    assert nike.name == "Nike / Jordan"
    assert nike.header_row == 2
    assert nike.tolerance == 0.05
    assert nike.columns["sku"] == "D"
    assert cfg.upload_column_mapping.sale_price == "salePrice"
    assert cfg.store.path == "data/mapcheck.db"


def test_enabled_sources_skip_missing_url(write_config: Path):
    cfg = load_config(write_config)
    assert [s.id for s in cfg.enabled_sources] == ["nike", "adidas"]
    assert cfg.source("vans").url is None


def test_load_config_missing_file(temp_workdir: Path):
    with pytest.raises(ConfigError, match="not found"):
        load_config(temp_workdir / "config" / "not_exists.yml")


def test_load_config_invalid_yaml(temp_workdir: Path):
    cfg = temp_workdir / "config" / "bad.yml"
    cfg.write_text("dataSources: [\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="invalid yaml"):
        load_config(cfg)


def test_load_config_root_must_be_mapping(temp_workdir: Path):
    cfg = temp_workdir / "config" / "list.yml"
    cfg.write_text("- a\n- b\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="mapping"):
        load_config(cfg)


def test_defaults_merge_shallow(temp_workdir: Path):
    cfg = temp_workdir / "config" / "partial.yml"
    cfg.write_text("uploadColumnMapping:\n  sku: Item\n  price: Retail\n", encoding="utf-8")
    loaded = load_config(cfg)
    # sources come from the built-in profiles
    assert [s.id for s in loaded.sources] == ["puma", "nike", "new_balance", "adidas", "jordan", "vans"]
    assert loaded.upload_column_mapping.sku == "Item"
    assert loaded.upload_column_mapping.price == "Retail"
    assert loaded.upload_column_mapping.sale_price is None


def test_default_config_profiles():
    cfg = default_config()
    assert cfg.source("jordan").enabled is False
    assert "jordan" not in [s.id for s in cfg.enabled_sources]
    assert cfg.source("puma").header_row == 3
    assert cfg.source("vans").header_row == 9
    assert cfg.source("adidas").columns["promotion"] == "I"
    assert all(s.tolerance == 0.05 for s in cfg.sources)
    assert cfg.upload_column_mapping.sku == "sku"


def test_column_letters_are_uppercased():
    cfg = build_config(
        {"dataSources": [{"id": "x", "name": "X", "columns": {"sku": " b ", "price": "aa"}}]}
    )
    assert dict(cfg.source("x").columns) == {"sku": "B", "price": "AA"}


def test_duplicate_source_ids_rejected():
    src = {"id": "x", "name": "X", "columns": {"sku": "A"}}
    with pytest.raises(ConfigError, match="duplicate"):
        build_config({"dataSources": [src, dict(src)]})


def test_db_path_env_override(monkeypatch):
    monkeypatch.setenv("MAPCHECK_DB_PATH", "/tmp/other.db")
    assert default_config().store.path == "/tmp/other.db"


def test_resolve_config_path(temp_workdir: Path, monkeypatch):
    assert resolve_config_path() is None
    assert resolve_config_path("custom.yml") == Path("custom.yml")
    monkeypatch.setenv("MAPCHECK_CONFIG", "env.yml")
    assert resolve_config_path() == Path("env.yml")
    monkeypatch.delenv("MAPCHECK_CONFIG")
    (temp_workdir / "config" / "mapcheck.yml").write_text("{}", encoding="utf-8")
    assert resolve_config_path() == Path("config/mapcheck.yml")
