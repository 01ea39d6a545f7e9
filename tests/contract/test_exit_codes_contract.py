from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest

from mapcheck.cli.__main__ import main

"""Exit code contract: 0 all good, 2 some sources failed, 1 fatal."""

FEEDS = {
    "https://feeds.example.com/nike.csv": "x\nA,B,C,Style,Name,Color,G,H,I,J,K,L,MAP\n",
    "https://feeds.example.com/adidas.csv": "Category,Name,Color,D,Article,MAP,G,H,Window,J,Start,End\n",
}


def _fetch_with_failures(*failing: str):
    def _fetch(url: str, **_: object) -> str:
        if any(name in url for name in failing):
            raise OSError(f"cannot reach {url}")
        return FEEDS[url]
    return _fetch


@pytest.mark.parametrize(
    "failing, expected",
    [((), 0), (("nike",), 2), (("nike", "adidas"), 2)],
)
def test_import_exit_codes(write_config, temp_workdir: Path, failing: tuple[str, ...], expected: int):
    with patch("mapcheck.services.importer.fetch_feed_text", _fetch_with_failures(*failing)):
        assert main(["import", "--no-progress"]) == expected


def test_fatal_on_bad_config(temp_workdir: Path, capsys):
    (temp_workdir / "config" / "mapcheck.yml").write_text(
        "dataSources:\n  - id: x\n    headerRow: 0\n", encoding="utf-8"
    )
    assert main(["import", "--no-progress"]) == 1
    assert "ERROR config:" in capsys.readouterr().out


def test_fatal_on_missing_explicit_config(temp_workdir: Path):
    assert main(["--config", "nowhere.yml", "stats"]) == 1


def test_fatal_on_unreadable_price_file(write_config, temp_workdir: Path):
    bad = temp_workdir / "prices.xlsx"
    bad.write_text("not a workbook", encoding="utf-8")
    assert main(["check", str(bad)]) == 1
