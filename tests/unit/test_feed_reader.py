from __future__ import annotations

from pathlib import Path

import pandas as pd
import pytest

from mapcheck.feeds.reader import (
    FeedParseError,
    HeaderRowError,
    PriceFileError,
    header_preview,
    parse_feed_text,
    read_price_file,
    read_price_table,
    split_header,
)


def test_parse_feed_text_keeps_ragged_rows():
    text = "Title\nsku,name,price\nA1,Shoe,10\nA2,Boot\n"
    rows = parse_feed_text(text)
    assert rows == [["Title"], ["sku", "name", "price"], ["A1", "Shoe", "10"], ["A2", "Boot"]]


def test_parse_feed_text_quoted_cells_and_bom():
    text = '\ufeffsku,name\n"X-1","Shoe, ""Pro"""\n'
    assert parse_feed_text(text) == [["sku", "name"], ["X-1", 'Shoe, "Pro"']]


def test_parse_feed_text_custom_delimiter():
    assert parse_feed_text("a;b\n1;2\n", delimiter=";") == [["a", "b"], ["1", "2"]]


def test_parse_feed_text_none():
    with pytest.raises(FeedParseError):
        parse_feed_text(None)  # type: ignore[arg-type]


def test_split_header_slices_after_header_row():
    rows = [["r1"], ["r2"], ["header"], ["d1"], ["d2"]]
    sheet = split_header(rows, 3)
    assert sheet.header == ["header"]
    assert sheet.rows == [["d1"], ["d2"]]


def test_split_header_last_row_as_header_has_no_data():
    sheet = split_header([["h"]], 1)
    assert sheet.rows == []


@pytest.mark.parametrize("header_row", [0, 6])
def test_split_header_out_of_bounds(header_row: int):
    rows = [["a"]] * 5
    with pytest.raises(HeaderRowError):
        split_header(rows, header_row)


def test_header_preview_first_ten_cells():
    header = [f"c{i}" for i in range(15)]
    assert header_preview(header) == " | ".join(f"c{i}" for i in range(10))


def test_read_price_table_all_strings_and_blank_lines():
    text = "sku,price,salePrice\nN-123,114.00,\n\n AB-1 ,95,90\n,,\n"
    rows = read_price_table(text)
    assert rows == [
        {"sku": "N-123", "price": "114.00", "salePrice": ""},
        {"sku": " AB-1 ", "price": "95", "salePrice": "90"},
    ]


def test_read_price_table_empty():
    with pytest.raises(PriceFileError):
        read_price_table("")


def test_read_price_file_csv(tmp_path: Path):
    f = tmp_path / "prices.csv"
    f.write_text("\ufeffsku,price\nX,1.50\n", encoding="utf-8")
    assert read_price_file(f) == [{"sku": "X", "price": "1.50"}]


def test_read_price_file_xlsx(tmp_path: Path):
    f = tmp_path / "prices.xlsx"
    pd.DataFrame({"sku": ["N-123", "PU-900"], "price": ["114.00", "60"]}).to_excel(f, index=False)
    rows = read_price_file(f)
    assert rows == [{"sku": "N-123", "price": "114.00"}, {"sku": "PU-900", "price": "60"}]


def test_read_price_file_missing(tmp_path: Path):
    with pytest.raises(PriceFileError, match="not found"):
        read_price_file(tmp_path / "nope.csv")
