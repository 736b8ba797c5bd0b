from datetime import date, datetime

import pytest

from evalsheet.extraction.grid import BLANK, CellKind, CellValue, ListGrid
from evalsheet.extraction.normalize import normalize_cell, normalize_grid, normalize_text


@pytest.mark.parametrize(
    "raw",
    ["  顧客　名  ", "1．品質", "a\n\tb", "✕ 不可", "plain", ""],
)
def test_normalize_text_is_idempotent(raw):
    once = normalize_text(raw)
    assert normalize_text(once) == once


def test_normalize_text_maps_glyphs_and_whitespace():
    assert normalize_text("  顧客　 名\n") == "顧客 名"
    assert normalize_text("1．品質") == "1.品質"
    assert normalize_text("✕") == "XX"


def test_cell_value_tags_raw_python_values():
    assert CellValue.of(None) is BLANK
    assert CellValue.of("") is BLANK
    assert CellValue.of(3).kind is CellKind.NUMBER
    assert CellValue.of(date(2024, 5, 1)).kind is CellKind.DATE
    assert CellValue.of(True).value == "TRUE"


def test_numbers_drop_integral_fraction():
    assert normalize_cell(CellValue.of(3.0)) == "3"
    assert normalize_cell(CellValue.of(2.5)) == "2.5"
    assert normalize_cell(CellValue.of(42)) == "42"


def test_dates_use_month_day_year():
    assert normalize_cell(CellValue.of(datetime(2024, 5, 1, 13, 30))) == "05/01/2024"
    assert normalize_cell(CellValue.of(date(2023, 12, 24))) == "12/24/2023"


def test_serial_numbers_become_dates():
    # Date-formatted cells and bare serials inside the plausible window.
    assert normalize_cell(CellValue.of(45413, "yyyy-mm-dd")) == "05/01/2024"
    assert normalize_cell(CellValue.of(45413)) == "05/01/2024"


def test_blank_cells_are_empty_strings():
    assert normalize_cell(BLANK) == ""
    assert normalize_cell(None) == ""


def test_normalize_grid_keeps_row_shape():
    grid = ListGrid([["  a ", None, 1.0], [], ["b"]])
    assert normalize_grid(grid) == [["a", "", "1"], [], ["b"]]
