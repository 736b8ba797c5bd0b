"""
Cell normalization: every typed cell becomes one canonical string.

Pure functions only; nothing here keeps a shared formatter around.
"""
from __future__ import annotations

import re
from datetime import date, datetime, time
from typing import Any

from openpyxl.styles.numbers import is_date_format
from openpyxl.utils.datetime import from_excel

from evalsheet.config import settings
from evalsheet.extraction.grid import CellGrid, CellKind, CellValue

DATE_FORMAT = "%m/%d/%Y"

_WHITESPACE_RE = re.compile(r"\s+")
_GLYPHS = {
    "　": " ",  # full-width space
    "．": ".",
    "✕": "XX",
}


def normalize_text(text: str) -> str:
    """Glyph mapping, whitespace collapsing and trimming. Idempotent."""
    for glyph, replacement in _GLYPHS.items():
        text = text.replace(glyph, replacement)
    return _WHITESPACE_RE.sub(" ", text).strip()


def normalize_cell(cell: CellValue) -> str:
    if cell is None or cell.kind is CellKind.BLANK:
        return ""
    try:
        raw = _format(cell)
    except (ValueError, TypeError, OverflowError):
        raw = _fallback(cell.value)
    return normalize_text(raw)


def _format(cell: CellValue) -> str:
    if cell.kind is CellKind.TEXT:
        return str(cell.value)
    if cell.kind is CellKind.DATE:
        return _format_date(cell.value)
    if cell.kind is CellKind.NUMBER:
        value = cell.value
        if is_date_format(cell.number_format or "General") or _in_serial_window(value):
            return _format_date(from_excel(value))
        return _format_number(value)
    return _fallback(cell.value)


def _in_serial_window(value: float) -> bool:
    cfg = settings.extraction
    return cfg.serial_date_min < value < cfg.serial_date_max


def _format_date(value: Any) -> str:
    if isinstance(value, datetime):
        return value.strftime(DATE_FORMAT)
    if isinstance(value, date):
        return value.strftime(DATE_FORMAT)
    if isinstance(value, time):
        return value.isoformat()
    return _fallback(value)


def _format_number(value: float) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _fallback(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def normalize_grid(grid: CellGrid) -> list[list[str]]:
    """Normalize every cell once; the extractor works on the resulting text rows."""
    return [
        [normalize_cell(grid.get(row, col)) for col in range(grid.last_column_of(row))]
        for row in range(grid.row_count)
    ]
