from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time
from enum import Enum
from typing import Any, Optional, Protocol, Sequence

from openpyxl.worksheet.worksheet import Worksheet


class CellKind(str, Enum):
    TEXT = "text"
    NUMBER = "number"
    DATE = "date"
    BLANK = "blank"


@dataclass(frozen=True)
class CellValue:
    kind: CellKind
    value: Any = None
    number_format: str = "General"

    @classmethod
    def of(cls, value: Any, number_format: Optional[str] = None) -> "CellValue":
        """Tag a raw Python value the way openpyxl hands it over."""
        fmt = number_format or "General"
        if value is None:
            return BLANK
        if isinstance(value, bool):
            return cls(CellKind.TEXT, "TRUE" if value else "FALSE", fmt)
        if isinstance(value, (datetime, date, time)):
            return cls(CellKind.DATE, value, fmt)
        if isinstance(value, (int, float)):
            return cls(CellKind.NUMBER, value, fmt)
        text = str(value)
        if not text:
            return BLANK
        return cls(CellKind.TEXT, text, fmt)


BLANK = CellValue(CellKind.BLANK)


class CellGrid(Protocol):
    """Read-only, fully loaded sheet. Rows and columns are 0-based."""

    @property
    def row_count(self) -> int: ...

    def last_column_of(self, row: int) -> int:
        """Number of columns in use on the row (exclusive upper bound)."""
        ...

    def get(self, row: int, col: int) -> CellValue: ...


class ListGrid:
    """
    In-memory grid over nested Python lists.
    Cells may be raw values or CellValue instances.
    """

    def __init__(self, rows: Sequence[Sequence[Any]], name: str = "Sheet1"):
        self.name = name
        self._rows: list[list[CellValue]] = [
            [c if isinstance(c, CellValue) else CellValue.of(c) for c in row] for row in rows
        ]

    @property
    def row_count(self) -> int:
        return len(self._rows)

    def last_column_of(self, row: int) -> int:
        if 0 <= row < len(self._rows):
            return len(self._rows[row])
        return 0

    def get(self, row: int, col: int) -> CellValue:
        if 0 <= row < len(self._rows) and 0 <= col < len(self._rows[row]):
            return self._rows[row][col]
        return BLANK


class WorksheetGrid(ListGrid):
    """
    Snapshot of an openpyxl worksheet.
    The workbook must be opened with data_only=True so formula cells carry their cached results.
    """

    def __init__(self, ws: Worksheet):
        rows: list[list[CellValue]] = []
        for row in ws.iter_rows():
            cells = [CellValue.of(cell.value, getattr(cell, "number_format", None)) for cell in row]
            while cells and cells[-1].kind is CellKind.BLANK:
                cells.pop()
            rows.append(cells)
        while rows and not rows[-1]:
            rows.pop()
        super().__init__(rows, name=ws.title)
