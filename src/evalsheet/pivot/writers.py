"""
SheetWriter implementations.

Renderer coordinates are 0-based; OpenpyxlSheetWriter shifts them to
openpyxl's 1-based rows and columns.
"""
from __future__ import annotations

from openpyxl.worksheet.worksheet import Worksheet

from evalsheet.pivot.renderer import HEADER_ROWS, MergeKey
from evalsheet.pivot.styles import ExportStyle


class OpenpyxlSheetWriter:
    def __init__(self, ws: Worksheet):
        self.ws = ws
        self._sized_rows: set[int] = set()

    def write_header(self, row: int, col: int, text: str) -> None:
        cell = self.ws.cell(row=row + 1, column=col + 1, value=text)
        ExportStyle.apply_header_style(cell)

    def write_cell(self, row: int, col: int, text: str) -> None:
        cell = self.ws.cell(row=row + 1, column=col + 1, value=text)
        ExportStyle.apply_body_style(cell)
        if row not in self._sized_rows:
            ExportStyle.apply_row_height(self.ws, row + 1)
            self._sized_rows.add(row)

    def merge(self, first_row: int, last_row: int, first_col: int, last_col: int) -> None:
        # Border every cell of the region before openpyxl replaces them with MergedCells.
        for r in range(first_row, last_row + 1):
            for c in range(first_col, last_col + 1):
                ExportStyle.apply_header_style(self.ws.cell(row=r + 1, column=c + 1))
        self.ws.merge_cells(
            start_row=first_row + 1,
            start_column=first_col + 1,
            end_row=last_row + 1,
            end_column=last_col + 1,
        )

    def finish(self) -> None:
        ExportStyle.auto_size_columns(self.ws)
        self.ws.freeze_panes = self.ws.cell(row=HEADER_ROWS + 1, column=2)


class GridSheetWriter:
    """Collects the rendered sheet in memory; used for previews and tests."""

    def __init__(self):
        self.cells: dict[tuple[int, int], str] = {}
        self.headers: set[tuple[int, int]] = set()
        self.merges: list[MergeKey] = []

    def write_header(self, row: int, col: int, text: str) -> None:
        self.cells[(row, col)] = text
        self.headers.add((row, col))

    def write_cell(self, row: int, col: int, text: str) -> None:
        self.cells[(row, col)] = text

    def merge(self, first_row: int, last_row: int, first_col: int, last_col: int) -> None:
        self.merges.append((first_row, last_row, first_col, last_col))

    def get(self, row: int, col: int) -> str:
        return self.cells.get((row, col), "")
