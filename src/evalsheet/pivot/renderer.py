"""
Writes a PivotLayout and its responses into a SheetWriter.

Rows 0-2 hold the header (MainItem, SubItem, leaf label); every response
gets one data row from row 3 on, in the order the caller supplies.
"""
from __future__ import annotations

import logging
from typing import Callable, Iterable, Optional, Protocol, Sequence

from evalsheet.config import settings
from evalsheet.extraction.patterns import PatternTable, default_patterns
from evalsheet.models import EvaluationItem, MainItemKind, ResponseSnapshot
from evalsheet.pivot.schema import MainItemGroup, PivotLayout, PivotSchemaBuilder, ResponseLike, response_items

logger = logging.getLogger(__name__)

HEADER_ROWS = 3

MergeKey = tuple[int, int, int, int]  # first_row, last_row, first_col, last_col


class SheetWriter(Protocol):
    def write_header(self, row: int, col: int, text: str) -> None: ...

    def merge(self, first_row: int, last_row: int, first_col: int, last_col: int) -> None: ...

    def write_cell(self, row: int, col: int, text: str) -> None: ...


class PivotTable:
    """Flat lookup keyed by (response index, MainItem, SubItem)."""

    def __init__(self, responses: Sequence[ResponseLike]):
        self._cells: dict[tuple[int, str, str], EvaluationItem] = {}
        for idx, response in enumerate(responses):
            for item in response_items(response):
                self._cells[(idx, item.main_item, item.sub_item)] = item

    def get(self, response_idx: int, main_item: str, sub_item: str) -> Optional[EvaluationItem]:
        return self._cells.get((response_idx, main_item, sub_item))

    def __len__(self) -> int:
        return len(self._cells)


class SheetRenderer:
    def __init__(
        self,
        patterns: Optional[PatternTable] = None,
        main_label: Optional[Callable[[str, MainItemKind], str]] = None,
    ):
        self.patterns = patterns or default_patterns()
        self.main_label = main_label or (lambda main_item, kind: main_item)
        cfg = settings.export
        self.evaluation_label = cfg.evaluation_label
        self.comment_label = cfg.comment_label
        self.joiner = cfg.request_joiner

    def render(
        self,
        responses: Iterable[ResponseLike],
        writer: SheetWriter,
        layout: Optional[PivotLayout] = None,
    ) -> PivotLayout:
        responses = list(responses)
        layout = layout or PivotSchemaBuilder(self.patterns).build(responses)
        merges: dict[MergeKey, None] = {}

        self._write_header(layout, writer, merges)
        table = PivotTable(responses)
        for idx, response in enumerate(responses):
            self._write_row(layout, table, idx, response, writer)

        for first_row, last_row, first_col, last_col in merges:
            writer.merge(first_row, last_row, first_col, last_col)

        logger.debug(
            "Rendered pivot sheet",
            extra={"responses": len(responses), "columns": layout.width, "merges": len(merges)},
        )
        return layout

    def _merge(self, merges: dict, first_row: int, last_row: int, first_col: int, last_col: int) -> None:
        if first_row == last_row and first_col == last_col:
            return
        merges.setdefault((first_row, last_row, first_col, last_col), None)

    def _write_header(self, layout: PivotLayout, writer: SheetWriter, merges: dict) -> None:
        for col, label in enumerate(layout.leading):
            writer.write_header(0, col, label)
            self._merge(merges, 0, HEADER_ROWS - 1, col, col)

        for group in layout.groups:
            writer.write_header(0, group.start, self.main_label(group.main_item, group.kind))
            if group.single:
                self._merge(merges, 0, HEADER_ROWS - 1, group.start, group.start)
                continue
            self._merge(merges, 0, 0, group.start, group.end)
            for position, sub_item in enumerate(group.sub_items, 1):
                col = layout.index_of(group.main_item, sub_item)
                label = f"<{position}>" if group.kind is MainItemKind.PRIORITY else sub_item
                writer.write_header(1, col, label)
                self._merge(merges, 1, 1, col, col + 1)
                writer.write_header(2, col, self.evaluation_label)
                writer.write_header(2, col + 1, self.comment_label)

    def _write_row(
        self,
        layout: PivotLayout,
        table: PivotTable,
        idx: int,
        response: ResponseLike,
        writer: SheetWriter,
    ) -> None:
        row = HEADER_ROWS + idx
        label = response.label if isinstance(response, ResponseSnapshot) else ""
        metadata = response.metadata if isinstance(response, ResponseSnapshot) else {}
        writer.write_cell(row, 0, label)
        for col, key in enumerate(layout.metadata_keys, 1):
            writer.write_cell(row, col, metadata.get(key, ""))

        for group in layout.groups:
            if group.single:
                writer.write_cell(row, group.start, self._single_value(table, idx, group))
                continue
            for sub_item in group.sub_items:
                col = layout.index_of(group.main_item, sub_item)
                item = table.get(idx, group.main_item, sub_item)
                writer.write_cell(row, col, item.evaluation if item else "")
                writer.write_cell(row, col + 1, item.comment if item else "")

    def _single_value(self, table: PivotTable, idx: int, group: MainItemGroup) -> str:
        items = [table.get(idx, group.main_item, sub) for sub in group.sub_items]
        items = [i for i in items if i is not None]
        if group.kind is MainItemKind.REQUEST:
            return self.joiner.join(i.comment for i in items if i.comment)
        values = [i.comment or i.evaluation for i in items]
        return next((v for v in values if v), "")


def render_sheet(
    responses: Iterable[ResponseLike],
    writer: SheetWriter,
    patterns: Optional[PatternTable] = None,
) -> PivotLayout:
    return SheetRenderer(patterns).render(responses, writer)
