"""
Row classification for one evaluation table.

The extractor is a small state machine driven by main-item headings:
each heading opens a section whose kind (standard / priority / request)
decides how the rows up to the next heading are read.
"""
from __future__ import annotations

import logging
from enum import Enum
from typing import Optional, Sequence, Union

from evalsheet.config import settings
from evalsheet.extraction.grid import CellGrid
from evalsheet.extraction.locator import (
    TextRows,
    as_text_rows,
    detect_columns,
    find_table_start,
    scan_metadata,
)
from evalsheet.extraction.patterns import PatternTable, default_patterns
from evalsheet.extraction.trace import TraceLog
from evalsheet.models import ColumnRoles, EvaluationItem, MainItemKind, SheetExtraction

logger = logging.getLogger(__name__)


class SectionState(str, Enum):
    SCANNING = "scanning"
    STANDARD = "standard"
    PRIORITY = "priority"
    REQUEST = "request"

    @classmethod
    def for_kind(cls, kind: MainItemKind) -> "SectionState":
        return {
            MainItemKind.STANDARD: cls.STANDARD,
            MainItemKind.PRIORITY: cls.PRIORITY,
            MainItemKind.REQUEST: cls.REQUEST,
        }[kind]


class RecordExtractor:
    """
    Walks the rows of a located table and returns EvaluationItems in sheet order.
    Holds only the pattern table; every call starts from a clean state.
    """

    def __init__(self, patterns: Optional[PatternTable] = None, request_joiner: Optional[str] = None):
        self.patterns = patterns or default_patterns()
        self.request_joiner = request_joiner or settings.export.request_joiner

    def extract(self, rows: TextRows, roles: ColumnRoles, trace: Optional[TraceLog] = None) -> list[EvaluationItem]:
        trace = trace if trace is not None else TraceLog()
        collected: dict[tuple[str, str], EvaluationItem] = {}

        state = SectionState.SCANNING
        main_item = ""
        lookup: dict[str, str] = {}
        r = roles.data_start_row
        while r < len(rows):
            heading = self._main_item_text(rows[r])
            if heading:
                main_item = heading
                state = SectionState.for_kind(self.patterns.classify(heading))
                section_end = self._next_main_item_row(rows, r)
                trace.add("records", f"{state.value} section: {heading}", row=r)

                if state is SectionState.PRIORITY:
                    for item in self._priority_items(rows, main_item, r + 1, section_end, trace):
                        self._put(collected, item, trace, r)
                    r = section_end
                    continue
                if state is SectionState.REQUEST:
                    item = self._request_item(rows, main_item, r + 1, section_end)
                    if item is not None:
                        self._put(collected, item, trace, r)
                    else:
                        trace.add("records", "request section has no content", row=r)
                    r = section_end
                    continue

                lookup = self._subitem_lookup(rows, r + 1, section_end)
                r += 1
                continue

            item = self._standard_item(rows[r], main_item, roles, lookup)
            # Before the first heading only rows carrying a rating count.
            if item is not None and (state is not SectionState.SCANNING or item.evaluation):
                self._put(collected, item, trace, r)
            r += 1

        return list(collected.values())

    def _put(self, collected: dict, item: EvaluationItem, trace: TraceLog, row: int) -> None:
        if item.key in collected:
            trace.add("records", f"duplicate pair {item.key!r}, keeping later values", row=row)
        collected[item.key] = item

    def _main_item_text(self, row: Sequence[str]) -> str:
        for text in row:
            if self.patterns.is_main_item(text):
                return text
        return ""

    def _next_main_item_row(self, rows: TextRows, r: int) -> int:
        for nxt in range(r + 1, len(rows)):
            if self._main_item_text(rows[nxt]):
                return nxt
        return len(rows)

    def _subitem_lookup(self, rows: TextRows, start: int, end: int) -> dict[str, str]:
        """Enumerator -> label for the rows of one section; a fallback label source."""
        lookup: dict[str, str] = {}
        p = self.patterns
        for r in range(start, end):
            number, label = "", ""
            for text in rows[r]:
                if not number and p.is_enumerator(text):
                    number = text
                elif text and not p.is_angle_marker(text) and not p.is_evaluation_code(text):
                    label = text
                    break
            if number and label:
                lookup.setdefault(number, label)
        return lookup

    def _standard_item(
        self,
        row: Sequence[str],
        main_item: str,
        roles: ColumnRoles,
        lookup: dict[str, str],
    ) -> Optional[EvaluationItem]:
        p = self.patterns
        number, evaluation, label = "", "", ""
        comment_parts: list[str] = []
        for c, text in enumerate(row):
            if not text:
                continue
            if not number and p.is_enumerator(text):
                number = text
                continue
            if c == roles.evaluation_col:
                if p.is_evaluation_code(text):
                    evaluation = text
                continue
            if (c == roles.comment_col or c > roles.evaluation_col) and not p.is_evaluation_code(text):
                comment_parts.append(text)

        for text in row:
            if text and not p.is_evaluation_code(text) and not p.is_angle_marker(text) and not p.is_enumerator(text):
                label = text
                break
        if number and not label:
            label = lookup.get(number, "")

        sub_item = f"{number} {label}".strip() if number else label
        comment = " ".join(comment_parts)
        if not (sub_item or evaluation or comment):
            return None
        return EvaluationItem(main_item=main_item, sub_item=sub_item, evaluation=evaluation, comment=comment)

    def _priority_items(
        self,
        rows: TextRows,
        main_item: str,
        start: int,
        end: int,
        trace: TraceLog,
    ) -> list[EvaluationItem]:
        p = self.patterns
        header_row = next(
            (r for r in range(start, end) if any(p.is_priority_header(text) for text in rows[r])),
            None,
        )
        if header_row is None:
            trace.warn("records", "no priority headers, section skipped", row=start - 1)
            return []
        data_row = header_row + 1
        if data_row >= end:
            trace.warn("records", "no data row below priority headers, section skipped", row=header_row)
            return []

        anchors = [(c, text) for c, text in enumerate(rows[header_row]) if p.is_priority_header(text)]
        data = rows[data_row]
        items: list[EvaluationItem] = []
        for idx, (col, token) in enumerate(anchors):
            stop = anchors[idx + 1][0] if idx + 1 < len(anchors) else len(data)
            evaluation = data[col] if col < len(data) else ""
            description = " ".join(
                text
                for text in data[col + 1:stop]
                if text and not p.is_note(text) and not p.is_evaluation_code(text)
            )
            if not (evaluation or description):
                trace.add("records", f"empty priority block {token}", row=data_row, col=col)
                continue
            items.append(
                EvaluationItem(
                    main_item=main_item,
                    sub_item=description or token,
                    evaluation=evaluation,
                    comment=description,
                    rank=p.rank_of(token),
                )
            )
        return items

    def _request_item(self, rows: TextRows, main_item: str, start: int, end: int) -> Optional[EvaluationItem]:
        p = self.patterns
        parts = [
            text
            for r in range(start, end)
            for text in rows[r]
            if text and not p.is_evaluation_code(text)
        ]
        if not parts:
            return None
        return EvaluationItem(main_item=main_item, sub_item="", evaluation="", comment=self.request_joiner.join(parts))


def extract_records(
    source: Union[CellGrid, TextRows],
    roles: ColumnRoles,
    patterns: Optional[PatternTable] = None,
    trace: Optional[TraceLog] = None,
) -> list[EvaluationItem]:
    return RecordExtractor(patterns).extract(as_text_rows(source), roles, trace)


def extract_sheet(
    grid: CellGrid,
    sheet_name: Optional[str] = None,
    patterns: Optional[PatternTable] = None,
) -> SheetExtraction:
    """
    Full pass over one sheet: metadata above the table plus its evaluation items.
    A sheet without a recognizable table yields empty metadata and items.
    """
    patterns = patterns or default_patterns()
    name = sheet_name if sheet_name is not None else getattr(grid, "name", "")
    trace = TraceLog(name)
    rows = as_text_rows(grid)

    start = find_table_start(rows, patterns, trace)
    if start is None:
        return SheetExtraction(sheet_name=name, trace=trace.events)

    metadata = scan_metadata(rows, start, patterns, trace)
    roles = detect_columns(rows, start, patterns, trace)
    items: list[EvaluationItem] = []
    if roles is not None:
        items = RecordExtractor(patterns).extract(rows, roles, trace)

    logger.info(
        "Extracted sheet",
        extra={"sheet": name, "metadata": len(metadata), "items": len(items)},
    )
    return SheetExtraction(sheet_name=name, metadata=metadata, items=items, trace=trace.events)
