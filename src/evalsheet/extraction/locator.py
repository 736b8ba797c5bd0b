"""
Locating the evaluation table inside a sheet.

- find_table_start: row below the sentinel cell
- detect_columns: evaluation / comment column roles
- scan_metadata: key/value header pairs above the table
"""
from __future__ import annotations

from typing import Optional, Sequence, Union

from evalsheet.extraction.grid import CellGrid
from evalsheet.extraction.normalize import normalize_grid
from evalsheet.extraction.patterns import PatternTable, default_patterns
from evalsheet.extraction.trace import TraceLog
from evalsheet.models import ColumnRoles

TextRows = Sequence[Sequence[str]]


def as_text_rows(source: Union[CellGrid, TextRows]) -> TextRows:
    if hasattr(source, "get") and hasattr(source, "row_count"):
        return normalize_grid(source)
    return source


def _cell(rows: TextRows, row: int, col: int) -> str:
    if 0 <= row < len(rows) and 0 <= col < len(rows[row]):
        return rows[row][col]
    return ""


def find_table_start(
    source: Union[CellGrid, TextRows],
    patterns: Optional[PatternTable] = None,
    trace: Optional[TraceLog] = None,
) -> Optional[int]:
    """Index of the row right below the first sentinel cell, or None when the sheet has no table."""
    patterns = patterns or default_patterns()
    rows = as_text_rows(source)
    for r, row in enumerate(rows):
        for c, text in enumerate(row):
            if text == patterns.table_sentinel:
                if trace is not None:
                    trace.add("locate", "table sentinel found", row=r, col=c)
                return r + 1
    if trace is not None:
        trace.warn("locate", "no table sentinel in sheet")
    return None


def _header_columns(row: Sequence[str], patterns: PatternTable) -> tuple[int, int]:
    eval_col, comment_col = -1, -1
    for c, text in enumerate(row):
        if text == patterns.evaluation_header and eval_col == -1:
            eval_col = c
        elif text == patterns.comment_header and comment_col == -1:
            comment_col = c
    return eval_col, comment_col


def _is_comment_text(text: str, patterns: PatternTable) -> bool:
    return bool(text) and not patterns.is_evaluation_code(text) and not patterns.is_angle_marker(text)


def detect_columns(
    source: Union[CellGrid, TextRows],
    data_start: int,
    patterns: Optional[PatternTable] = None,
    trace: Optional[TraceLog] = None,
) -> Optional[ColumnRoles]:
    """
    Resolve the evaluation and comment columns for a table starting at data_start.

    Returns None when no evaluation column can be found; the sheet then
    has no evaluation data.
    """
    patterns = patterns or default_patterns()
    trace = trace if trace is not None else TraceLog()
    rows = as_text_rows(source)

    header_row = data_start - 1
    eval_col, comment_col = _header_columns(rows[header_row] if 0 <= header_row < len(rows) else (), patterns)

    if eval_col == -1 and data_start < len(rows):
        # Some templates put the column captions one row below the sentinel.
        below_eval, below_comment = _header_columns(rows[data_start], patterns)
        if below_eval != -1:
            header_row, data_start = data_start, data_start + 1
            eval_col = below_eval
            if comment_col == -1:
                comment_col = below_comment
            trace.add("columns", "column captions found below sentinel row", row=header_row)

    window = range(data_start, min(data_start + patterns.fallback_scan_rows, len(rows)))

    if eval_col == -1:
        eval_col = next(
            (
                c
                for r in window
                for c, text in enumerate(rows[r])
                if patterns.is_evaluation_code(text)
            ),
            -1,
        )
        if eval_col != -1:
            trace.add("columns", "evaluation column taken from evaluation codes", col=eval_col)

    if eval_col == -1:
        trace.warn("columns", "no evaluation column resolved", row=header_row)
        return None

    if comment_col == -1 or comment_col == eval_col:
        width = max((len(rows[r]) for r in window), default=0)
        comment_col = next(
            (
                c
                for c in range(eval_col + 1, width)
                if any(_is_comment_text(_cell(rows, r, c), patterns) for r in window)
            ),
            -1,
        )
        if comment_col != -1:
            trace.add("columns", "comment column taken from data rows", col=comment_col)

    if comment_col == -1:
        comment_col = eval_col + 1
        trace.add("columns", "comment column defaulted next to evaluation column", col=comment_col)

    trace.add("columns", f"evaluation={eval_col} comment={comment_col}", row=header_row)
    return ColumnRoles(
        evaluation_col=eval_col,
        comment_col=comment_col,
        header_row=header_row,
        data_start_row=data_start,
    )


def scan_metadata(
    source: Union[CellGrid, TextRows],
    data_start: Optional[int],
    patterns: Optional[PatternTable] = None,
    trace: Optional[TraceLog] = None,
) -> dict[str, str]:
    """
    Key/value pairs from the rows above the table, in first-seen order.
    A later row overwrites the value of an existing key without moving it.
    """
    patterns = patterns or default_patterns()
    rows = as_text_rows(source)
    limit = len(rows) if data_start is None else min(data_start, len(rows))

    metadata: dict[str, str] = {}
    for r in range(limit):
        row = rows[r]
        if patterns.table_sentinel in row:
            continue
        j, width = 0, len(row)
        while j < width:
            while j < width and not row[j]:
                j += 1
            if j >= width:
                break
            key = row[j]
            if patterns.is_note(key):
                j += 1
                continue
            m = j + 1
            while m < width and not row[m]:
                m += 1
            value = row[m] if m < width else ""
            if value and not patterns.is_note(value):
                metadata[key] = value
                if trace is not None:
                    trace.add("metadata", f"{key}={value}", row=r, col=j)
                j = m + 1
            else:
                j += 1
    return metadata
