"""
JSON-friendly rendering of a pivot sheet: header cells with row/col spans plus plain data rows.
"""
from __future__ import annotations

from typing import Any, Iterable, Optional

from evalsheet.config import settings
from evalsheet.extraction.patterns import PatternTable, default_patterns
from evalsheet.models import MainItemKind
from evalsheet.pivot.renderer import HEADER_ROWS, SheetRenderer
from evalsheet.pivot.schema import ResponseLike
from evalsheet.pivot.writers import GridSheetWriter


def short_main_label(main_item: str, kind: MainItemKind, patterns: Optional[PatternTable] = None) -> str:
    """'3.より満足いただくため' style label for the long priority and request headings."""
    patterns = patterns or default_patterns()
    short = settings.export.short_labels
    if kind is MainItemKind.PRIORITY:
        text = short.get("priority", main_item)
    elif kind is MainItemKind.REQUEST:
        text = short.get("request", main_item)
    else:
        return main_item
    number = patterns.leading_number(main_item)
    return f"{number}.{text}" if number is not None else text


def header_cells(writer: GridSheetWriter, width: int) -> list[list[dict[str, Any]]]:
    spans = {(r0, c0): (r1 - r0 + 1, c1 - c0 + 1) for r0, r1, c0, c1 in writer.merges}
    covered = {
        (r, c)
        for r0, r1, c0, c1 in writer.merges
        for r in range(r0, r1 + 1)
        for c in range(c0, c1 + 1)
        if (r, c) != (r0, c0)
    }
    rows: list[list[dict[str, Any]]] = []
    for r in range(HEADER_ROWS):
        row = []
        for c in range(width):
            if (r, c) in covered:
                continue
            rowspan, colspan = spans.get((r, c), (1, 1))
            row.append({"label": writer.get(r, c), "rowspan": rowspan, "colspan": colspan})
        rows.append(row)
    return rows


def build_preview(
    responses: Iterable[ResponseLike],
    patterns: Optional[PatternTable] = None,
    short_labels: bool = True,
) -> dict[str, Any]:
    patterns = patterns or default_patterns()
    label = (lambda main, kind: short_main_label(main, kind, patterns)) if short_labels else None
    writer = GridSheetWriter()
    responses = list(responses)
    layout = SheetRenderer(patterns, main_label=label).render(responses, writer)
    width = layout.width
    return {
        "headers": header_cells(writer, width),
        "rows": [
            [writer.get(r, c) for c in range(width)]
            for r in range(HEADER_ROWS, HEADER_ROWS + len(responses))
        ],
    }
