from conftest import evaluation_sheet_rows
from openpyxl import Workbook

from evalsheet.extraction.grid import ListGrid
from evalsheet.extraction.records import extract_sheet
from evalsheet.models import EvaluationItem, ResponseSnapshot
from evalsheet.pivot.preview import build_preview
from evalsheet.pivot.renderer import HEADER_ROWS, SheetRenderer, render_sheet
from evalsheet.pivot.writers import GridSheetWriter, OpenpyxlSheetWriter

PRIORITY = "2.より満足いただくために"
REQUEST = "3.ご要望等"


def _snapshot(rows, label):
    sheet = extract_sheet(ListGrid(rows), "店舗A")
    return ResponseSnapshot(label=label, metadata=sheet.metadata, items=sheet.items)


def test_missing_pair_renders_empty_cells():
    a = ResponseSnapshot("a.xlsx", items=(EvaluationItem("1.品質", "① 納期", "1:Good", "早い"),))
    b = ResponseSnapshot("b.xlsx", items=(EvaluationItem("1.品質", "② 対応", "2:Fair", "普通"),))
    writer = GridSheetWriter()
    layout = render_sheet([a, b], writer)

    col = layout.index_of("1.品質", "② 対応")
    assert writer.get(HEADER_ROWS, 0) == "a.xlsx"
    assert (HEADER_ROWS, col) in writer.cells
    assert writer.get(HEADER_ROWS, col) == ""
    assert writer.get(HEADER_ROWS, col + 1) == ""
    assert writer.get(HEADER_ROWS + 1, col) == "2:Fair"
    assert writer.get(HEADER_ROWS + 1, col + 1) == "普通"


def test_header_rows_and_merges(sheet_rows):
    writer = GridSheetWriter()
    layout = SheetRenderer().render([_snapshot(sheet_rows, "a.xlsx")], writer)

    assert layout.leading == ("File Name", "顧客名", "評価日", "担当者")
    assert len(writer.merges) == len(set(writer.merges))
    assert all(not (r0 == r1 and c0 == c1) for r0, r1, c0, c1 in writer.merges)
    assert (0, HEADER_ROWS - 1, 0, 0) in writer.merges
    assert (0, 0) in writer.headers
    assert (HEADER_ROWS, 0) not in writer.headers

    quality = layout.group("1.品質")
    assert writer.get(0, quality.start) == "1.品質"
    assert (0, 0, quality.start, quality.end) in writer.merges
    assert writer.get(1, quality.start) == "① 納期"
    assert (1, 1, quality.start, quality.start + 1) in writer.merges
    assert writer.get(2, quality.start) == "Evaluation"
    assert writer.get(2, quality.start + 1) == "Comment"

    priority = layout.group(PRIORITY)
    labels = [writer.get(1, c) for c in range(priority.start, priority.end + 1, 2)]
    assert labels == ["<1>", "<2>", "<3>"]
    # Rank 1 ("品質") sits in the first priority pair.
    assert writer.get(HEADER_ROWS, priority.start + 1) == "品質"

    request = layout.group(REQUEST)
    assert request.single
    assert (0, HEADER_ROWS - 1, request.start, request.start) in writer.merges
    assert writer.get(HEADER_ROWS, request.start) == "もっと早く | 連絡がほしい"


def test_rows_follow_caller_order(sheet_rows):
    first = _snapshot(evaluation_sheet_rows(customer="B社", quality="3:Poor"), "b.xlsx")
    second = _snapshot(sheet_rows, "a.xlsx")
    writer = GridSheetWriter()
    layout = render_sheet([first, second], writer)

    col = layout.index_of("1.品質", "① 納期")
    assert [writer.get(r, 0) for r in (3, 4)] == ["b.xlsx", "a.xlsx"]
    assert [writer.get(r, 1) for r in (3, 4)] == ["B社", "株式会社A"]
    assert [writer.get(r, col) for r in (3, 4)] == ["3:Poor", "1:Good"]


def test_single_column_prefers_comment_over_evaluation():
    response = ResponseSnapshot(
        "a.xlsx",
        items=(
            EvaluationItem("1.総合", "", "1:Good", ""),
            EvaluationItem("2.印象", "", "2:Fair", "明るい"),
        ),
    )
    writer = GridSheetWriter()
    layout = render_sheet([response], writer)
    assert writer.get(HEADER_ROWS, layout.index_of("1.総合", "")) == "1:Good"
    assert writer.get(HEADER_ROWS, layout.index_of("2.印象", "")) == "明るい"


def test_openpyxl_writer_styles_and_merges(sheet_rows):
    wb = Workbook()
    ws = wb.active
    writer = OpenpyxlSheetWriter(ws)
    grid = GridSheetWriter()
    snapshot = _snapshot(sheet_rows, "a.xlsx")
    SheetRenderer().render([snapshot], writer)
    SheetRenderer().render([snapshot], grid)
    writer.finish()

    assert ws.cell(row=1, column=1).value == "File Name"
    assert ws.cell(row=4, column=1).value == "a.xlsx"
    assert ws.cell(row=1, column=1).font.b
    assert ws.cell(row=4, column=1).font.name == "Times New Roman"
    assert len(ws.merged_cells.ranges) == len(grid.merges)
    assert ws.freeze_panes == "B4"


def test_preview_spans_and_short_labels(sheet_rows):
    view = build_preview([_snapshot(sheet_rows, "a.xlsx")])
    top = view["headers"][0]
    assert top[0] == {"label": "File Name", "rowspan": 3, "colspan": 1}
    labels = [cell["label"] for cell in top]
    assert "2.より満足いただくため" in labels
    assert "3.ご要望" in labels
    # Cells covered by a vertical merge are not repeated on lower header rows.
    assert all(cell["label"] != "File Name" for cell in view["headers"][1])
    assert view["rows"][0][0] == "a.xlsx"
    assert len(view["rows"][0]) == sum(cell["colspan"] for cell in top)
