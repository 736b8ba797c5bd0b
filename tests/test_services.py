from __future__ import annotations

import pytest
from conftest import evaluation_sheet_rows
from openpyxl import load_workbook

from evalsheet.exceptions import ResponseNotFoundError, TemplateConflictError, TemplateNotFoundError
from evalsheet.services.exporter import ExportService, safe_sheet_title
from evalsheet.services.ingestion import IngestionService
from evalsheet.services.preview import PreviewService
from evalsheet.services.templates import TemplateService


@pytest.fixture
def ingest(store, workbook_factory):
    svc = IngestionService(store=store)

    def _ingest(name: str, sheets: dict[str, list[list]]):
        return svc.ingest_workbook(workbook_factory(name, sheets))

    return _ingest


def _two_stores(customer: str = "株式会社A") -> dict[str, list[list]]:
    return {"店舗A": evaluation_sheet_rows(customer), "店舗B": evaluation_sheet_rows(customer)}


def test_ingest_creates_template_and_reports_sheets(ingest):
    report = ingest("a.xlsx", {"表紙": [["cover"]], **_two_stores()})

    assert report.template_created
    assert report.category == "Template Type 1"
    assert report.internal_category == "店舗A_店舗B"
    assert [s.sheet_name for s in report.sheets] == ["店舗A", "店舗B"]
    assert report.skipped_sheets == ["表紙"]
    assert report.item_count == 12
    assert report.to_dict()["item_count"] == 12


def test_reupload_replaces_rows_and_keeps_ids(ingest, store):
    first = ingest("a.xlsx", _two_stores())
    again = ingest("a.xlsx", _two_stores(customer="株式会社Z"))

    assert not again.template_created
    assert [s.response_id for s in again.sheets] == [s.response_id for s in first.sheets]
    assert all(s.reuploaded for s in again.sheets)

    snapshots = store.load_snapshots(first.template_id, "店舗A")
    assert len(snapshots) == 1
    assert snapshots[0].metadata["顧客名"] == "株式会社Z"
    assert len(snapshots[0].items) == 6
    assert [i.rank for i in snapshots[0].items if i.rank is not None] == [2, 1, 3]


def test_sheet_warnings_surface_in_report(ingest):
    report = ingest("notes.xlsx", {"メモ": [["自由記述"]]})
    assert report.sheets[0].item_count == 0
    assert report.sheets[0].warnings == ["no table sentinel in sheet"]


def test_new_sheet_set_gets_next_template_number(ingest):
    ingest("a.xlsx", _two_stores())
    other = ingest("c.xlsx", {"本社": evaluation_sheet_rows()})
    assert other.template_created
    assert other.category == "Template Type 2"


def test_deleting_last_responses_drops_template_and_renumbers(ingest, store):
    first = ingest("a.xlsx", _two_stores())
    ingest("c.xlsx", {"本社": evaluation_sheet_rows()})

    svc = TemplateService(store=store)
    result = svc.delete_responses([s.response_id for s in first.sheets] + [999])

    assert sorted(result["deleted"]) == sorted(s.response_id for s in first.sheets)
    assert result["missing"] == [999]
    assert result["removed_templates"] == [first.template_id]
    templates = svc.list_templates()
    assert [(t["category"], t["response_count"]) for t in templates] == [("Template Type 1", 1)]


def test_rename_conflicts_with_used_category(ingest, store):
    first = ingest("a.xlsx", _two_stores())
    ingest("c.xlsx", {"本社": evaluation_sheet_rows()})
    svc = TemplateService(store=store)

    with pytest.raises(TemplateConflictError):
        svc.rename(first.template_id, "Template Type 2")
    with pytest.raises(ValueError):
        svc.rename(first.template_id, "   ")
    with pytest.raises(TemplateNotFoundError):
        svc.rename(12345, "ホテル")

    renamed = svc.rename(first.template_id, "ホテル")
    assert renamed["category"] == "ホテル"
    categories = {t["category"] for t in svc.list_templates()}
    assert categories == {"ホテル", "Template Type 1"}


def test_rename_replaces_empty_conflicting_template(ingest, store):
    first = ingest("a.xlsx", _two_stores())
    ingest("c.xlsx", {"本社": evaluation_sheet_rows()})
    ghost, created = store.get_or_create_template("ghost", "ghost.xlsx")
    assert created and ghost["category"] == "Template Type 3"

    TemplateService(store=store).rename(first.template_id, "Template Type 3")

    templates = store.list_templates()
    assert ghost["id"] not in [t["id"] for t in templates]
    assert sorted(t["category"] for t in templates) == ["Template Type 1", "Template Type 2"]


def test_recent_files_newest_first(ingest, store):
    ingest("a.xlsx", _two_stores())
    ingest("c.xlsx", {"本社": evaluation_sheet_rows()})

    page = TemplateService(store=store).recent_files(page=1, limit=1)
    assert page["total"] == 2
    assert [f["file_name"] for f in page["files"]] == ["c.xlsx"]
    second = TemplateService(store=store).recent_files(page=2, limit=1)
    assert [f["file_name"] for f in second["files"]] == ["a.xlsx"]


def test_export_builds_one_sheet_per_stored_sheet(ingest, store, tmp_path):
    ingest("a.xlsx", _two_stores())
    ingest("b.xlsx", _two_stores(customer="B社"))

    path = ExportService(store=store, output_dir=tmp_path / "out").export_to_file("Template Type 1")
    assert path.name == "Template_Type_1_export.xlsx"

    wb = load_workbook(path)
    assert wb.sheetnames == ["店舗A", "店舗B"]
    ws = wb["店舗A"]
    assert ws.cell(row=1, column=1).value == "File Name"
    assert ws.cell(row=1, column=2).value == "顧客名"
    assert [ws.cell(row=r, column=1).value for r in (4, 5)] == ["a.xlsx", "b.xlsx"]
    assert [ws.cell(row=r, column=2).value for r in (4, 5)] == ["株式会社A", "B社"]


def test_export_unknown_category(store):
    with pytest.raises(TemplateNotFoundError):
        ExportService(store=store).export_category("Template Type 9")


def test_safe_sheet_title():
    assert safe_sheet_title("a/b:c") == "a_b_c"
    assert len(safe_sheet_title("x" * 40)) == 31


def test_preview_falls_back_to_first_sheet_and_puts_reuploads_last(ingest, store):
    ingest("a.xlsx", _two_stores())
    ingest("b.xlsx", _two_stores(customer="B社"))
    ingest("a.xlsx", _two_stores())

    view = PreviewService(store=store).preview("Template Type 1", sheet_name="unknown")
    assert view.sheet_names == ["店舗A", "店舗B"]
    assert view.sheet_name == "店舗A"
    assert [row[0] for row in view.rows] == ["b.xlsx", "a.xlsx"]
    assert view.headers[0][0]["rowspan"] == 3


def test_get_response_returns_stored_rows(ingest, store):
    report = ingest("a.xlsx", _two_stores())
    svc = TemplateService(store=store)

    detail = svc.get_response(report.sheets[0].response_id)
    assert detail["category"] == "Template Type 1"
    assert detail["sheet_name"] == "店舗A"
    assert detail["is_reuploaded"] is False
    assert list(detail["metadata"]) == ["顧客名", "評価日", "担当者"]
    assert detail["items"][0] == {
        "main_item": "1.品質",
        "sub_item": "① 納期",
        "evaluation": "1:Good",
        "comment": "問題なし",
    }

    with pytest.raises(ResponseNotFoundError):
        svc.get_response(999)
