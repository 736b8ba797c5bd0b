from __future__ import annotations

from datetime import datetime
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from openpyxl import Workbook

from evalsheet.api import deps
from evalsheet.api.main import create_app
from evalsheet.config import settings
from evalsheet.data.storage import Database
from evalsheet.data.store import ResponseStore

XLSX = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def evaluation_sheet_rows(customer: str = "株式会社A", quality: str = "1:Good") -> list[list]:
    """
    A complete evaluation sheet as the templates lay it out:
    header pairs, the table sentinel, then standard / priority / request sections.
    """
    return [
        ["顧客名", None, customer, None, "評価日", None, datetime(2024, 5, 1)],
        ["※ 選択ボックスから選んでください"],
        ["担当者", "山田"],
        ["評価項目", None, None, "評価", "コメント"],
        ["1.品質"],
        ["①", "納期", None, quality, "問題なし"],
        ["②", "対応", None, "2:Fair", None],
        ["2.より満足いただくために"],
        [None, "<2>", None, "<1>", None, "<3>"],
        [None, "1:Yes", "価格", "1:Yes", "品質", None, "サポート"],
        ["3.ご要望等"],
        [None, "もっと早く"],
        [None, "連絡がほしい"],
    ]


def write_workbook(path: Path, sheets: dict[str, list[list]]) -> Path:
    wb = Workbook()
    wb.remove(wb.active)
    for title, rows in sheets.items():
        ws = wb.create_sheet(title)
        for r, row in enumerate(rows, 1):
            for c, value in enumerate(row, 1):
                if value is not None:
                    ws.cell(row=r, column=c, value=value)
    wb.save(path)
    return path


@pytest.fixture
def sheet_rows():
    return evaluation_sheet_rows()


@pytest.fixture
def workbook_factory(tmp_path):
    def _make(name: str, sheets: dict[str, list[list]]) -> Path:
        return write_workbook(tmp_path / name, sheets)

    return _make


@pytest.fixture
def store(tmp_path):
    return ResponseStore(Database(tmp_path / "evalsheet.db"))


@pytest.fixture(autouse=True)
def reset_security():
    """
    Restore security settings after each test since settings is a module-level singleton.
    """
    original = {
        "api_token": settings.security.api_token,
        "basic_user": settings.security.basic_user,
        "basic_pass": settings.security.basic_pass,
        "max_upload_mb": settings.security.max_upload_mb,
    }
    yield
    settings.security.api_token = original["api_token"]
    settings.security.basic_user = original["basic_user"]
    settings.security.basic_pass = original["basic_pass"]
    settings.security.max_upload_mb = original["max_upload_mb"]


@pytest.fixture
def client(tmp_path):
    app = create_app(db_path=tmp_path / "api.db")
    yield TestClient(app)
    deps.reset_db()
