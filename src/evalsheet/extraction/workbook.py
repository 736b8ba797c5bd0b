from __future__ import annotations

import logging
from io import BytesIO
from pathlib import Path
from typing import BinaryIO, Iterable, Optional, Union
from zipfile import BadZipFile

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException
from openpyxl.workbook.workbook import Workbook

from evalsheet.config import ExtractionSettings, settings
from evalsheet.exceptions import DataSourceError
from evalsheet.extraction.grid import WorksheetGrid
from evalsheet.extraction.patterns import PatternTable, default_patterns
from evalsheet.extraction.records import extract_sheet
from evalsheet.models import WorkbookExtraction

logger = logging.getLogger(__name__)

WorkbookSource = Union[str, Path, bytes, BinaryIO]


def is_relevant_sheet(name: str, cfg: Optional[ExtractionSettings] = None) -> bool:
    """Cover, summary and unnamed sheets carry no responses."""
    cfg = cfg or settings.extraction
    name = (name or "").strip()
    if not name:
        return False
    if name.startswith(cfg.summary_sheet_prefix):
        return False
    return name != cfg.cover_sheet_name


def internal_category(sheet_names: Iterable[str], cfg: Optional[ExtractionSettings] = None) -> str:
    """Stable identity of a template: its sorted relevant sheet names joined by '_'."""
    cfg = cfg or settings.extraction
    relevant = sorted(name.strip() for name in sheet_names if is_relevant_sheet(name, cfg))
    if not relevant:
        return cfg.empty_template_category
    return "_".join(relevant)


def open_workbook(source: WorkbookSource) -> Workbook:
    """Load a workbook with cached formula results. Unreadable input raises DataSourceError."""
    try:
        if isinstance(source, (bytes, bytearray)):
            source = BytesIO(source)
        return load_workbook(source, data_only=True)
    except FileNotFoundError as exc:
        raise DataSourceError(f"Workbook not found: {source}") from exc
    except (InvalidFileException, BadZipFile, KeyError, OSError, ValueError) as exc:
        raise DataSourceError(f"Cannot read workbook: {exc}") from exc


def extract_workbook(
    source: WorkbookSource,
    file_name: Optional[str] = None,
    patterns: Optional[PatternTable] = None,
) -> WorkbookExtraction:
    patterns = patterns or default_patterns()
    if file_name is None:
        file_name = Path(source).name if isinstance(source, (str, Path)) else "upload.xlsx"

    wb = open_workbook(source)
    try:
        category = internal_category(wb.sheetnames)
        sheets = []
        skipped = []
        for ws in wb.worksheets:
            if not is_relevant_sheet(ws.title):
                logger.info("Skipping sheet", extra={"sheet": ws.title, "file": file_name})
                skipped.append(ws.title)
                continue
            sheets.append(extract_sheet(WorksheetGrid(ws), ws.title, patterns))
    finally:
        wb.close()

    return WorkbookExtraction(
        file_name=file_name,
        internal_category=category,
        sheets=tuple(sheets),
        skipped_sheets=tuple(skipped),
    )
