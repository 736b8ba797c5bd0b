from evalsheet.extraction.grid import BLANK, CellGrid, CellKind, CellValue, ListGrid, WorksheetGrid
from evalsheet.extraction.locator import detect_columns, find_table_start, scan_metadata
from evalsheet.extraction.normalize import normalize_cell, normalize_grid, normalize_text
from evalsheet.extraction.patterns import PatternTable, classify_main_item, default_patterns
from evalsheet.extraction.records import RecordExtractor, extract_records, extract_sheet
from evalsheet.extraction.workbook import extract_workbook, internal_category, is_relevant_sheet

__all__ = [
    "BLANK",
    "CellGrid",
    "CellKind",
    "CellValue",
    "ListGrid",
    "PatternTable",
    "RecordExtractor",
    "WorksheetGrid",
    "classify_main_item",
    "default_patterns",
    "detect_columns",
    "extract_records",
    "extract_sheet",
    "extract_workbook",
    "find_table_start",
    "internal_category",
    "is_relevant_sheet",
    "normalize_cell",
    "normalize_grid",
    "normalize_text",
    "scan_metadata",
]
