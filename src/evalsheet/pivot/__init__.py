from evalsheet.pivot.preview import build_preview, short_main_label
from evalsheet.pivot.renderer import PivotTable, SheetRenderer, SheetWriter, render_sheet
from evalsheet.pivot.schema import MainItemGroup, PivotColumn, PivotLayout, PivotSchemaBuilder, build_layout
from evalsheet.pivot.writers import GridSheetWriter, OpenpyxlSheetWriter

__all__ = [
    "GridSheetWriter",
    "MainItemGroup",
    "OpenpyxlSheetWriter",
    "PivotColumn",
    "PivotLayout",
    "PivotSchemaBuilder",
    "PivotTable",
    "SheetRenderer",
    "SheetWriter",
    "build_layout",
    "build_preview",
    "render_sheet",
    "short_main_label",
]
