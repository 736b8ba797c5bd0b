from openpyxl.styles import Alignment, Border, Font, Side
from openpyxl.worksheet.worksheet import Worksheet
from openpyxl.cell.cell import MergedCell

from evalsheet.config import settings


class ExportStyle:
    """
    Visual language of the pivoted export: serif font, thin grid borders,
    centered bold headers and top-aligned wrapped data cells.
    """

    # Borders
    THIN_BORDER = Side(border_style="thin", color="000000")
    BORDER_ALL = Border(top=THIN_BORDER, left=THIN_BORDER, right=THIN_BORDER, bottom=THIN_BORDER)

    @staticmethod
    def apply_header_style(cell):
        """Bold, centered, wrapped, bordered."""
        cfg = settings.export
        cell.font = Font(bold=True, name=cfg.font_name, size=cfg.font_size)
        cell.alignment = Alignment(horizontal="center", vertical="center", wrap_text=True)
        cell.border = ExportStyle.BORDER_ALL

    @staticmethod
    def apply_body_style(cell):
        cfg = settings.export
        cell.font = Font(name=cfg.font_name, size=cfg.font_size)
        cell.alignment = Alignment(vertical="top", wrap_text=True)
        cell.border = ExportStyle.BORDER_ALL

    @staticmethod
    def apply_row_height(ws: Worksheet, row: int):
        ws.row_dimensions[row].height = settings.export.data_row_height

    @staticmethod
    def auto_size_columns(ws: Worksheet):
        """Simple auto-size heuristic; the longest line of a cell decides."""
        cap = settings.export.max_column_width
        for col in ws.columns:
            cells = [cell for cell in col if not isinstance(cell, MergedCell)]
            if not cells:
                continue
            max_length = 0
            column = cells[0].column_letter
            for cell in cells:
                if cell.value is None:
                    continue
                longest = max(len(line) for line in str(cell.value).splitlines() or [""])
                max_length = max(max_length, longest)
            adjusted_width = (max_length + 2) * 1.2
            ws.column_dimensions[column].width = min(adjusted_width, cap)
