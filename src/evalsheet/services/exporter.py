import logging
import re
from io import BytesIO
from pathlib import Path
from typing import Optional

from openpyxl import Workbook

from evalsheet.config import settings
from evalsheet.data.storage import Database
from evalsheet.data.store import ResponseStore
from evalsheet.extraction.patterns import PatternTable
from evalsheet.pivot.renderer import SheetRenderer
from evalsheet.pivot.schema import PivotSchemaBuilder
from evalsheet.pivot.writers import OpenpyxlSheetWriter

logger = logging.getLogger(__name__)

_INVALID_TITLE = re.compile(r"[\\/*?:\[\]]")


def safe_sheet_title(name: str) -> str:
    """Excel sheet titles: no []:*?/\\ and at most 31 characters."""
    title = _INVALID_TITLE.sub("_", name).strip() or "Sheet"
    return title[:31]


class ExportService:
    """
    Rebuilds the pivoted workbook of one template category:
    one worksheet per stored sheet name, one row per response in upload order.
    """

    def __init__(
        self,
        store: Optional[ResponseStore] = None,
        output_dir: Optional[Path] = None,
        patterns: Optional[PatternTable] = None,
    ):
        self.store = store or ResponseStore(Database(settings.paths.db_path))
        self.output_dir = Path(output_dir or settings.paths.output_dir)
        self.patterns = patterns

    def build_workbook(self, category: str) -> Workbook:
        template = self.store.get_template_by_category(category)
        wb = Workbook()
        wb.remove(wb.active)

        used_titles: set[str] = set()
        for sheet_name in self.store.sheet_names(template["id"]):
            snapshots = self.store.load_snapshots(template["id"], sheet_name)
            keys = self.store.metadata_keys(template["id"], sheet_name)
            layout = PivotSchemaBuilder(self.patterns).build(snapshots, metadata_keys=keys)

            title = safe_sheet_title(sheet_name)
            suffix = 2
            while title in used_titles:
                title = f"{safe_sheet_title(sheet_name)[:28]}_{suffix}"
                suffix += 1
            used_titles.add(title)

            writer = OpenpyxlSheetWriter(wb.create_sheet(title))
            SheetRenderer(self.patterns).render(snapshots, writer, layout=layout)
            writer.finish()
            logger.info(
                "Exported sheet",
                extra={"category": category, "sheet": sheet_name, "responses": len(snapshots), "columns": layout.width},
            )

        if not wb.worksheets:
            wb.create_sheet("Sheet")
        return wb

    def export_category(self, category: str) -> bytes:
        buffer = BytesIO()
        self.build_workbook(category).save(buffer)
        return buffer.getvalue()

    def export_to_file(self, category: str, output: Optional[Path] = None) -> Path:
        data = self.export_category(category)
        if output is None:
            self.output_dir.mkdir(parents=True, exist_ok=True)
            safe_category = category.replace(" ", "_").replace("/", "-")
            output = self.output_dir / f"{safe_category}_export.xlsx"
        else:
            output.parent.mkdir(parents=True, exist_ok=True)
        with open(output, "wb") as f:
            f.write(data)
        return output
