from typing import Optional

from evalsheet.config import settings
from evalsheet.data.dto import PreviewSheet
from evalsheet.data.storage import Database
from evalsheet.data.store import ResponseStore
from evalsheet.extraction.patterns import PatternTable
from evalsheet.pivot.preview import build_preview


class PreviewService:
    def __init__(self, store: Optional[ResponseStore] = None, patterns: Optional[PatternTable] = None):
        self.store = store or ResponseStore(Database(settings.paths.db_path))
        self.patterns = patterns

    def preview(self, category: str, sheet_name: Optional[str] = None) -> PreviewSheet:
        """
        Pivot view of one sheet of a template. An unknown or missing
        sheet name falls back to the first uploaded sheet.
        """
        template = self.store.get_template_by_category(category)
        sheet_names = self.store.sheet_names(template["id"])
        if not sheet_names:
            return PreviewSheet(category=category, sheet_names=[], sheet_name=None, headers=[], rows=[])

        selected = sheet_name if sheet_name in sheet_names else sheet_names[0]
        snapshots = self.store.load_snapshots(template["id"], selected, reuploads_last=True)
        view = build_preview(snapshots, self.patterns)
        return PreviewSheet(
            category=category,
            sheet_names=sheet_names,
            sheet_name=selected,
            headers=view["headers"],
            rows=view["rows"],
        )
