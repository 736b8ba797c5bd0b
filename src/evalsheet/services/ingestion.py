import logging
from pathlib import Path
from typing import Optional

from evalsheet.config import settings
from evalsheet.data.dto import IngestionReport, SheetReport
from evalsheet.data.storage import Database
from evalsheet.data.store import ResponseStore
from evalsheet.extraction.patterns import PatternTable
from evalsheet.extraction.workbook import WorkbookSource, extract_workbook

logger = logging.getLogger(__name__)


class IngestionService:
    """
    Uploads an evaluation workbook into the store.
    The template is found by its internal category (sorted sheet names) or
    created with the next free display name; every sheet is stored atomically,
    replacing the previous upload of the same file and sheet.
    """

    def __init__(self, store: Optional[ResponseStore] = None, patterns: Optional[PatternTable] = None):
        self.store = store or ResponseStore(Database(settings.paths.db_path))
        self.patterns = patterns

    def ingest_workbook(self, source: WorkbookSource, original_file_name: Optional[str] = None) -> IngestionReport:
        if original_file_name is None and isinstance(source, (str, Path)):
            original_file_name = Path(source).name
        extraction = extract_workbook(source, original_file_name, self.patterns)

        template, created = self.store.get_or_create_template(extraction.internal_category, extraction.file_name)
        report = IngestionReport(
            file_name=extraction.file_name,
            template_id=template["id"],
            category=template["category"],
            internal_category=extraction.internal_category,
            template_created=created,
            skipped_sheets=list(extraction.skipped_sheets),
        )

        for sheet in extraction.sheets:
            response_id, reuploaded = self.store.replace_response(template["id"], extraction.file_name, sheet)
            report.sheets.append(
                SheetReport(
                    sheet_name=sheet.sheet_name,
                    response_id=response_id,
                    reuploaded=reuploaded,
                    metadata_count=len(sheet.metadata),
                    item_count=len(sheet.items),
                    warnings=[e.message for e in sheet.trace if e.warning],
                )
            )

        logger.info(
            "Ingested workbook",
            extra={
                "file": extraction.file_name,
                "category": report.category,
                "sheets": len(report.sheets),
                "items": report.item_count,
            },
        )
        return report
