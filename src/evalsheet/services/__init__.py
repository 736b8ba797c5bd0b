from evalsheet.services.exporter import ExportService
from evalsheet.services.ingestion import IngestionService
from evalsheet.services.preview import PreviewService
from evalsheet.services.templates import TemplateService

__all__ = ["ExportService", "IngestionService", "PreviewService", "TemplateService"]
