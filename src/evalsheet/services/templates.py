import logging
from typing import Any, Iterable, Optional

from evalsheet.config import settings
from evalsheet.data.storage import Database
from evalsheet.data.store import ResponseStore
from evalsheet.exceptions import TemplateNotFoundError

logger = logging.getLogger(__name__)


class TemplateService:
    """Template listing and maintenance on top of the response store."""

    def __init__(self, store: Optional[ResponseStore] = None):
        self.store = store or ResponseStore(Database(settings.paths.db_path))

    def list_templates(self) -> list[dict[str, Any]]:
        return self.store.list_templates()

    def list_responses(self, category: str) -> list[dict[str, Any]]:
        template = self.store.get_template_by_category(category)
        return self.store.list_responses(template["id"])

    def get_response(self, response_id: int) -> dict[str, Any]:
        return self.store.get_response(response_id)

    def recent_files(self, page: int = 1, limit: int = 10) -> dict[str, Any]:
        files, total = self.store.recent_files(page=page, limit=limit)
        return {"files": files, "total": total, "page": max(page, 1), "limit": max(limit, 1)}

    def rename(self, template_id: int, new_category: str) -> dict[str, Any]:
        if not new_category or not new_category.strip():
            raise ValueError("Template category must not be empty")
        template = self.store.rename_template(template_id, new_category)
        if template is None:
            # Renumbering drops auto-named templates that have no responses.
            raise TemplateNotFoundError(f"Template {template_id} was removed while renaming")
        logger.info("Renamed template", extra={"template_id": template_id, "category": template["category"]})
        return template

    def delete_responses(self, response_ids: Iterable[int]) -> dict[str, list]:
        return self.store.delete_responses(response_ids)
