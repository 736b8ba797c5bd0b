from __future__ import annotations

import base64
import binascii
from pathlib import Path
from typing import Optional

from fastapi import Header, HTTPException

from evalsheet.config import settings
from evalsheet.data.storage import Database
from evalsheet.data.store import ResponseStore
from evalsheet.services.exporter import ExportService
from evalsheet.services.ingestion import IngestionService
from evalsheet.services.preview import PreviewService
from evalsheet.services.templates import TemplateService

# Global/Cached instances
_db_instance: Optional[Database] = None


def get_db() -> Database:
    global _db_instance
    if _db_instance is None:
        _db_instance = Database(settings.paths.db_path)
    return _db_instance


def reset_db(db_path: Optional[Path] = None) -> None:
    """
    Replace the cached Database. With db_path the next request uses that file,
    otherwise settings.paths.db_path is opened again on demand.
    """
    global _db_instance
    _db_instance = Database(db_path) if db_path else None


def get_store() -> ResponseStore:
    return ResponseStore(db=get_db())


def get_ingestion_service() -> IngestionService:
    return IngestionService(store=get_store())


def get_export_service() -> ExportService:
    return ExportService(store=get_store())


def get_preview_service() -> PreviewService:
    return PreviewService(store=get_store())


def get_template_service() -> TemplateService:
    return TemplateService(store=get_store())


def _basic_credentials(authorization: str) -> Optional[tuple[str, str]]:
    try:
        decoded = base64.b64decode(authorization.split(" ", 1)[1]).decode("utf-8")
    except (IndexError, binascii.Error, UnicodeDecodeError):
        return None
    if ":" not in decoded:
        return None
    username, password = decoded.split(":", 1)
    return username, password


def require_auth(
    authorization: Optional[str] = Header(None),
    x_api_key: Optional[str] = Header(None, alias="X-API-Key"),
):
    """No-op unless an API token or basic credentials are configured."""
    token = settings.security.api_token
    basic_user = settings.security.basic_user
    basic_pass = settings.security.basic_pass
    if not token and not (basic_user and basic_pass):
        return

    if token and (
        authorization == f"Bearer {token}"
        or authorization == f"Token {token}"
        or x_api_key == token
    ):
        return

    if basic_user and basic_pass and authorization and authorization.startswith("Basic "):
        if _basic_credentials(authorization) == (basic_user, basic_pass):
            return

    raise HTTPException(status_code=401, detail="Unauthorized", headers={"WWW-Authenticate": "Bearer"})
