import logging
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from evalsheet.config import settings
from evalsheet.exceptions import (
    DataSourceError,
    ResponseNotFoundError,
    StorageError,
    TemplateConflictError,
    TemplateNotFoundError,
)
from evalsheet.logs import configure_logging
from evalsheet.api import deps
from evalsheet.api.middleware import add_request_id, enforce_body_size, log_requests

# Routers
from evalsheet.api.routers import export, preview, system, templates, uploads

configure_logging()
logger = logging.getLogger("evalsheet.api")

# Typed errors -> (status, error code)
_ERROR_STATUS = {
    DataSourceError: (422, "invalid_source"),
    TemplateNotFoundError: (404, "template_not_found"),
    ResponseNotFoundError: (404, "response_not_found"),
    TemplateConflictError: (409, "template_conflict"),
    StorageError: (500, "storage_error"),
    ValueError: (422, "invalid_request"),
}


def _error_payload(request: Request, error: str, detail: str) -> dict:
    payload = {"error": error, "detail": detail}
    rid = getattr(request.state, "request_id", None)
    if rid:
        payload["request_id"] = rid
    return payload


def create_app(db_path: Optional[Path] = None) -> FastAPI:
    """
    Factory to build the FastAPI application.
    Passing db_path points the shared Database dependency at another SQLite file (tests).
    """
    if db_path:
        deps.reset_db(Path(db_path))

    app = FastAPI(title="evalsheet API", version=settings.app.version)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Custom Middleware
    app.middleware("http")(add_request_id)
    app.middleware("http")(enforce_body_size)
    if settings.logging.log_requests:
        app.middleware("http")(log_requests)

    app.include_router(system.router)
    app.include_router(uploads.router)
    app.include_router(templates.router)
    app.include_router(preview.router)
    app.include_router(export.router)

    def _typed_handler(status: int, error: str):
        async def handler(request: Request, exc: Exception):
            if status >= 500:
                logger.error(
                    "Request failed",
                    extra={"path": str(request.url), "request_id": getattr(request.state, "request_id", None)},
                )
            return JSONResponse(status_code=status, content=_error_payload(request, error, str(exc)))

        return handler

    for exc_type, (status, error) in _ERROR_STATUS.items():
        app.add_exception_handler(exc_type, _typed_handler(status, error))

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        if isinstance(exc, StarletteHTTPException):
            return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})

        rid = getattr(request.state, "request_id", None)
        logger.exception("Unhandled error", extra={"path": str(request.url), "request_id": rid})
        return JSONResponse(
            status_code=500,
            content=_error_payload(request, "internal_error", "Unexpected server error"),
        )

    return app


# Module-level app for uvicorn entrypoint
app = create_app()
