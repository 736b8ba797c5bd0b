import time
import logging
from uuid import uuid4
from fastapi import Request
from fastapi.responses import JSONResponse
from evalsheet.config import settings

logger = logging.getLogger("evalsheet.api")

async def add_request_id(request: Request, call_next):
    rid = request.headers.get("x-request-id") or uuid4().hex
    request.state.request_id = rid
    response = await call_next(request)
    response.headers["x-request-id"] = rid
    return response

async def enforce_body_size(request: Request, call_next):
    limit_bytes = settings.security.max_upload_mb * 1024 * 1024
    header_val = request.headers.get("content-length")
    if header_val and header_val.isdigit() and int(header_val) > limit_bytes:
        return JSONResponse(
            status_code=413,
            content={
                "error": "request_too_large",
                "detail": f"Max upload size is {settings.security.max_upload_mb}MB",
            },
        )
    return await call_next(request)

def _request_context(request: Request) -> dict:
    """Template and sheet the request targets, plus the upload size for POSTs."""
    params = request.query_params
    context = {
        "category": params.get("category") or request.path_params.get("category"),
        "sheet": params.get("sheet"),
    }
    length = request.headers.get("content-length")
    if request.method == "POST" and length and length.isdigit():
        context["upload_bytes"] = int(length)
    return context

async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = None
    try:
        response = await call_next(request)
        return response
    finally:
        status = getattr(response, "status_code", "error")
        context = _request_context(request)
        logger.info(
            "%s %s -> %s (category=%s)",
            request.method,
            request.url.path,
            status,
            context["category"],
            extra={
                "method": request.method,
                "path": request.url.path,
                "status": status,
                "duration_ms": round((time.perf_counter() - start) * 1000, 2),
                "request_id": getattr(request.state, "request_id", None),
                **context,
            },
        )
