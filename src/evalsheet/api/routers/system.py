import logging

from fastapi import APIRouter

from evalsheet.config import settings

logger = logging.getLogger("evalsheet.api.system")
router = APIRouter(tags=["System"])


@router.get("/health")
def health():
    return {"status": "ok", "version": settings.app.version}
