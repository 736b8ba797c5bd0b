import logging
from pathlib import Path

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile

from evalsheet.api.deps import get_ingestion_service, require_auth
from evalsheet.config import settings
from evalsheet.services.ingestion import IngestionService

logger = logging.getLogger("evalsheet.api.uploads")
router = APIRouter(prefix="/uploads", tags=["Uploads"])


def _read_upload(upload: UploadFile) -> bytes:
    name = upload.filename or ""
    if Path(name).suffix.lower() != ".xlsx":
        raise HTTPException(status_code=400, detail="Please upload an .xlsx file")
    max_bytes = settings.security.max_upload_mb * 1024 * 1024
    content = upload.file.read()
    if max_bytes and len(content) > max_bytes:
        raise HTTPException(
            status_code=413,
            detail=f"File too large; max {settings.security.max_upload_mb}MB",
        )
    return content


@router.post("", status_code=201)
def upload_workbook(
    file: UploadFile = File(...),
    svc: IngestionService = Depends(get_ingestion_service),
    _auth=Depends(require_auth),
):
    content = _read_upload(file)
    file_name = Path(file.filename).name
    report = svc.ingest_workbook(content, original_file_name=file_name)
    return report.to_dict()
