from typing import Optional

from fastapi import APIRouter, Depends, Query

from evalsheet.api.deps import get_preview_service, require_auth
from evalsheet.api.schemas import PreviewOut
from evalsheet.services.preview import PreviewService

router = APIRouter(tags=["Preview"], dependencies=[Depends(require_auth)])


@router.get("/preview", response_model=PreviewOut)
def preview(
    category: str = Query(..., min_length=1),
    sheet: Optional[str] = Query(None),
    svc: PreviewService = Depends(get_preview_service),
):
    return svc.preview(category, sheet_name=sheet).to_dict()
