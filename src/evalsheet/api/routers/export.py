from urllib.parse import quote

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response

from evalsheet.api.deps import get_export_service, require_auth
from evalsheet.services.exporter import ExportService

router = APIRouter(tags=["Export"], dependencies=[Depends(require_auth)])

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


@router.get("/export")
def export_category(
    category: str = Query(..., min_length=1),
    svc: ExportService = Depends(get_export_service),
):
    data = svc.export_category(category)
    filename = f"{category}_export.xlsx"
    return Response(
        content=data,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f"attachment; filename*=UTF-8''{quote(filename)}"},
    )
