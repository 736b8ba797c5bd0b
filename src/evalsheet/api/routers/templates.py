from fastapi import APIRouter, Depends, Query

from evalsheet.api.deps import get_template_service, require_auth
from evalsheet.api.schemas import (
    DeleteResponsesOut,
    DeleteResponsesRequest,
    RecentFilesOut,
    RenameTemplateRequest,
    ResponseDetailOut,
    ResponseOut,
    TemplateOut,
)
from evalsheet.services.templates import TemplateService

router = APIRouter(tags=["Templates"], dependencies=[Depends(require_auth)])


@router.get("/templates", response_model=list[TemplateOut])
def list_templates(svc: TemplateService = Depends(get_template_service)):
    return svc.list_templates()


@router.get("/templates/{category}/responses", response_model=list[ResponseOut])
def list_responses(category: str, svc: TemplateService = Depends(get_template_service)):
    return svc.list_responses(category)


@router.patch("/templates/{template_id}", response_model=TemplateOut)
def rename_template(
    template_id: int,
    body: RenameTemplateRequest,
    svc: TemplateService = Depends(get_template_service),
):
    template = svc.rename(template_id, body.category)
    matches = [t for t in svc.list_templates() if t["id"] == template["id"]]
    return matches[0] if matches else template


@router.get("/responses/{response_id}", response_model=ResponseDetailOut)
def get_response(response_id: int, svc: TemplateService = Depends(get_template_service)):
    return svc.get_response(response_id)


@router.post("/responses/delete", response_model=DeleteResponsesOut)
def delete_responses(body: DeleteResponsesRequest, svc: TemplateService = Depends(get_template_service)):
    return svc.delete_responses(body.response_ids)


@router.get("/recent-files", response_model=RecentFilesOut)
def recent_files(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    svc: TemplateService = Depends(get_template_service),
):
    return svc.recent_files(page=page, limit=limit)
