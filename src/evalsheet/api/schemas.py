from typing import Optional

from pydantic import BaseModel, Field


class RenameTemplateRequest(BaseModel):
    category: str = Field(..., min_length=1, max_length=255)


class DeleteResponsesRequest(BaseModel):
    response_ids: list[int] = Field(..., min_length=1)


class TemplateOut(BaseModel):
    id: int
    template_name: str
    category: str
    internal_category: str
    upload_date: str
    response_count: int = 0
    sheet_count: int = 0


class ResponseOut(BaseModel):
    response_id: int
    original_file_name: str
    sheet_name: str
    last_updated: str
    is_reuploaded: bool


class EvaluationItemOut(BaseModel):
    main_item: str
    sub_item: str
    evaluation: str
    comment: str


class ResponseDetailOut(ResponseOut):
    category: str
    metadata: dict[str, str]
    items: list[EvaluationItemOut]


class RecentFileOut(BaseModel):
    file_name: str
    category: str
    last_updated: str
    latest_response_id: int


class RecentFilesOut(BaseModel):
    files: list[RecentFileOut]
    total: int
    page: int
    limit: int


class DeleteResponsesOut(BaseModel):
    deleted: list[int]
    missing: list[int]
    removed_templates: list[int]


class HeaderCell(BaseModel):
    label: str
    rowspan: int = 1
    colspan: int = 1


class PreviewOut(BaseModel):
    category: str
    sheet_names: list[str]
    sheet_name: Optional[str]
    headers: list[list[HeaderCell]]
    rows: list[list[str]]
