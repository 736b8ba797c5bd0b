from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class SheetReport:
    sheet_name: str
    response_id: int
    reuploaded: bool
    metadata_count: int
    item_count: int
    warnings: List[str] = field(default_factory=list)  # trace messages worth surfacing


@dataclass
class IngestionReport:
    """Outcome of one workbook upload."""
    file_name: str
    template_id: int
    category: str
    internal_category: str
    template_created: bool
    sheets: List[SheetReport] = field(default_factory=list)
    skipped_sheets: List[str] = field(default_factory=list)

    @property
    def item_count(self) -> int:
        return sum(s.item_count for s in self.sheets)

    def to_dict(self) -> Dict[str, Any]:
        payload = asdict(self)
        payload["item_count"] = self.item_count
        return payload


@dataclass
class PreviewSheet:
    category: str
    sheet_names: List[str]
    sheet_name: Optional[str]
    headers: List[List[Dict[str, Any]]]
    rows: List[List[str]]

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
