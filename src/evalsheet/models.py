from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional


class MainItemKind(str, Enum):
    STANDARD = "standard"
    PRIORITY = "priority"
    REQUEST = "request"


class ColumnKind(str, Enum):
    EVALUATION = "evaluation"
    COMMENT = "comment"
    SINGLE = "single"


@dataclass(frozen=True)
class EvaluationItem:
    """One normalized evaluation row: (MainItem, SubItem) -> (Evaluation, Comment)."""
    main_item: str
    sub_item: str
    evaluation: str
    comment: str
    rank: Optional[int] = None  # priority rank taken from the block heading

    @property
    def key(self) -> tuple[str, str]:
        return (self.main_item, self.sub_item)

    @property
    def has_content(self) -> bool:
        return bool(self.evaluation or self.comment)

    def as_tuple(self) -> tuple[str, str, str, str]:
        return (self.main_item, self.sub_item, self.evaluation, self.comment)

    @classmethod
    def coerce(cls, value: "EvaluationItem | tuple | list | Mapping") -> "EvaluationItem":
        """Accept an item, a 4/5-tuple or a mapping with MainItem/SubItem/Evaluation/Comment keys."""
        if isinstance(value, EvaluationItem):
            return value
        if isinstance(value, Mapping):
            rank = value.get("rank", value.get("SubItemRank"))
            return cls(
                main_item=str(value.get("main_item", value.get("MainItem")) or ""),
                sub_item=str(value.get("sub_item", value.get("SubItem")) or ""),
                evaluation=str(value.get("evaluation", value.get("Evaluation")) or ""),
                comment=str(value.get("comment", value.get("Comment")) or ""),
                rank=int(rank) if rank is not None else None,
            )
        parts = list(value)
        if len(parts) not in (4, 5):
            raise ValueError(f"Expected (MainItem, SubItem, Evaluation, Comment), got {value!r}")
        rank = parts[4] if len(parts) == 5 else None
        return cls(*(str(p or "") for p in parts[:4]), rank=int(rank) if rank is not None else None)


@dataclass(frozen=True)
class TraceEvent:
    """Diagnostic emitted during extraction instead of printed output."""
    stage: str
    message: str
    row: Optional[int] = None
    col: Optional[int] = None
    warning: bool = False  # structural absence worth reporting to the uploader


@dataclass(frozen=True)
class ColumnRoles:
    evaluation_col: int
    comment_col: int
    header_row: int
    data_start_row: int


@dataclass(frozen=True)
class SheetExtraction:
    """Result of one extraction pass over one sheet. Never mutated after it is returned."""
    sheet_name: str
    metadata: Mapping[str, str] = field(default_factory=dict)
    items: tuple[EvaluationItem, ...] = ()
    trace: tuple[TraceEvent, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata)))
        object.__setattr__(self, "items", tuple(self.items))
        object.__setattr__(self, "trace", tuple(self.trace))

    @property
    def is_empty(self) -> bool:
        return not self.metadata and not self.items

    def to_dict(self) -> dict:
        return {
            "metadata": dict(self.metadata),
            "items": [item.as_tuple() for item in self.items],
        }


@dataclass(frozen=True)
class WorkbookExtraction:
    file_name: str
    internal_category: str
    sheets: tuple[SheetExtraction, ...]
    skipped_sheets: tuple[str, ...] = ()


@dataclass(frozen=True)
class ResponseSnapshot:
    """Export input: one response row of the pivoted sheet."""
    label: str
    metadata: Mapping[str, str] = field(default_factory=dict)
    items: tuple[EvaluationItem, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata)))
        object.__setattr__(self, "items", tuple(EvaluationItem.coerce(i) for i in self.items))
