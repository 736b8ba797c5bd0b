"""
Column layout for the pivoted export sheet.

The layout depends only on the set of (MainItem, SubItem) pairs that carry
content somewhere in the response set, never on the order responses arrive in.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterable, Mapping, Optional, Sequence, Union

from evalsheet.config import settings
from evalsheet.extraction.patterns import PatternTable, default_patterns
from evalsheet.models import ColumnKind, EvaluationItem, MainItemKind, ResponseSnapshot

ResponseLike = Union[ResponseSnapshot, Sequence]


@dataclass(frozen=True)
class PivotColumn:
    main_item: str
    sub_item: str
    kind: ColumnKind
    index: int
    span: int = 1  # header columns covered by the SubItem label


@dataclass(frozen=True)
class MainItemGroup:
    main_item: str
    kind: MainItemKind
    sub_items: tuple[str, ...]
    single: bool
    start: int
    end: int  # inclusive

    @property
    def width(self) -> int:
        return self.end - self.start + 1


@dataclass(frozen=True)
class PivotLayout:
    leading: tuple[str, ...]
    groups: tuple[MainItemGroup, ...]
    columns: tuple[PivotColumn, ...]
    start_index: Mapping[tuple[str, str], int] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "start_index", MappingProxyType(dict(self.start_index)))

    @property
    def width(self) -> int:
        return len(self.leading) + len(self.columns)

    @property
    def metadata_keys(self) -> tuple[str, ...]:
        return self.leading[1:]

    def index_of(self, main_item: str, sub_item: str) -> Optional[int]:
        return self.start_index.get((main_item, sub_item))

    def group(self, main_item: str) -> Optional[MainItemGroup]:
        return next((g for g in self.groups if g.main_item == main_item), None)

    def main_range(self, main_item: str) -> Optional[tuple[int, int]]:
        g = self.group(main_item)
        return (g.start, g.end) if g else None


def response_items(response: ResponseLike) -> tuple[EvaluationItem, ...]:
    if isinstance(response, ResponseSnapshot):
        return response.items
    return tuple(EvaluationItem.coerce(i) for i in response)


class PivotSchemaBuilder:
    def __init__(self, patterns: Optional[PatternTable] = None, response_column: Optional[str] = None):
        self.patterns = patterns or default_patterns()
        self.response_column = response_column or settings.export.response_column

    def build(self, responses: Iterable[ResponseLike], metadata_keys: Optional[Sequence[str]] = None) -> PivotLayout:
        responses = list(responses)
        if metadata_keys is None:
            metadata_keys = self._metadata_keys(responses)
        leading = (self.response_column, *metadata_keys)

        universe: dict[str, dict[str, Optional[int]]] = {}
        for response in responses:
            for item in response_items(response):
                if not item.has_content:
                    continue
                subs = universe.setdefault(item.main_item, {})
                rank = item.rank
                known = subs.get(item.sub_item)
                if item.sub_item not in subs or (rank is not None and (known is None or rank < known)):
                    subs[item.sub_item] = rank

        groups: list[MainItemGroup] = []
        columns: list[PivotColumn] = []
        start_index: dict[tuple[str, str], int] = {}
        index = len(leading)
        for main_item in sorted(universe, key=self.main_item_key):
            kind = self.patterns.classify(main_item)
            subs = universe[main_item]
            ordered = self.order_sub_items(kind, subs)
            single = kind is MainItemKind.REQUEST or not any(ordered)

            if single:
                columns.append(PivotColumn(main_item, "", ColumnKind.SINGLE, index))
                for sub in ordered:
                    start_index[(main_item, sub)] = index
                groups.append(MainItemGroup(main_item, kind, tuple(ordered), True, index, index))
                index += 1
                continue

            start = index
            for sub in ordered:
                start_index[(main_item, sub)] = index
                columns.append(PivotColumn(main_item, sub, ColumnKind.EVALUATION, index, span=2))
                columns.append(PivotColumn(main_item, sub, ColumnKind.COMMENT, index + 1, span=2))
                index += 2
            groups.append(MainItemGroup(main_item, kind, tuple(ordered), False, start, index - 1))

        return PivotLayout(
            leading=leading,
            groups=tuple(groups),
            columns=tuple(columns),
            start_index=start_index,
        )

    def main_item_key(self, main_item: str):
        bucket = 0 if self.patterns.classify(main_item) is MainItemKind.STANDARD else 1
        number = self.patterns.leading_number(main_item)
        return (bucket, number is None, number or 0, main_item)

    def order_sub_items(self, kind: MainItemKind, subs: Mapping[str, Optional[int]]) -> list[str]:
        if kind is MainItemKind.PRIORITY:
            def rank_key(sub: str):
                rank = subs[sub] if subs[sub] is not None else self.patterns.rank_of(sub)
                return (rank is None, rank or 0, sub)
            return sorted(subs, key=rank_key)
        return sorted(subs)

    @staticmethod
    def _metadata_keys(responses: Sequence[ResponseLike]) -> list[str]:
        keys: dict[str, None] = {}
        for response in responses:
            if isinstance(response, ResponseSnapshot):
                for key, value in response.metadata.items():
                    if value:
                        keys.setdefault(key, None)
        return list(keys)


def build_layout(responses: Iterable[ResponseLike], patterns: Optional[PatternTable] = None) -> PivotLayout:
    return PivotSchemaBuilder(patterns).build(responses)
