"""
Single pattern table shared by the extractor (sheet -> records) and the
pivot builder (records -> sheet), so both directions classify text the same way.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from evalsheet.config import ExtractionSettings, settings
from evalsheet.models import MainItemKind


@dataclass(frozen=True)
class PatternTable:
    table_sentinel: str
    evaluation_header: str
    comment_header: str
    priority_marker: str
    request_marker: str
    note_glyph: str
    note_keywords: tuple[str, ...]
    main_item: re.Pattern
    priority_header: re.Pattern
    rank: re.Pattern
    leading_number_re: re.Pattern
    evaluation_code: re.Pattern
    enumerator: re.Pattern
    angle_marker: re.Pattern
    fallback_scan_rows: int

    @classmethod
    def from_settings(cls, cfg: ExtractionSettings) -> "PatternTable":
        return cls(
            table_sentinel=cfg.table_sentinel,
            evaluation_header=cfg.evaluation_header,
            comment_header=cfg.comment_header,
            priority_marker=cfg.priority_marker,
            request_marker=cfg.request_marker,
            note_glyph=cfg.note_glyph,
            note_keywords=tuple(cfg.note_keywords),
            main_item=re.compile(cfg.main_item_pattern),
            priority_header=re.compile(cfg.priority_header_pattern),
            rank=re.compile(cfg.rank_pattern),
            leading_number_re=re.compile(cfg.leading_number_pattern),
            evaluation_code=re.compile(cfg.evaluation_code_pattern),
            enumerator=re.compile(cfg.enumerator_pattern),
            angle_marker=re.compile(cfg.angle_marker_pattern),
            fallback_scan_rows=cfg.fallback_scan_rows,
        )

    def is_main_item(self, text: str) -> bool:
        return bool(text) and self.main_item.search(text) is not None

    def is_priority_header(self, text: str) -> bool:
        return bool(text) and self.priority_header.match(text) is not None

    def is_evaluation_code(self, text: str) -> bool:
        return bool(text) and self.evaluation_code.match(text) is not None

    def is_enumerator(self, text: str) -> bool:
        return bool(text) and self.enumerator.match(text) is not None

    def is_angle_marker(self, text: str) -> bool:
        return bool(text) and self.angle_marker.match(text) is not None

    def is_note(self, text: str) -> bool:
        if not text:
            return False
        if text.startswith(self.note_glyph):
            return True
        return any(keyword in text for keyword in self.note_keywords)

    def classify(self, main_item: str) -> MainItemKind:
        # Priority wins when a label carries both markers.
        if self.priority_marker and self.priority_marker in main_item:
            return MainItemKind.PRIORITY
        if self.request_marker and self.request_marker in main_item:
            return MainItemKind.REQUEST
        return MainItemKind.STANDARD

    def rank_of(self, text: str) -> Optional[int]:
        """Numeral of a priority heading such as '<2>', '２.①' or '3.'."""
        if not text:
            return None
        m = self.rank.match(text)
        return int(m.group(1)) if m else None

    def leading_number(self, text: str) -> Optional[int]:
        if not text:
            return None
        m = self.leading_number_re.match(text)
        return int(m.group(1)) if m else None


@lru_cache(maxsize=8)
def _compiled(cfg_json: str) -> PatternTable:
    return PatternTable.from_settings(ExtractionSettings.model_validate_json(cfg_json))


def default_patterns() -> PatternTable:
    """Pattern table for the current global settings (recompiled only when they change)."""
    return _compiled(settings.extraction.model_dump_json())


def classify_main_item(main_item: str, patterns: Optional[PatternTable] = None) -> MainItemKind:
    return (patterns or default_patterns()).classify(main_item)
