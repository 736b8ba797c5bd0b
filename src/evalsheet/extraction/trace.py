from __future__ import annotations

import logging
from typing import Optional

from evalsheet.models import TraceEvent

logger = logging.getLogger(__name__)


class TraceLog:
    """
    Collects extraction diagnostics for one sheet.
    Every event is mirrored to the module logger at DEBUG.
    """

    def __init__(self, sheet_name: str = ""):
        self.sheet_name = sheet_name
        self._events: list[TraceEvent] = []

    def add(
        self,
        stage: str,
        message: str,
        row: Optional[int] = None,
        col: Optional[int] = None,
        warning: bool = False,
    ) -> None:
        event = TraceEvent(stage=stage, message=message, row=row, col=col, warning=warning)
        self._events.append(event)
        logger.debug(
            "%s: %s",
            stage,
            message,
            extra={"sheet": self.sheet_name, "row": row, "col": col},
        )

    def warn(self, stage: str, message: str, row: Optional[int] = None, col: Optional[int] = None) -> None:
        self.add(stage, message, row=row, col=col, warning=True)

    @property
    def events(self) -> tuple[TraceEvent, ...]:
        return tuple(self._events)

    def __len__(self) -> int:
        return len(self._events)
