import logging
from typing import Optional

from evalsheet.config import settings


def configure_logging(level: Optional[str] = None) -> None:
    """Root logging for the API and the CLI; the level defaults to settings.logging.level."""
    name = (level or settings.logging.level).upper()
    logging.basicConfig(
        level=getattr(logging, name, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
