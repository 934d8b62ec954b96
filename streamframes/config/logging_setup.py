"""
Logging setup for applications embedding streamframes.

The library itself only creates module loggers; call configure_logging()
once from your entry point to get output.
"""

import logging
from typing import Optional

from .settings import Settings, get_settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(settings: Optional[Settings] = None) -> None:
    """Configure root logging at the level named in settings."""
    settings = settings or get_settings()

    level = logging.getLevelName(settings.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    logging.basicConfig(format=LOG_FORMAT, level=level)
    logging.getLogger("streamframes").setLevel(level)
