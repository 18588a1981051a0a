from __future__ import annotations
import sys
from typing import Any, Optional

from loguru import logger

LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{line} - {message}"


def configure_logging(level: str = "INFO", sink: Optional[Any] = None) -> int:
    """Replace loguru's default handler with a single sink at `level`.

    Returns the handler id so callers (tests) can remove it again.
    """
    logger.remove()
    return logger.add(sink or sys.stderr, level=level, format=LOG_FORMAT, backtrace=False, diagnose=False)
