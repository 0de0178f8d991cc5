"""Logging configuration for LinkScope.

Library modules only create named loggers; the process entry point (the CLI,
or whatever web app embeds the engine) calls :func:`setup_logging` once.
"""

from __future__ import annotations

import logging
import sys
from typing import TextIO

from linkscope.config import settings

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"


def setup_logging(level: str | None = None, stream: TextIO | None = None) -> None:
    """Install a single stream handler on the root logger.

    Args:
        level: Log level name (DEBUG, INFO, ...).  Defaults to
            ``settings.log_level``.
        stream: Output stream; stdout unless given.
    """
    log_level = (level or settings.log_level).upper()

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level, logging.INFO))
    root_logger.handlers.clear()

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%H:%M:%S"))
    root_logger.addHandler(handler)

    # httpx logs every request at INFO.
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
