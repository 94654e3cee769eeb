"""loguru setup for the CLI.

SQLAlchemy and Alembic log through the standard library; their records are
forwarded into loguru so one stderr sink carries everything.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterable

from loguru import logger

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> <level>{level: <8}</level> "
    "<cyan>{name}</cyan>:<cyan>{line}</cyan> {message}"
)

QUIET_LOGGERS = ("sqlalchemy.engine", "alembic.runtime.migration")


class _ForwardToLoguru(logging.Handler):
    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Skip logging's own frames so the record points at the library call-site
        frame, depth = logging.currentframe(), 2
        while frame is not None and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def setup_logging(level: str = "WARNING", quiet: Iterable[str] = QUIET_LOGGERS) -> None:
    """Send all logging to stderr at *level*.

    Stdlib loggers named in *quiet* are held at WARNING regardless of *level*.
    """
    level = level.upper()
    logger.remove()
    logger.add(sys.stderr, level=level, format=LOG_FORMAT)

    logging.basicConfig(handlers=[_ForwardToLoguru()], level=0, force=True)
    for name in quiet:
        logging.getLogger(name).setLevel(logging.WARNING)

    logger.debug("Logging to stderr at {}", level)
