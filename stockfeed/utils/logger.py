"""
Logging setup.

Everything goes through the root logger: one stdout handler plus, unless
``LOG_TO_FILE=false``, a midnight-rotated ``stockfeed.log`` under
``LOG_DIR``. Modules only ever call ``get_logger(__name__)``.
"""
import logging
import sys
from logging.handlers import TimedRotatingFileHandler

from stockfeed.utils.config import get_settings

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)-30s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_FILE_NAME = "stockfeed.log"

# Third-party loggers that are chatty at INFO (request lines, SQL echo, driver events)
QUIET_LOGGERS: tuple[str, ...] = ("aiohttp", "asyncio", "playwright", "sqlalchemy.engine")

_initialized: bool = False


def _file_handler() -> logging.Handler:
    settings = get_settings()
    settings.log_dir.mkdir(parents=True, exist_ok=True)
    handler = TimedRotatingFileHandler(
        filename=settings.log_dir / LOG_FILE_NAME,
        when="midnight",
        backupCount=settings.log_retention_days,
        encoding="utf-8",
    )
    handler.suffix = "%Y-%m-%d"
    return handler


def setup_logging() -> None:
    """Configure the root logger once; later calls do nothing."""
    global _initialized
    if _initialized:
        return
    _initialized = True

    settings = get_settings()
    level = logging.getLevelName(settings.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if settings.log_to_file:
        handlers.append(_file_handler())

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Return the logger for ``name`` (usually ``__name__``), configuring logging first."""
    setup_logging()
    return logging.getLogger(name)
