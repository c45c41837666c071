import logging
import sys
from typing import Iterable, Optional

from loguru import logger

from dashboard.core.config import settings

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}"


class InterceptHandler(logging.Handler):
    """Hands records from uvicorn, httpx and supabase over to loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Report the library's call site, not the logging module
        frame, depth = logging.currentframe(), 2
        while frame is not None and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def quiet_loggers(names: Iterable[str], level: int = logging.WARNING) -> None:
    for name in names:
        logging.getLogger(name).setLevel(level)


def setup_logging(level: Optional[str] = None, error_log_path: Optional[str] = None) -> None:
    logger.remove()

    logger.add(sys.stdout, level=level or settings.LOG_LEVEL, format=CONSOLE_FORMAT)

    # Storage and auth failures end up here. No local variables in the
    # tracebacks: frames of the auth flow hold passwords and tokens.
    logger.add(
        error_log_path or settings.ERROR_LOG_PATH,
        level="ERROR",
        rotation="10 MB",
        retention="1 month",
        compression="zip",
        backtrace=False,
        diagnose=False,
        format=FILE_FORMAT,
    )

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    quiet_loggers(settings.QUIET_LOGGERS)


__all__ = ["logger", "setup_logging"]
