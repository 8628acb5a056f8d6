import sys
import logging
from typing import Any

from loguru import logger

from teamplanner.config import LOG_LEVEL

SENSITIVE_KEYS = ["access_code", "code", "password", "token"]


def mask_access_codes(record: dict[str, Any]) -> bool:
    """Mask access codes passed to the logger as extra fields."""
    extra = record.get("extra")
    if isinstance(extra, dict):
        for key in list(extra):
            if any(sk == key.lower() or key.lower().endswith(f"_{sk}") for sk in SENSITIVE_KEYS):
                extra[key] = "****"
    return True


class InterceptHandler(logging.Handler):
    """Route standard logging records (uvicorn, SQLAlchemy) into loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Find caller from where originated the logged message
        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage()
        )


def setup_logging(level: str = LOG_LEVEL) -> None:
    """Configures the loguru logger for the service."""
    logger.remove()

    logger.add(
        sys.stderr,
        level=level,
        format=(
            "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
            "<level>{message}</level>"
        ),
        colorize=True,
        backtrace=True,
        diagnose=False,
        filter=mask_access_codes,
    )

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    logger.info(f"Logging initialized with level: {level}")
