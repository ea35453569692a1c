"""
Logging for Registry Scout.

Every module logs through the shared ``logger`` (console plus a rotating file
under LOG_DIR). Run summaries go through ``log_block`` so watch and
enrichment runs read the same in the log file.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler

from config.settings import settings

RULE = "=" * 60

FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(funcName)s:%(lineno)d | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(name: str = "registry_scout") -> logging.Logger:
    """
    Set up the named logger.

    Args:
        name: Logger name, also used for the log file name

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))

    # Avoid duplicate handlers on re-import
    if logger.handlers:
        return logger

    formatter = logging.Formatter(FORMAT, datefmt=DATE_FORMAT)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.DEBUG if settings.DEBUG else logging.INFO)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if settings.LOG_TO_FILE:
        settings.LOG_DIR.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            settings.LOG_DIR / f"{name}.log",
            maxBytes=settings.LOG_MAX_BYTES,
            backupCount=settings.LOG_BACKUP_COUNT,
            encoding="utf-8",
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


def log_block(title: str, lines: list[str], warnings: list[str] = ()):
    """Log a ruled summary block; ``warnings`` are logged at WARNING level."""
    logger.info(RULE, stacklevel=2)
    logger.info(title, stacklevel=2)
    logger.info(RULE, stacklevel=2)
    for line in lines:
        logger.info(line, stacklevel=2)
    for warning in warnings:
        logger.warning(f"  - {warning}", stacklevel=2)
    logger.info(RULE, stacklevel=2)


# Default logger
logger = setup_logging()
