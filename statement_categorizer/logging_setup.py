"""
Logging setup

Library modules only call get_logger(); output stays silent until a CLI
entry point calls configure_logging() once at startup.
"""
import logging
import os
from typing import Optional, Union

PACKAGE_LOGGER = "statement_categorizer"
LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"

_configured = False


def _parse_level(level: Union[int, str, None]) -> int:
    """'debug' / '10' / logging.DEBUG -> 10; None reads CATEGORIZER_LOG_LEVEL"""
    if level is None:
        level = os.getenv("CATEGORIZER_LOG_LEVEL")
        if not level:
            return logging.INFO
    if isinstance(level, int):
        return level

    name = level.strip().upper()
    if name.isdigit():
        return int(name)
    value = logging.getLevelName(name)
    return value if isinstance(value, int) else logging.INFO


def configure_logging(level: Union[int, str, None] = None):
    """
    Send package logs to stderr

    Args:
        level: Level name or number (default: CATEGORIZER_LOG_LEVEL, then INFO)
    """
    global _configured
    if _configured:
        return

    logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in list(logger.handlers):
        if isinstance(handler, logging.NullHandler):
            logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
    logger.setLevel(_parse_level(level))
    logger.propagate = False
    _configured = True


def get_logger(name: str) -> logging.Logger:
    logger = logging.getLogger(PACKAGE_LOGGER)
    if not _configured and not logger.handlers:
        logger.addHandler(logging.NullHandler())
    return logging.getLogger(name)
