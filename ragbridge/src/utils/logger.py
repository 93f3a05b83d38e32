"""
ragbridge - Logging
====================
Logger factory shared by every ragbridge module so that classifier,
retrieval and prompt-building output interleaves in one readable stream.

Verbosity:
  • ``settings.LOG_LEVEL`` wins when set.
  • Otherwise ``settings.ENV`` decides: ``"dev"`` → DEBUG,
    ``"prod"`` → WARNING.

Messages are tagged by stage (``[CLASSIFY]``, ``[RETRIEVE]``,
``[BACKEND]``, ``[RAG]``) so a single request can be followed with grep.

Usage:
    from ragbridge.src.utils.logger import get_logger
    logger = get_logger(__name__)
    logger.info("[RAG] Prompt enhanced")
"""

import logging
import sys

from ragbridge.config.settings import settings

_LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_ENV_LEVEL_MAP = {
    "dev": logging.DEBUG,
    "prod": logging.WARNING,
}


def _default_level() -> int:
    if settings.LOG_LEVEL:
        return logging.getLevelName(settings.LOG_LEVEL)
    return _ENV_LEVEL_MAP.get(settings.ENV, logging.INFO)


def get_logger(name: str, level: int | None = None) -> logging.Logger:
    """
    Return a named logger writing to stdout with the ragbridge format.

    Args:
        name:  Typically ``__name__`` of the calling module.
        level: Explicit level override; defaults to the settings-derived level.

    Returns:
        The configured ``logging.Logger``.  Calling this twice for the same
        name returns the same logger without stacking handlers.
    """
    resolved_level = level if level is not None else _default_level()
    logger = logging.getLogger(name)

    if not logger.handlers:
        logger.setLevel(resolved_level)

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(resolved_level)
        console_handler.setFormatter(logging.Formatter(fmt=_LOG_FORMAT, datefmt=_DATE_FORMAT))
        logger.addHandler(console_handler)

        # Keep records out of the root logger (no duplicate lines)
        logger.propagate = False

    return logger
