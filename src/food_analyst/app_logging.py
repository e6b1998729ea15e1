"""Logging configuration helpers."""

import logging

LOG_FORMAT = "%(levelname)s: %(name)s: %(message)s"


def resolve_level(name: str) -> int:
    """Map a level name such as "debug" to its number; unknown names mean INFO."""
    return logging.getLevelNamesMapping().get(name.strip().upper(), logging.INFO)


def configure_logging(level: str = "INFO") -> None:
    """Attach one stream handler to the package logger at the given level.

    Repeated calls only adjust the level, so app factories built in tests do
    not stack handlers.
    """
    logger = logging.getLogger("food_analyst")
    logger.setLevel(resolve_level(level))
    if logger.handlers:
        return
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
    logger.propagate = False
