"""Logging configuration helpers."""

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s: %(name)s: %(message)s"

# Client libraries under the storage backend that log every request at INFO.
QUIET_LOGGERS = ("httpx", "httpcore", "hpack", "postgrest")


def resolve_level(level: int | str) -> int:
    """Return a numeric level for ``level`` given as a number or a name."""
    if isinstance(level, int):
        return level
    levels = logging.getLevelNamesMapping()
    name = level.strip().upper()
    if name not in levels:
        raise ValueError(f"Unknown log level: {level!r}")
    return levels[name]


def configure_logging(level: int | str = logging.INFO) -> None:
    """Route ``code_cup`` logs to one stream handler at ``level``.

    Calling again only updates the level. Chatty HTTP client loggers are held
    at WARNING unless ``level`` is DEBUG.
    """
    numeric = resolve_level(level)
    logger = logging.getLogger("code_cup")
    logger.setLevel(numeric)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric, logging.WARNING))
    if logger.handlers:
        return
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
    logger.propagate = False
