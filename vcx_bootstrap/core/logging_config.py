from __future__ import annotations

import logging

# HTTP client chatter during readiness polling drowns the backoff warnings.
_NOISY_LOGGERS: tuple[str, ...] = (
    "httpx",
    "httpcore",
    "httpcore.connection",
    "httpcore.http11",
)

_FORMAT = '[%(levelname)s] %(name)s: %(message)s'


def _ensure_stream_handler(logger: logging.Logger) -> None:
    handler_exists = any(isinstance(h, logging.StreamHandler) for h in logger.handlers)
    if handler_exists:
        return
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(_FORMAT))
    logger.addHandler(handler)


def resolve_level(level_name: str | None) -> int:
    lvl = logging.getLevelName((level_name or 'INFO').strip().upper())
    if isinstance(lvl, int):
        return lvl
    return logging.INFO


def configure_logging(level_name: str | None = None) -> None:
    """Configure the root logger and quiet the HTTP client loggers.

    Safe to call more than once; handlers are not duplicated.
    """

    root_logger = logging.getLogger()
    root_logger.setLevel(resolve_level(level_name))
    _ensure_stream_handler(root_logger)

    for noisy_name in _NOISY_LOGGERS:
        logger = logging.getLogger(noisy_name)
        if logger.level < logging.WARNING:
            logger.setLevel(logging.WARNING)
