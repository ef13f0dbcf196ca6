"""Process-wide logging setup for the CLI and HTTP server."""

from __future__ import annotations

import logging
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

from pathclass.config.models import LoggingSettings

LOG_FORMAT = "%(name)s | %(message)s"
NOISY_LOGGERS = ("httpx", "httpcore", "LiteLLM", "litellm", "redis", "dspy")

_HANDLER_NAME = "pathclass-console"


def configure_logging(settings: Optional[LoggingSettings] = None) -> logging.Logger:
    """Attach a rich stderr handler to the ``pathclass`` logger and set its level.

    Calling this more than once updates the level without stacking handlers.

    Returns:
        logging.Logger: The configured package logger.
    """
    settings = settings or LoggingSettings()
    level = logging.getLevelName(settings.level.upper())
    if not isinstance(level, int):
        level = logging.WARNING

    logger = logging.getLogger("pathclass")
    logger.setLevel(level)
    if not any(handler.get_name() == _HANDLER_NAME for handler in logger.handlers):
        handler = RichHandler(console=Console(stderr=True), show_path=False, rich_tracebacks=False)
        handler.set_name(_HANDLER_NAME)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="[%X]"))
        logger.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
    return logger


__all__ = ["LOG_FORMAT", "configure_logging"]
