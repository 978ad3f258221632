"""Logging setup for the command line entry point."""

from __future__ import annotations

import logging
from typing import Any

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = "tagkeeper"


def get_rich_handler(**kwargs: Any) -> RichHandler:
    return RichHandler(
        console=Console(stderr=True, soft_wrap=True),
        show_path=False,
        **kwargs,
    )


def configure_logging(verbose: bool = False, *, rich_options: dict[str, Any] | None = None) -> logging.Logger:
    """Route ``tagkeeper.*`` loggers through a rich handler on stderr.

    Warnings and errors are shown by default; *verbose* lowers the level to DEBUG.
    """
    level = logging.DEBUG if verbose else logging.WARNING
    handler = get_rich_handler(**(rich_options or {}))
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)
    # Repeated CLI invocations in one process must not stack handlers.
    logger.handlers.clear()
    logger.addHandler(handler)
    return logger
