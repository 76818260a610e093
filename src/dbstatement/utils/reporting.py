"""Error-observation hook for failures that cleanup paths must not raise."""

from __future__ import annotations

import logging
from typing import Callable, Optional

from rich.console import Console
from rich.logging import RichHandler

PACKAGE_LOGGER = "dbstatement"

ErrorReporter = Callable[[str, BaseException], None]

logger = logging.getLogger(PACKAGE_LOGGER)


def log_error(message: str, exc: BaseException) -> None:
    """Default reporter: log ``message`` at ERROR with the exception traceback."""

    logger.error(message, exc_info=(type(exc), exc, exc.__traceback__))


def configure_logging(level: str = "INFO", console: Optional[Console] = None) -> None:
    """Attach a single Rich handler to the package logger."""

    package_logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in list(package_logger.handlers):
        if isinstance(handler, RichHandler):
            package_logger.removeHandler(handler)

    handler = RichHandler(console=console, rich_tracebacks=True, show_path=False)
    handler.setFormatter(logging.Formatter("%(message)s"))
    package_logger.addHandler(handler)
    package_logger.setLevel(level.upper())


__all__ = ["ErrorReporter", "configure_logging", "log_error"]
