"""Logging setup for the enact package."""

import logging

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = "enact"


def configure_logging(level: str | int = "info", console: Console | None = None) -> logging.Logger:
    """
    Attach a Rich handler to the ``enact`` logger.

    Calling this again replaces the previous handler rather than stacking a
    second one. Log records go to stderr so command output on stdout stays
    machine-readable.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        if isinstance(handler, RichHandler):
            logger.removeHandler(handler)

    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=False,
    )
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    logger.addHandler(handler)
    logger.setLevel(level)
    return logger
