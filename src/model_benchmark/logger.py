"""
Logging configuration for the benchmark harness.

All modules log through children of the ``model_benchmark`` logger. The CLI
calls :func:`configure_logging` once; library users may attach their own
handlers instead.
"""

import logging
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = "model_benchmark"

logger = logging.getLogger(LOGGER_NAME)


def configure_logging(
    level: str = "INFO", console: Optional[Console] = None
) -> logging.Logger:
    """Attach a rich console handler to the package logger.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ...)
        console: Console to render to, defaults to stderr

    Returns:
        The configured package logger
    """
    # replace any handler installed by a previous call
    for handler in list(logger.handlers):
        if isinstance(handler, RichHandler):
            logger.removeHandler(handler)

    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
    )
    handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))

    logger.addHandler(handler)
    logger.setLevel(level.upper())
    logger.propagate = False
    return logger
