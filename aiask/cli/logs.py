from __future__ import annotations

import logging
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = "aiask"

# third-party loggers that stay at WARNING even with --verbose
NOISY_LOGGERS = ("httpx", "httpcore", "asyncio")


def configure_logging(verbose: bool = False, console: Optional[Console] = None) -> logging.Logger:
    """Send aiask's log records to stderr through rich.

    DEBUG when verbose, WARNING otherwise. Calling it again replaces the handler.
    """
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        show_time=verbose,
        markup=False,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    return logger
