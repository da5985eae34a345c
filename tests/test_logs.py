import io
import logging

from rich.console import Console
from rich.logging import RichHandler

from aiask.cli.logs import LOGGER_NAME, configure_logging


def test_quiet_by_default():
    logger = configure_logging()
    assert logger.name == LOGGER_NAME
    assert logger.level == logging.WARNING
    assert [type(h) for h in logger.handlers] == [RichHandler]


def test_verbose_shows_debug_and_replaces_handler():
    buf = io.StringIO()
    configure_logging()
    logger = configure_logging(verbose=True, console=Console(file=buf, width=120))
    assert len(logger.handlers) == 1

    logging.getLogger("aiask.core.runtime").debug("executing %s", ["/bin/sh", "-c", "ls"])
    assert "executing" in buf.getvalue()
    configure_logging()


def test_http_client_logs_stay_quiet():
    configure_logging(verbose=True, console=Console(file=io.StringIO()))
    assert logging.getLogger("httpx").level == logging.WARNING
    configure_logging()
