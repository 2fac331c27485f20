"""Console logging for the CLI."""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

_NOISY_LOGGERS = ("httpx", "httpcore")


def configure_logging(*, verbose: bool) -> None:
    """Send ``enquery`` log records to stderr through Rich.

    Verbose mode logs at DEBUG and lets the HTTP libraries through;
    otherwise only warnings are shown.
    """
    level = logging.DEBUG if verbose else logging.WARNING

    logger = logging.getLogger("enquery")
    logger.handlers.clear()
    handler = RichHandler(
        console=Console(stderr=True),
        show_path=verbose,
        rich_tracebacks=True,
        log_time_format="[%X]",
    )
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = False

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.DEBUG if verbose else logging.WARNING)
