"""Logging utilities for oauth-relay."""

import logging
from typing import Literal

from rich.console import Console
from rich.logging import RichHandler


def get_logger(name: str) -> logging.Logger:
    """Get a logger nested under OAuthRelay namespace.

    Args:
        name: the name of the logger, which will be prefixed with 'OAuthRelay.'

    Returns:
        a configured logger instance
    """
    return logging.getLogger(f"OAuthRelay.{name}")


def configure_logging(
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] | int = "INFO",
    logger: logging.Logger | None = None,
    enable_rich_tracebacks: bool = True,
) -> None:
    """
    Configure logging for oauth-relay.

    Args:
        logger: the logger to configure
        level: the log level to use
        enable_rich_tracebacks: whether to render exceptions with rich
    """
    if logger is None:
        logger = logging.getLogger("OAuthRelay")

    handler = RichHandler(
        console=Console(stderr=True),
        rich_tracebacks=enable_rich_tracebacks,
    )
    formatter = logging.Formatter("%(message)s")
    handler.setFormatter(formatter)

    logger.setLevel(level)

    # Remove any existing handlers to avoid duplicates on reconfiguration
    for hdlr in logger.handlers[:]:
        logger.removeHandler(hdlr)

    logger.addHandler(handler)
