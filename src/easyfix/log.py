"""Logging utilities"""

import logging

from rich.console import Console
from rich.logging import RichHandler


def setup_logging(level: str = "INFO", rich: bool = True) -> None:
    """Configure the ``easyfix`` logger hierarchy.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        rich: Render through rich on stderr instead of a plain stream handler
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    if rich:
        handler: logging.Handler = RichHandler(
            console=Console(stderr=True),
            rich_tracebacks=True,
            show_time=False,
            show_path=False,
        )
        handler.setFormatter(logging.Formatter("%(message)s"))
    else:
        handler = logging.StreamHandler()
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )

    root = logging.getLogger("easyfix")
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(log_level)


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance."""
    return logging.getLogger(name)
