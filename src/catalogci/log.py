"""Logging setup for catalogci commands.

All modules log under the ``catalogci`` hierarchy. Output goes to stderr through
rich so that stdout stays clean for the matrix JSON consumed by the workflow.
"""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

_LOGGER_NAME = "catalogci"


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a logger under the catalogci hierarchy.

    Accepts either a short suffix (``"matrix"``) or a dotted module name that
    already starts with ``catalogci``.
    """
    if not name:
        return logging.getLogger(_LOGGER_NAME)
    if name == _LOGGER_NAME or name.startswith(f"{_LOGGER_NAME}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{_LOGGER_NAME}.{name}")


def configure_logging(*, verbose: bool = False) -> logging.Logger:
    """Attach a rich stderr handler to the catalogci logger."""
    level = logging.DEBUG if verbose else logging.INFO
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False

    # Reset handlers to avoid duplicate output when the CLI is invoked repeatedly.
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    handler = RichHandler(
        console=Console(stderr=True),
        show_time=False,
        show_path=False,
        markup=False,
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)
    return logger


__all__ = ["configure_logging", "get_logger"]
