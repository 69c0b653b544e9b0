"""Minimal logging utilities for mdview.

Provides a get_logger function that wraps the standard library logging.

Example:
    >>> from mdview.utils.logger import get_logger
    >>> logger = get_logger(__name__)
    >>> logger.debug("Rendering document")
"""

from __future__ import annotations

import logging


def get_logger(name: str) -> logging.Logger:
    """Get a logger for the given name.

    Returns a standard library logger with the "mdview." prefix.

    Args:
        name: Logger name (typically __name__)

    Returns:
        logging.Logger instance

    Example:
        >>> logger = get_logger("mymodule")
        >>> logger.name
        'mdview.mymodule'
    """
    if not (name == "mdview" or name.startswith("mdview.")):
        name = f"mdview.{name}"
    return logging.getLogger(name)
