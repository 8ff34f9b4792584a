"""Logger acquisition for the ``account_annotation`` package.

The package never configures output: handlers, levels and formats belong to the
host application. ``get_logger`` only makes sure the package root logger
(``"account_annotation"``) carries a ``NullHandler`` so that a host without any
logging setup does not get "No handler" warnings. Records still propagate to
whatever the host attaches to the root logger.
"""

from __future__ import annotations

import logging

_PKG_LOGGER_NAME = "account_annotation"


def get_logger(name: str) -> logging.Logger:
    """Return ``logging.getLogger(name)`` for a module of this package."""

    pkg_logger = logging.getLogger(_PKG_LOGGER_NAME)
    if not any(isinstance(h, logging.NullHandler) for h in pkg_logger.handlers):
        pkg_logger.addHandler(logging.NullHandler())
    return logging.getLogger(name)
