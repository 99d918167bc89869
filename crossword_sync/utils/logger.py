"""Logging setup for the grid, the live channel and the servers."""

from __future__ import annotations

import logging
from typing import Optional


# Libraries that log every frame or request; kept at WARNING unless debugging.
CHATTY_LOGGERS = ("websockets", "werkzeug")


def configure_logging(level: int = logging.INFO) -> None:
    """Send every record to stderr on one line.

    Keystrokes and remote frames arrive interleaved on one event loop, so each
    record carries a timestamp and its module name to make ordering visible.
    """

    handler = logging.StreamHandler()
    formatter = logging.Formatter(
        fmt="%(asctime)s | %(levelname)-7s | %(name)s | %(message)s",
        datefmt="%H:%M:%S",
    )
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for name in CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(level if level <= logging.DEBUG else logging.WARNING)


def get_logger(name: Optional[str] = None) -> logging.Logger:
    if not logging.getLogger().handlers:
        configure_logging()
    return logging.getLogger(name or "crossword_sync")
