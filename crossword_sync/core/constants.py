"""Shared constants and enumerations for the live crossword grid."""

from __future__ import annotations

import re
from enum import Enum


class Direction(str, Enum):
    """Clue directions carried by the puzzle data."""

    ACROSS = "across"
    DOWN = "down"


class CellState(str, Enum):
    """Visual states a rendered cell can be in."""

    NORMAL = "NORMAL"
    HIGHLIGHTED = "HIGHLIGHTED"
    ACTIVE = "ACTIVE"


class Key(str, Enum):
    """Named keys understood by the navigation controller."""

    BACKSPACE = "Backspace"
    ARROW_RIGHT = "ArrowRight"
    ARROW_DOWN = "ArrowDown"
    ARROW_LEFT = "ArrowLeft"
    ARROW_UP = "ArrowUp"


FORWARD_KEYS = frozenset({Key.ARROW_RIGHT.value, Key.ARROW_DOWN.value})
BACKWARD_KEYS = frozenset({Key.ARROW_LEFT.value, Key.ARROW_UP.value})

LETTER_PATTERN = re.compile(r"[a-zA-Z]")
LEADING_DIGITS = re.compile(r"^\s*(\d+)")

BLANK = " "

DATA_SUFFIX = "/data"
LIVE_SUFFIX = "/live"
