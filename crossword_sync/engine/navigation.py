"""Keyboard and click handling for the active clue."""

from __future__ import annotations

from typing import Callable, Optional

from ..core.constants import BACKWARD_KEYS, BLANK, FORWARD_KEYS, LETTER_PATTERN, Key
from ..core.models import Cell, CellEdit, Clue, Coordinate
from .grid import GridModel
from ..utils.logger import get_logger


LOGGER = get_logger(__name__)

EditSink = Callable[[CellEdit], None]


def _discard(edit: CellEdit) -> None:
    pass


class NavigationController:
    """Turn key presses and clicks into cursor moves and outbound edits.

    Only character changes are emitted; cursor movement stays local.  Clearing
    a cell and moving the cursor are separate mutations, so an observer between
    the two sees the cleared cell still active.
    """

    def __init__(self, grid: GridModel, emit: Optional[EditSink] = None) -> None:
        self.grid = grid
        self.emit: EditSink = emit or _discard
        self.active_clue: Optional[Clue] = None

    @property
    def active_cell(self) -> Optional[Cell]:
        if self.active_clue is None:
            return None
        return self.active_clue.active_cell()

    def reset(self) -> None:
        self.active_clue = None

    def handle_key(self, key: str) -> Optional[CellEdit]:
        """Apply one key press; return the emitted edit, if any."""
        clue = self.active_clue
        if clue is None:
            LOGGER.debug("No active clue; ignoring key %r", key)
            return None

        clue.highlight()
        edit: Optional[CellEdit] = None
        if key == Key.BACKSPACE.value:
            edit = self._write(clue, BLANK)
            target = clue.step_backward()
        elif key in FORWARD_KEYS:
            target = clue.step_forward()
        elif key in BACKWARD_KEYS:
            target = clue.step_backward()
        elif LETTER_PATTERN.fullmatch(key):
            edit = self._write(clue, key)
            target = clue.step_forward()
        else:
            target = clue.active_cell().coordinate
        clue.activate(target)
        LOGGER.debug("Key %r on %s -> %s", key, clue.name, target)
        return edit

    def _write(self, clue: Clue, character: str) -> CellEdit:
        cell = clue.active_cell()
        cell.set_character(character)
        edit = cell.serialize()
        self.emit(edit)
        return edit

    def click(self, coordinate: Coordinate) -> Optional[Clue]:
        """Select the next clue through ``coordinate`` and put the cursor there."""
        cell = self.grid.cells.get(coordinate)
        if cell is None:
            LOGGER.warning("Click on %s, which is not a grid cell", coordinate)
            return None
        name = cell.next_clue()
        if name is None:
            return None

        self.grid.clear_highlights()
        clue = self.grid.clue(name)
        clue.activate(coordinate)
        self.active_clue = clue
        LOGGER.debug("Activated clue %s at %s", name, coordinate)
        return clue
