"""Data models for the interactive crossword grid.

Cells and clues live in an arena owned by :class:`GridModel`: a cell refers to
its clues by name and a clue refers to its cells by coordinate, resolving them
through the shared ``coordinate -> Cell`` mapping.  Neither side owns the other.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional, Tuple

from .constants import BLANK, CellState, Direction
from .exceptions import ProtocolError
from ..utils.logger import get_logger

if TYPE_CHECKING:
    from ..utils.render import CellView


LOGGER = get_logger(__name__)

EDIT_FIELDS = frozenset({"x", "y", "c"})


@dataclass(frozen=True, order=True)
class Coordinate:
    """Zero-based grid position; the unique key of a cell."""

    x: int
    y: int

    def __str__(self) -> str:
        return f"{self.x},{self.y}"


@dataclass(frozen=True)
class CellEdit:
    """A single character change, exactly as exchanged on the live channel."""

    x: int
    y: int
    character: str

    @property
    def coordinate(self) -> Coordinate:
        return Coordinate(self.x, self.y)

    def to_payload(self) -> Dict[str, Any]:
        return {"x": self.x, "y": self.y, "c": self.character}

    def to_frame(self) -> str:
        return json.dumps(self.to_payload())

    @classmethod
    def from_payload(cls, payload: Any) -> "CellEdit":
        """Validate a decoded frame and build the edit it describes."""
        if not isinstance(payload, dict) or set(payload) != EDIT_FIELDS:
            raise ProtocolError(f"Unrecognised frame shape: {payload!r}")
        x, y, character = payload["x"], payload["y"], payload["c"]
        for value in (x, y):
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise ProtocolError(f"Invalid coordinate in frame: {payload!r}")
        if not isinstance(character, str) or len(character) > 1:
            raise ProtocolError(f"Invalid character in frame: {payload!r}")
        return cls(x=x, y=y, character=character or BLANK)


@dataclass(eq=False)
class Cell:
    """One grid square, shared by every clue passing through it."""

    coordinate: Coordinate
    character: str = BLANK
    member_clues: List[str] = field(default_factory=list)
    view: Optional["CellView"] = field(default=None, repr=False)
    _cycle_index: int = field(default=0, repr=False)

    def add_clue(self, name: str) -> None:
        if name not in self.member_clues:
            self.member_clues.append(name)

    def set_character(self, character: str) -> None:
        self.character = character
        if self.view is not None:
            self.view.set_text(character)

    def mark(self, state: CellState) -> None:
        if self.view is not None:
            self.view.set_state(state)

    def serialize(self) -> CellEdit:
        return CellEdit(x=self.coordinate.x, y=self.coordinate.y, character=self.character)

    def next_clue(self) -> Optional[str]:
        """Return the next member clue name, wrapping after the last one.

        Each call advances the cell's own cycle, so repeated clicks on an
        intersection alternate between its clues in discovery order.  A cell
        with no clues yields ``None`` every time.
        """
        if not self.member_clues:
            LOGGER.warning("Cell %s is not part of any clue", self.coordinate)
            return None
        index = self._cycle_index % len(self.member_clues)
        self._cycle_index = (index + 1) % len(self.member_clues)
        return self.member_clues[index]


@dataclass(eq=False)
class Clue:
    """An across/down entry: hint text plus the ordered cells it fills."""

    name: str
    hint: str
    direction: Direction
    coordinates: Tuple[Coordinate, ...]
    arena: Mapping[Coordinate, Cell] = field(repr=False)
    cursor: Optional[int] = None

    @property
    def cells(self) -> List[Cell]:
        return [self.arena[coordinate] for coordinate in self.coordinates]

    def __len__(self) -> int:
        return len(self.coordinates)

    def index_of(self, coordinate: Coordinate) -> int:
        try:
            return self.coordinates.index(coordinate)
        except ValueError:
            LOGGER.warning(
                "Cell %s is not part of clue %s; falling back to its last cell",
                coordinate,
                self.name,
            )
            return len(self.coordinates) - 1

    def activate(self, coordinate: Coordinate) -> Cell:
        """Move the cursor onto ``coordinate`` and mark it active."""
        self.cursor = self.index_of(coordinate)
        self.highlight()
        cell = self.active_cell()
        cell.mark(CellState.ACTIVE)
        return cell

    def highlight(self) -> None:
        for cell in self.cells:
            cell.mark(CellState.HIGHLIGHTED)

    def active_cell(self) -> Cell:
        return self.arena[self.coordinates[self._require_cursor()]]

    def step_forward(self) -> Coordinate:
        """Advance the cursor one cell, staying put on the last cell."""
        self.cursor = min(self._require_cursor() + 1, len(self.coordinates) - 1)
        return self.coordinates[self.cursor]

    def step_backward(self) -> Coordinate:
        """Move the cursor back one cell, staying put on the first cell."""
        self.cursor = max(self._require_cursor() - 1, 0)
        return self.coordinates[self.cursor]

    def _require_cursor(self) -> int:
        if self.cursor is None:
            raise RuntimeError(f"Clue {self.name} has no cursor; activate it first")
        return self.cursor
