"""Grid model: the cell arena and the across/down clue collections."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from ..core.constants import BLANK, CellState, Direction, LEADING_DIGITS
from ..core.exceptions import ProtocolError, PuzzleLoadError
from ..core.models import Cell, Clue, Coordinate
from ..utils.logger import get_logger
from ..utils.render import Hint, NullRenderer, Renderer


LOGGER = get_logger(__name__)


@dataclass
class _ParsedClue:
    name: str
    hint: str
    direction: Direction
    cells: List[Tuple[Coordinate, str]]


class GridModel:
    """Owns every cell (keyed by coordinate) and every clue (keyed by name).

    The model is rebuilt wholesale by :meth:`load`; nothing from a previous
    puzzle survives a reload.
    """

    def __init__(self, renderer: Optional[Renderer] = None) -> None:
        self.renderer: Renderer = renderer or NullRenderer()
        self.cells: Dict[Coordinate, Cell] = {}
        self.clues: Dict[str, Clue] = {}
        self.across: List[Clue] = []
        self.down: List[Clue] = []
        self.scale: float = 100.0

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------
    def load(self, puzzle: Mapping[str, Any]) -> None:
        """Replace all cells and clues with those described by ``puzzle``.

        The whole definition is validated before any state is touched, so a
        malformed puzzle leaves the previous grid (or the empty one) in place.
        """
        parsed = self._parse_puzzle(puzzle)

        arena: Dict[Coordinate, Cell] = {}
        for entry in parsed:
            for coordinate, character in entry.cells:
                if coordinate not in arena:
                    arena[coordinate] = Cell(coordinate=coordinate, character=character)
                arena[coordinate].add_clue(entry.name)

        clues = {
            entry.name: Clue(
                name=entry.name,
                hint=entry.hint,
                direction=entry.direction,
                coordinates=tuple(coordinate for coordinate, _ in entry.cells),
                arena=arena,
            )
            for entry in parsed
        }
        max_coordinate = max(
            (max(c.x, c.y) for c in arena),
            default=0,
        )

        self.cells = arena
        self.clues = clues
        self.across = self._sorted(Direction.ACROSS)
        self.down = self._sorted(Direction.DOWN)
        self.scale = 100 / (max_coordinate + 1)
        self._render()
        LOGGER.info(
            "Loaded puzzle: %s cells, %s across, %s down",
            len(self.cells),
            len(self.across),
            len(self.down),
        )

    def _parse_puzzle(self, puzzle: Mapping[str, Any]) -> List[_ParsedClue]:
        if not isinstance(puzzle, Mapping):
            raise PuzzleLoadError(f"Puzzle data must be an object, got {type(puzzle).__name__}")
        parsed: List[_ParsedClue] = []
        seen: Dict[str, Direction] = {}
        for direction in Direction:
            entries = puzzle.get(direction.value, {})
            if not isinstance(entries, Mapping):
                raise PuzzleLoadError(f"'{direction.value}' must map clue names to clues")
            for name, entry in entries.items():
                if name in seen:
                    raise PuzzleLoadError(
                        f"Clue {name} appears in both {seen[name].value} and {direction.value}"
                    )
                seen[name] = direction
                parsed.append(self._parse_clue(str(name), direction, entry))
        return parsed

    def _parse_clue(self, name: str, direction: Direction, entry: Any) -> _ParsedClue:
        if not isinstance(entry, Mapping):
            raise PuzzleLoadError(f"Clue {name} must be an object")
        hint = entry.get("hint", "")
        raw_cells = entry.get("cells")
        if not isinstance(hint, str):
            raise PuzzleLoadError(f"Clue {name} has a non-text hint")
        if not isinstance(raw_cells, list) or not raw_cells:
            raise PuzzleLoadError(f"Clue {name} must list at least one cell")

        cells: List[Tuple[Coordinate, str]] = []
        for raw in raw_cells:
            coordinate, character = self._parse_cell(name, raw)
            if any(coordinate == existing for existing, _ in cells):
                raise PuzzleLoadError(f"Clue {name} visits cell {coordinate} twice")
            cells.append((coordinate, character))
        return _ParsedClue(name=name, hint=hint, direction=direction, cells=cells)

    @staticmethod
    def _parse_cell(name: str, raw: Any) -> Tuple[Coordinate, str]:
        # Cells are {"x", "y", "c"} objects; bare [x, y] pairs are accepted too.
        if isinstance(raw, Mapping):
            x, y, character = raw.get("x"), raw.get("y"), raw.get("c", BLANK)
        elif isinstance(raw, (list, tuple)) and len(raw) == 2:
            (x, y), character = raw, BLANK
        else:
            raise PuzzleLoadError(f"Clue {name} has a malformed cell: {raw!r}")
        for value in (x, y):
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise PuzzleLoadError(f"Clue {name} has an invalid coordinate: {raw!r}")
        if character is None:
            character = BLANK
        if not isinstance(character, str) or len(character) > 1:
            raise PuzzleLoadError(f"Clue {name} has an invalid character: {raw!r}")
        return Coordinate(x, y), character or BLANK

    def _render(self) -> None:
        self.renderer.reset()
        for coordinate, cell in self.cells.items():
            cell.view = self.renderer.create_cell_view(coordinate, self.scale)
            cell.view.set_text(cell.character)
        self.renderer.render_hints(*self.hints())

    # ------------------------------------------------------------------
    # Ordering and projections
    # ------------------------------------------------------------------
    @staticmethod
    def clue_sort_key(clue: Union[Clue, str]) -> Tuple[int, int, str]:
        """Sort by the leading number of the name, then by the full name.

        Names without a leading number sort after every numbered clue.
        """
        name = clue.name if isinstance(clue, Clue) else clue
        match = LEADING_DIGITS.match(name)
        if match is None:
            return (1, 0, name)
        return (0, int(match.group(1)), name)

    @classmethod
    def clue_sort_order(cls, a: Union[Clue, str], b: Union[Clue, str]) -> int:
        key_a, key_b = cls.clue_sort_key(a), cls.clue_sort_key(b)
        return (key_a > key_b) - (key_a < key_b)

    def _sorted(self, direction: Direction) -> List[Clue]:
        return sorted(
            (clue for clue in self.clues.values() if clue.direction == direction),
            key=self.clue_sort_key,
        )

    def hints(self) -> Tuple[List[Hint], List[Hint]]:
        across = [(clue.name, clue.hint) for clue in self.across]
        down = [(clue.name, clue.hint) for clue in self.down]
        return across, down

    def to_puzzle_data(self) -> Dict[str, Dict[str, Any]]:
        """Project the current grid back onto the puzzle data shape."""
        data: Dict[str, Dict[str, Any]] = {}
        for direction, clues in ((Direction.ACROSS, self.across), (Direction.DOWN, self.down)):
            data[direction.value] = {
                clue.name: {
                    "hint": clue.hint,
                    "cells": [cell.serialize().to_payload() for cell in clue.cells],
                }
                for clue in clues
            }
        return data

    # ------------------------------------------------------------------
    # Lookups and mutation
    # ------------------------------------------------------------------
    def cell(self, x: int, y: int) -> Optional[Cell]:
        return self.cells.get(Coordinate(x, y))

    def clue(self, name: str) -> Clue:
        return self.clues[name]

    def clues_at(self, coordinate: Coordinate) -> List[Clue]:
        cell = self.cells.get(coordinate)
        if cell is None:
            return []
        return [self.clues[name] for name in cell.member_clues]

    def clear_highlights(self) -> None:
        for cell in self.cells.values():
            cell.mark(CellState.NORMAL)

    def apply_remote_edit(self, x: int, y: int, character: str) -> Cell:
        cell = self.cell(x, y)
        if cell is None:
            raise ProtocolError(f"Edit references unknown cell {x},{y}")
        cell.set_character(character)
        LOGGER.debug("Applied remote edit %s,%s -> %r", x, y, character)
        return cell
