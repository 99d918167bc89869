"""Rendering collaborators for the live grid.

The core only talks to a :class:`Renderer`: it asks for one :class:`CellView`
per cell and hands over the sorted hint lists.  ``TextRenderer`` projects the
same calls onto a terminal-friendly ASCII grid.
"""

from __future__ import annotations

import sys
from typing import Dict, List, Optional, Protocol, Sequence, Tuple

from ..core.constants import BLANK, CellState
from ..core.models import Coordinate

Hint = Tuple[str, str]


class CellView(Protocol):
    def set_text(self, character: str) -> None:
        ...

    def set_state(self, state: CellState) -> None:
        ...


class Renderer(Protocol):
    def reset(self) -> None:
        ...

    def create_cell_view(self, coordinate: Coordinate, scale: float) -> CellView:
        ...

    def render_hints(self, across: Sequence[Hint], down: Sequence[Hint]) -> None:
        ...


class _NullCellView:
    def set_text(self, character: str) -> None:
        pass

    def set_state(self, state: CellState) -> None:
        pass


class NullRenderer:
    """Renderer that draws nothing; used when the grid runs headless."""

    def reset(self) -> None:
        pass

    def create_cell_view(self, coordinate: Coordinate, scale: float) -> CellView:
        return _NullCellView()

    def render_hints(self, across: Sequence[Hint], down: Sequence[Hint]) -> None:
        pass


class TextCellView:
    """Cell placed at ``(x * scale, y * scale)`` percent of the grid area."""

    def __init__(self, coordinate: Coordinate, scale: float) -> None:
        self.coordinate = coordinate
        self.left = coordinate.x * scale
        self.top = coordinate.y * scale
        self.size = scale
        self.text = BLANK
        self.state = CellState.NORMAL

    def set_text(self, character: str) -> None:
        self.text = character

    def set_state(self, state: CellState) -> None:
        self.state = state

    def symbol(self) -> str:
        letter = self.text.strip() or "."
        if self.state == CellState.ACTIVE:
            return f"[{letter}]"
        if self.state == CellState.HIGHLIGHTED:
            return f"({letter})"
        return f" {letter} "


class TextRenderer:
    """Keep an ASCII projection of the grid and hint lists."""

    BLOCKED = " # "

    def __init__(self) -> None:
        self.views: Dict[Coordinate, TextCellView] = {}
        self.across: List[Hint] = []
        self.down: List[Hint] = []

    def reset(self) -> None:
        self.views.clear()
        self.across = []
        self.down = []

    def create_cell_view(self, coordinate: Coordinate, scale: float) -> TextCellView:
        view = TextCellView(coordinate, scale)
        self.views[coordinate] = view
        return view

    def render_hints(self, across: Sequence[Hint], down: Sequence[Hint]) -> None:
        self.across = list(across)
        self.down = list(down)

    def format_grid(self) -> str:
        if not self.views:
            return "(empty grid)"
        width = max(c.x for c in self.views) + 1
        height = max(c.y for c in self.views) + 1
        lines = ["    " + "".join(f"{x:^3}" for x in range(width))]
        lines.append("    " + "-" * (3 * width))
        for y in range(height):
            row = "".join(
                self.views[Coordinate(x, y)].symbol()
                if Coordinate(x, y) in self.views
                else self.BLOCKED
                for x in range(width)
            )
            lines.append(f"{y:>2} |{row}")
        return "\n".join(lines)

    def format_hints(self) -> str:
        lines: List[str] = []
        for title, hints in (("Across", self.across), ("Down", self.down)):
            lines.append(f"--- {title} ---")
            lines.extend(f"  {name:>4}  {hint}" for name, hint in hints)
        return "\n".join(lines)


def print_grid(renderer: TextRenderer, *, label: Optional[str] = None, stream=None) -> None:
    """Print the grid followed by both hint lists."""

    stream = stream or sys.stdout
    if label:
        print(label, file=stream)
    print(renderer.format_grid(), file=stream)
    print(file=stream)
    print(renderer.format_hints(), file=stream)
