"""Puzzle definitions served to live rooms.

Puzzles are JSON documents named ``<id>.json`` under the puzzle directory
(``PUZZLE_PATH``, default ``./puzzles``).  A document is either a bare
``{across, down}`` definition or ``{"name": ..., "crossword": {across, down}}``
as written by :meth:`PuzzleStore.add`.  Answers typed into a room are never
written back; they only live as long as the server process.
"""

from __future__ import annotations

import json
import os
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from ..core.constants import BLANK, Direction
from ..core.exceptions import PuzzleLoadError, PuzzleNotFoundError
from ..engine.grid import GridModel
from ..utils.logger import get_logger


LOGGER = get_logger(__name__)

PUZZLE_PATH_ENV = "PUZZLE_PATH"
DEFAULT_PUZZLE_DIR = Path("./puzzles")
DEMO_PUZZLE_ID = 0
DEMO_PUZZLE_NAME = "Demo"


@dataclass(frozen=True)
class PuzzleInfo:
    id: int
    name: str

    def to_payload(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name}


def clue_cells(length: int, start: Tuple[int, int], direction: Direction) -> List[Dict[str, Any]]:
    """Lay out ``length`` blank cells from ``start`` along ``direction``."""
    x, y = start
    if direction == Direction.ACROSS:
        return [{"x": x + i, "y": y, "c": BLANK} for i in range(length)]
    return [{"x": x, "y": y + i, "c": BLANK} for i in range(length)]


def demo_puzzle() -> Dict[str, Dict[str, Any]]:
    """A small square-frame puzzle that needs no puzzle directory."""
    return {
        Direction.ACROSS.value: {
            "1a": {
                "hint": "For all the money that e'er I had",
                "cells": clue_cells(8, (0, 0), Direction.ACROSS),
            },
            "3a": {
                "hint": "I spent it in good company",
                "cells": clue_cells(8, (0, 4), Direction.ACROSS),
            },
        },
        Direction.DOWN.value: {
            "1d": {
                "hint": "And for all the harm that ever I've done",
                "cells": clue_cells(8, (0, 0), Direction.DOWN),
            },
            "2d": {
                "hint": "I've done to none but me.",
                "cells": clue_cells(8, (4, 0), Direction.DOWN),
            },
        },
    }


def default_name(puzzle_id: int) -> str:
    return f"Puzzle {puzzle_id}"


class PuzzleStore:
    """Look up and add puzzle definitions by numeric id."""

    def __init__(self, puzzle_dir: Optional[Path | str] = None, include_demo: bool = False) -> None:
        self.puzzle_dir = Path(puzzle_dir or os.environ.get(PUZZLE_PATH_ENV) or DEFAULT_PUZZLE_DIR)
        self.puzzle_dir.mkdir(parents=True, exist_ok=True)
        self.include_demo = include_demo
        # The admin routes add puzzles from worker threads.
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------
    def list_ids(self) -> List[int]:
        ids = {
            int(path.stem)
            for path in self.puzzle_dir.glob("*.json")
            if path.stem.isdigit()
        }
        if self.include_demo:
            ids.add(DEMO_PUZZLE_ID)
        return sorted(ids)

    def list_puzzles(self) -> List[PuzzleInfo]:
        """Id and name of every puzzle; unreadable files keep a default name."""
        puzzles = []
        for puzzle_id in self.list_ids():
            try:
                puzzles.append(self.info(puzzle_id))
            except PuzzleLoadError as exc:
                LOGGER.warning("Listing puzzle %s without its name: %s", puzzle_id, exc)
                puzzles.append(PuzzleInfo(puzzle_id, default_name(puzzle_id)))
        return puzzles

    def info(self, puzzle_id: int) -> PuzzleInfo:
        if self._is_demo(puzzle_id):
            return PuzzleInfo(DEMO_PUZZLE_ID, DEMO_PUZZLE_NAME)
        document = self._read(puzzle_id)
        name = document.get("name")
        if not isinstance(name, str) or not name:
            name = default_name(puzzle_id)
        return PuzzleInfo(puzzle_id, name)

    def load(self, puzzle_id: int) -> Dict[str, Any]:
        """Return the ``{across, down}`` definition of ``puzzle_id``."""
        if self._is_demo(puzzle_id):
            return demo_puzzle()
        document = self._read(puzzle_id)
        if "crossword" not in document:
            return document
        crossword = document["crossword"]
        if not isinstance(crossword, dict):
            raise PuzzleLoadError(f"Puzzle {puzzle_id} has a malformed 'crossword' entry")
        return crossword

    # ------------------------------------------------------------------
    # Adding
    # ------------------------------------------------------------------
    def add(self, name: str, crossword: Any) -> PuzzleInfo:
        """Validate ``crossword`` and write it under the next free id."""
        if not isinstance(name, str) or not name.strip():
            raise PuzzleLoadError("Puzzle name must be a non-empty string")
        # Loading into a headless grid runs the same checks every viewer will.
        GridModel().load(crossword)

        with self._lock:
            puzzle_id = max(self.list_ids(), default=DEMO_PUZZLE_ID) + 1
            path = self._path(puzzle_id)
            staging = path.with_name(f".{path.name}.tmp")
            staging.write_text(
                json.dumps({"name": name.strip(), "crossword": crossword}, indent=2),
                encoding="utf-8",
            )
            os.replace(staging, path)
        LOGGER.info("Added puzzle %s (%s) at %s", puzzle_id, name.strip(), path)
        return PuzzleInfo(puzzle_id, name.strip())

    # ------------------------------------------------------------------
    # Files
    # ------------------------------------------------------------------
    def _is_demo(self, puzzle_id: int) -> bool:
        return self.include_demo and puzzle_id == DEMO_PUZZLE_ID

    def _path(self, puzzle_id: int) -> Path:
        return self.puzzle_dir / f"{puzzle_id}.json"

    def _read(self, puzzle_id: int) -> Dict[str, Any]:
        path = self._path(puzzle_id)
        if not path.is_file():
            raise PuzzleNotFoundError(f"No puzzle with ID {puzzle_id}")
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise PuzzleLoadError(f"Puzzle {puzzle_id} could not be read: {exc}") from exc
        if not isinstance(data, dict):
            raise PuzzleLoadError(f"Puzzle {puzzle_id} is not a JSON object")
        LOGGER.debug("Read puzzle %s from %s", puzzle_id, path)
        return data
