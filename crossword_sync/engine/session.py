"""Narrow entrypoint used by whatever draws the grid and collects input."""

from __future__ import annotations

import asyncio
from typing import Any, Dict, Optional

from ..core.exceptions import CrosswordSyncError
from ..core.models import CellEdit, Clue, Coordinate
from .grid import GridModel
from ..io.channel import ChannelConfig, EditListener, SyncChannel
from .navigation import NavigationController
from ..utils.logger import get_logger
from ..utils.render import Renderer


LOGGER = get_logger(__name__)


class LiveSession:
    """One viewer of one puzzle instance.

    Key presses and clicks go through the navigation controller; remote edits
    arrive through the channel and land on the grid directly.  Errors raised
    while handling an input event are logged and never escape the handler.
    """

    def __init__(
        self,
        base_url: str,
        renderer: Optional[Renderer] = None,
        config: Optional[ChannelConfig] = None,
        on_remote_edit: Optional[EditListener] = None,
    ) -> None:
        self.grid = GridModel(renderer)
        self.channel = SyncChannel(
            base_url,
            self.grid,
            config=config,
            loader=self._load,
            on_remote_edit=on_remote_edit,
        )
        self.controller = NavigationController(self.grid, emit=self.channel.send_edit)
        self._task: Optional[asyncio.Task] = None

    def _load(self, puzzle: Dict[str, Any]) -> None:
        self.grid.load(puzzle)
        self.controller.reset()

    def press(self, key: str) -> Optional[CellEdit]:
        try:
            return self.controller.handle_key(key)
        except CrosswordSyncError as exc:
            LOGGER.warning("Key %r failed: %s", key, exc)
            return None

    def click(self, x: int, y: int) -> Optional[Clue]:
        try:
            return self.controller.click(Coordinate(x, y))
        except CrosswordSyncError as exc:
            LOGGER.warning("Click on %s,%s failed: %s", x, y, exc)
            return None

    async def start(self) -> None:
        """Run the channel in the background and wait for the first load.

        A first load failure is re-raised here as :class:`PuzzleLoadError`.
        """
        self._task = asyncio.create_task(self.channel.run_forever())
        ready = asyncio.create_task(self.channel.wait_ready())
        try:
            done, _ = await asyncio.wait({self._task, ready}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            ready.cancel()
        if self._task in done:
            self._task.result()

    async def close(self) -> None:
        await self.channel.close()
        if self._task is not None:
            await asyncio.gather(self._task, return_exceptions=True)
            self._task = None

    async def wait_closed(self) -> None:
        if self._task is not None:
            await self._task
