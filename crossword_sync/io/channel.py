"""Reconnecting live channel that keeps a grid in step with the server.

Every successful (re)connection greets the server, fetches the full puzzle
and rebuilds the grid from scratch before outbound edits are accepted.  Edits
produced while the channel is down are dropped, not replayed.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Union

from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import ConnectionClosed, WebSocketException

from ..core.exceptions import ProtocolError, PuzzleLoadError
from ..core.models import CellEdit
from ..engine.grid import GridModel
from .protocol import GREETING, decode_edit, encode_edit, endpoints, is_greeting
from .puzzle_client import PuzzleClient
from ..utils.logger import get_logger


LOGGER = get_logger(__name__)

PuzzleLoader = Callable[[Dict[str, Any]], None]
EditListener = Callable[[CellEdit], None]


@dataclass
class ChannelConfig:
    """Timing knobs for the live channel."""

    reconnect_initial_delay: float = 0.5
    reconnect_max_delay: float = 30.0
    reconnect_backoff: float = 2.0
    open_timeout: float = 10.0
    fetch_timeout: float = 10.0
    ping_interval: Optional[float] = 20.0
    # Connection attempts allowed before the first load gives up.
    initial_attempts: int = 3

    def next_delay(self, delay: float) -> float:
        return min(delay * self.reconnect_backoff, self.reconnect_max_delay)


class SyncChannel:
    """One duplex connection per puzzle, rebuilt whenever it drops."""

    def __init__(
        self,
        base_url: str,
        grid: GridModel,
        config: Optional[ChannelConfig] = None,
        loader: Optional[PuzzleLoader] = None,
        client: Optional[PuzzleClient] = None,
        on_remote_edit: Optional[EditListener] = None,
    ) -> None:
        self.endpoints = endpoints(base_url)
        self.grid = grid
        self.config = config or ChannelConfig()
        self.client = client or PuzzleClient(
            self.endpoints.data_url, timeout_seconds=self.config.fetch_timeout
        )
        self.on_remote_edit = on_remote_edit
        self._loader: PuzzleLoader = loader or grid.load
        self._outbound: "asyncio.Queue[str]" = asyncio.Queue()
        self._ready = asyncio.Event()
        self._closing = asyncio.Event()
        self._connection: Optional[ClientConnection] = None
        self._loaded_once = False

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------
    @property
    def ready(self) -> bool:
        return self._ready.is_set()

    async def wait_ready(self) -> None:
        await self._ready.wait()

    async def connect(self) -> Optional[ClientConnection]:
        """Open the connection, greet, and load the puzzle before going ready.

        Returns ``None`` when :meth:`close` was called while connecting; the
        half-open connection is closed and the channel never becomes ready.
        """
        LOGGER.info("Connecting live channel to %s", self.endpoints.live_url)
        connection = await connect(
            self.endpoints.live_url,
            open_timeout=self.config.open_timeout,
            ping_interval=self.config.ping_interval,
        )
        try:
            await connection.send(GREETING)
            puzzle = await asyncio.to_thread(self.client.fetch)
            self._loader(puzzle)
        except BaseException:
            await connection.close()
            raise
        if self._closing.is_set():
            LOGGER.info("Live channel closed while connecting to %s", self.endpoints.live_url)
            await connection.close()
            return None
        self._connection = connection
        self._loaded_once = True
        self._ready.set()
        LOGGER.info("Live channel ready on %s", self.endpoints.live_url)
        return connection

    async def run_forever(self) -> None:
        """Keep the channel connected until :meth:`close` is called.

        A load failure before the first successful load is fatal and
        propagates, and so is failing to connect ``initial_attempts`` times
        in a row before that load.  Later failures are retried with
        exponential backoff.
        """
        delay = self.config.reconnect_initial_delay
        failures = 0
        while not self._closing.is_set():
            try:
                connection = await self.connect()
            except PuzzleLoadError as exc:
                if not self._loaded_once:
                    LOGGER.error("Puzzle failed to load: %s", exc)
                    raise
                LOGGER.warning("Reloading puzzle after reconnect failed: %s", exc)
            except (OSError, asyncio.TimeoutError, WebSocketException) as exc:
                failures += 1
                if not self._loaded_once and failures >= self.config.initial_attempts:
                    LOGGER.error("Puzzle failed to load: cannot reach %s: %s", self.endpoints.live_url, exc)
                    raise PuzzleLoadError(
                        f"Could not reach {self.endpoints.live_url} after {failures} attempts: {exc}"
                    ) from exc
                LOGGER.warning("Live channel connection failed: %s", exc)
            else:
                if connection is None or self._closing.is_set():
                    break
                delay = self.config.reconnect_initial_delay
                failures = 0
                await self._pump(connection)
                if not self._closing.is_set():
                    LOGGER.warning("Live channel dropped; reconnecting")

            if self._closing.is_set():
                break
            LOGGER.info("Reconnecting in %.1fs", delay)
            await self._sleep(delay)
            delay = self.config.next_delay(delay)

    def send_edit(self, edit: CellEdit) -> bool:
        """Queue one edit for transmission; drop it if the channel is not ready."""
        if not self.ready:
            LOGGER.warning("Live channel not ready; dropping edit %s", edit.to_payload())
            return False
        self._outbound.put_nowait(encode_edit(edit))
        return True

    async def flush(self) -> None:
        """Wait until every queued edit has been written or discarded."""
        await self._outbound.join()

    async def close(self) -> None:
        self._closing.set()
        self._ready.clear()
        if self._connection is not None:
            await self._connection.close()

    def handle_frame(self, frame: Union[str, bytes]) -> Optional[CellEdit]:
        """Apply one inbound frame to the grid, bypassing local selection."""
        if is_greeting(frame):
            return None
        try:
            edit = decode_edit(frame)
            self.grid.apply_remote_edit(edit.x, edit.y, edit.character)
        except ProtocolError as exc:
            LOGGER.warning("Dropping live frame: %s", exc)
            return None
        if self.on_remote_edit is not None:
            self.on_remote_edit(edit)
        return edit

    # ------------------------------------------------------------------
    # Connection internals
    # ------------------------------------------------------------------
    async def _pump(self, connection: ClientConnection) -> None:
        writer = asyncio.create_task(self._write_outbound(connection))
        try:
            async for frame in connection:
                LOGGER.debug("Inbound frame %r", frame)
                self.handle_frame(frame)
        except ConnectionClosed as exc:
            LOGGER.warning("Live channel closed: %s", exc)
        finally:
            self._ready.clear()
            self._connection = None
            writer.cancel()
            await asyncio.gather(writer, return_exceptions=True)
            self._discard_outbound()

    async def _write_outbound(self, connection: ClientConnection) -> None:
        while True:
            frame = await self._outbound.get()
            try:
                await connection.send(frame)
                LOGGER.debug("Outbound frame %s", frame)
            finally:
                self._outbound.task_done()

    def _discard_outbound(self) -> None:
        dropped = 0
        while not self._outbound.empty():
            self._outbound.get_nowait()
            self._outbound.task_done()
            dropped += 1
        if dropped:
            LOGGER.warning("Discarded %s unsent edits after the channel dropped", dropped)

    async def _sleep(self, delay: float) -> None:
        try:
            await asyncio.wait_for(self._closing.wait(), timeout=delay)
        except asyncio.TimeoutError:
            pass
