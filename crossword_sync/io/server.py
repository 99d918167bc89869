"""Live crossword server: puzzle data over HTTP, edits over WebSocket.

Each puzzle id gets one :class:`PuzzleRoom` holding the current answers.
Valid edits are applied to the room and broadcast to every client in it,
the sender included, so all viewers converge on the server's ordering.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from http import HTTPStatus
from pathlib import Path
from typing import Any, Dict, Optional, Set, Union
from urllib.parse import urlsplit

from websockets.asyncio.server import Server, ServerConnection, broadcast, serve
from websockets.exceptions import ConnectionClosed
from websockets.http11 import Request, Response

from ..core.exceptions import ProtocolError, PuzzleLoadError, PuzzleNotFoundError
from ..core.models import CellEdit
from ..engine.grid import GridModel
from .admin import start_admin
from .protocol import decode_edit, encode_edit, is_greeting
from .store import PuzzleStore
from ..utils.logger import get_logger


LOGGER = get_logger(__name__)

LIVE_ROUTE = re.compile(r"^/puzzle/(?P<num>\d+)/live$")
DATA_ROUTE = re.compile(r"^/puzzle/(?P<num>\d+)/data$")
LIST_ROUTE = re.compile(r"^/puzzle/list$")


@dataclass
class ServerConfig:
    host: str = "127.0.0.1"
    port: int = 8080
    puzzle_dir: Optional[Path] = None
    ping_interval: Optional[float] = 5.0
    demo: bool = False
    # Port of the Flask admin app (list and add puzzles); None disables it.
    admin_port: Optional[int] = None


class PuzzleRoom:
    """Current answers of one puzzle plus the clients viewing it."""

    def __init__(self, puzzle_id: int, puzzle: Dict[str, Any]) -> None:
        self.puzzle_id = puzzle_id
        self.grid = GridModel()
        self.grid.load(puzzle)
        self.clients: Set[ServerConnection] = set()

    def apply_edit(self, edit: CellEdit) -> CellEdit:
        self.grid.apply_remote_edit(edit.x, edit.y, edit.character)
        return edit

    def snapshot(self) -> Dict[str, Any]:
        return self.grid.to_puzzle_data()


class RoomPool:
    """Rooms keyed by puzzle id; a room lasts for the server's lifetime."""

    def __init__(self, store: PuzzleStore) -> None:
        self.store = store
        self.rooms: Dict[int, PuzzleRoom] = {}

    def room(self, puzzle_id: int) -> PuzzleRoom:
        room = self.rooms.get(puzzle_id)
        if room is None:
            LOGGER.info("No room for puzzle %s; creating one", puzzle_id)
            room = PuzzleRoom(puzzle_id, self.store.load(puzzle_id))
            self.rooms[puzzle_id] = room
        return room

    def snapshot(self, puzzle_id: int) -> Dict[str, Any]:
        room = self.rooms.get(puzzle_id)
        if room is not None:
            return room.snapshot()
        return self.store.load(puzzle_id)


def _json_response(connection: ServerConnection, status: HTTPStatus, payload: Any) -> Response:
    response = connection.respond(status, json.dumps(payload))
    del response.headers["Content-Type"]
    response.headers["Content-Type"] = "application/json"
    return response


class LiveServer:
    """Route HTTP requests and run the per-room WebSocket loop."""

    def __init__(self, config: Optional[ServerConfig] = None, store: Optional[PuzzleStore] = None) -> None:
        self.config = config or ServerConfig()
        self.store = store or PuzzleStore(self.config.puzzle_dir, include_demo=self.config.demo)
        self.pool = RoomPool(self.store)

    # ------------------------------------------------------------------
    # HTTP routing
    # ------------------------------------------------------------------
    def process_request(self, connection: ServerConnection, request: Request) -> Optional[Response]:
        path = urlsplit(request.path).path
        LOGGER.debug("Request for %s", path)

        match = LIVE_ROUTE.match(path)
        if match is not None:
            return self._ensure_room(connection, int(match["num"]))

        match = DATA_ROUTE.match(path)
        if match is not None:
            puzzle_id = int(match["num"])
            try:
                return _json_response(connection, HTTPStatus.OK, self.pool.snapshot(puzzle_id))
            except PuzzleNotFoundError as exc:
                LOGGER.warning("Cannot find puzzle: %s", exc)
                return connection.respond(HTTPStatus.NOT_FOUND, f"Can't find puzzle {puzzle_id}\n")
            except PuzzleLoadError as exc:
                LOGGER.error("Puzzle %s is unreadable: %s", puzzle_id, exc)
                return connection.respond(HTTPStatus.INTERNAL_SERVER_ERROR, "Puzzle is unreadable\n")

        if LIST_ROUTE.match(path):
            return _json_response(
                connection, HTTPStatus.OK, [info.to_payload() for info in self.store.list_puzzles()]
            )

        return connection.respond(HTTPStatus.NOT_FOUND, "Not found\n")

    def _ensure_room(self, connection: ServerConnection, puzzle_id: int) -> Optional[Response]:
        try:
            self.pool.room(puzzle_id)
        except PuzzleNotFoundError as exc:
            LOGGER.warning("Refusing live connection: %s", exc)
            return connection.respond(HTTPStatus.NOT_FOUND, f"Can't find puzzle {puzzle_id}\n")
        except PuzzleLoadError as exc:
            LOGGER.error("Puzzle %s is unreadable: %s", puzzle_id, exc)
            return connection.respond(HTTPStatus.INTERNAL_SERVER_ERROR, "Puzzle is unreadable\n")
        return None

    # ------------------------------------------------------------------
    # WebSocket loop
    # ------------------------------------------------------------------
    async def handler(self, connection: ServerConnection) -> None:
        match = LIVE_ROUTE.match(urlsplit(connection.request.path).path)
        if match is None:
            await connection.close(code=1008, reason="unknown route")
            return
        room = self.pool.room(int(match["num"]))
        room.clients.add(connection)
        LOGGER.info("Client joined puzzle %s (%s connected)", room.puzzle_id, len(room.clients))
        try:
            async for frame in connection:
                self.handle_frame(room, frame)
        except ConnectionClosed as exc:
            LOGGER.info("Client connection to puzzle %s closed: %s", room.puzzle_id, exc)
        finally:
            room.clients.discard(connection)
            LOGGER.info("Client left puzzle %s (%s remaining)", room.puzzle_id, len(room.clients))

    def handle_frame(self, room: PuzzleRoom, frame: Union[str, bytes]) -> Optional[CellEdit]:
        if is_greeting(frame):
            LOGGER.debug("Greeting received for puzzle %s", room.puzzle_id)
            return None
        try:
            edit = room.apply_edit(decode_edit(frame))
        except ProtocolError as exc:
            LOGGER.warning("Dropping frame for puzzle %s: %s", room.puzzle_id, exc)
            return None
        broadcast(room.clients, encode_edit(edit))
        return edit

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    async def start(self) -> Server:
        server = await serve(
            self.handler,
            self.config.host,
            self.config.port,
            process_request=self.process_request,
            ping_interval=self.config.ping_interval,
        )
        LOGGER.info("Serving puzzles from %s on %s:%s", self.store.puzzle_dir, self.config.host, self.config.port)
        return server

    async def serve_forever(self) -> None:
        if self.config.admin_port is not None:
            start_admin(self.store, self.config.host, self.config.admin_port)
        server = await self.start()
        async with server:
            await server.serve_forever()
