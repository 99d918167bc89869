import asyncio
import threading
import unittest
from unittest.mock import AsyncMock, MagicMock, patch

from crossword_sync.core.exceptions import PuzzleLoadError
from crossword_sync.core.models import CellEdit, Coordinate
from crossword_sync.engine.grid import GridModel
from crossword_sync.engine.navigation import NavigationController
from crossword_sync.io.channel import ChannelConfig, SyncChannel
from crossword_sync.io.protocol import GREETING, endpoints


def cells(*coords):
    return [{"x": x, "y": y, "c": " "} for x, y in coords]


def puzzle():
    return {"across": {"1A": {"hint": "Feline", "cells": cells((0, 0), (1, 0), (2, 0))}}, "down": {}}


URL = "http://example.test/puzzle/3"


class FakeConnection:
    def __init__(self, frames=()) -> None:
        self.frames = list(frames)
        self.sent = []
        self.closed = False

    async def send(self, frame) -> None:
        self.sent.append(frame)

    async def close(self) -> None:
        self.closed = True

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for frame in self.frames:
            yield frame


class HeldConnection(FakeConnection):
    """Stays open until closed, like an idle live connection."""

    def __init__(self) -> None:
        super().__init__()
        self._closed = asyncio.Event()

    async def close(self) -> None:
        self.closed = True
        self._closed.set()

    async def _iterate(self):
        await self._closed.wait()
        for frame in self.frames:
            yield frame


class EndpointTests(unittest.TestCase):
    def test_endpoints_follow_page_scheme(self) -> None:
        plain = endpoints("http://host:8080/puzzle/3/")
        self.assertEqual(plain.data_url, "http://host:8080/puzzle/3/data")
        self.assertEqual(plain.live_url, "ws://host:8080/puzzle/3/live")
        secure = endpoints("https://host/puzzle/3")
        self.assertEqual(secure.live_url, "wss://host/puzzle/3/live")

    def test_endpoints_reject_unsupported_urls(self) -> None:
        for url in ("ftp://host/puzzle/1", "puzzle/1"):
            with self.subTest(url=url):
                with self.assertRaises(ValueError):
                    endpoints(url)

    def test_backoff_is_capped(self) -> None:
        config = ChannelConfig(reconnect_initial_delay=1.0, reconnect_max_delay=5.0, reconnect_backoff=3.0)
        self.assertEqual(config.next_delay(1.0), 3.0)
        self.assertEqual(config.next_delay(3.0), 5.0)


class InboundFrameTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self) -> None:
        self.grid = GridModel()
        self.grid.load(puzzle())
        self.listener = MagicMock()
        self.channel = SyncChannel(URL, self.grid, on_remote_edit=self.listener)

    async def test_remote_edit_bypasses_local_selection(self) -> None:
        controller = NavigationController(self.grid)
        controller.click(Coordinate(0, 0))

        edit = self.channel.handle_frame('{"x": 1, "y": 0, "c": "X"}')

        self.assertEqual(edit, CellEdit(1, 0, "X"))
        self.assertEqual(self.grid.cell(1, 0).character, "X")
        self.assertEqual(controller.active_cell.coordinate, Coordinate(0, 0))
        self.assertEqual(controller.active_clue.cursor, 0)
        self.listener.assert_called_once_with(edit)

    async def test_bad_frames_are_logged_and_dropped(self) -> None:
        for frame in ("not json", '{"x": 9, "y": 9, "c": "A"}', '{"type": "hello"}', b"\xff"):
            with self.subTest(frame=frame):
                with self.assertLogs("crossword_sync.io.channel", level="WARNING"):
                    self.assertIsNone(self.channel.handle_frame(frame))
        self.listener.assert_not_called()

    async def test_greeting_is_ignored(self) -> None:
        self.assertIsNone(self.channel.handle_frame(GREETING))

    async def test_edits_are_dropped_until_ready(self) -> None:
        with self.assertLogs("crossword_sync.io.channel", level="WARNING"):
            self.assertFalse(self.channel.send_edit(CellEdit(0, 0, "a")))


class ConnectionLifecycleTests(unittest.IsolatedAsyncioTestCase):
    async def test_connect_greets_then_loads_before_ready(self) -> None:
        connection = FakeConnection()
        client = MagicMock()
        client.fetch.return_value = puzzle()
        loader = MagicMock()
        channel = SyncChannel(URL, GridModel(), loader=loader, client=client)

        with patch("crossword_sync.io.channel.connect", AsyncMock(return_value=connection)) as fake:
            await channel.connect()

        self.assertEqual(fake.call_args.args[0], "ws://example.test/puzzle/3/live")
        self.assertEqual(connection.sent, [GREETING])
        loader.assert_called_once_with(puzzle())
        self.assertTrue(channel.ready)
        self.assertTrue(channel.send_edit(CellEdit(0, 0, "a")))

    async def test_first_load_failure_is_fatal(self) -> None:
        connection = FakeConnection()
        client = MagicMock()
        client.fetch.side_effect = PuzzleLoadError("Failed to get crossword data")
        grid = GridModel()
        channel = SyncChannel(URL, grid, client=client)

        with patch("crossword_sync.io.channel.connect", AsyncMock(return_value=connection)):
            with self.assertRaises(PuzzleLoadError):
                await channel.run_forever()

        self.assertTrue(connection.closed)
        self.assertFalse(channel.ready)
        self.assertEqual(grid.cells, {})

    async def test_drops_are_followed_by_reconnect_and_full_reload(self) -> None:
        grid = GridModel()
        client = MagicMock()
        client.fetch.side_effect = lambda: puzzle()
        channel = SyncChannel(
            URL,
            grid,
            config=ChannelConfig(reconnect_initial_delay=0.01),
            client=client,
        )
        attempts = []

        async def fake_connect(*args, **kwargs):
            attempts.append(args[0])
            if len(attempts) == 1:
                raise OSError("connection refused")
            if len(attempts) <= 3:
                return FakeConnection(['{"x": 2, "y": 0, "c": "T"}'])
            await channel.close()
            raise OSError("closed")

        with patch("crossword_sync.io.channel.connect", fake_connect):
            await channel.run_forever()

        self.assertEqual(len(attempts), 4)
        self.assertEqual(client.fetch.call_count, 2)
        self.assertEqual(grid.cell(2, 0).character, "T")
        self.assertFalse(channel.ready)

    async def test_unreachable_server_fails_first_load(self) -> None:
        channel = SyncChannel(
            URL,
            GridModel(),
            config=ChannelConfig(reconnect_initial_delay=0.01, reconnect_max_delay=0.02, initial_attempts=3),
            client=MagicMock(),
        )
        fake = AsyncMock(side_effect=OSError("connection refused"))

        with patch("crossword_sync.io.channel.connect", fake):
            with self.assertRaises(PuzzleLoadError):
                await asyncio.wait_for(channel.run_forever(), 5)

        self.assertEqual(fake.await_count, 3)
        self.assertFalse(channel.ready)

    async def test_close_during_slow_fetch_stops_the_channel(self) -> None:
        connection = HeldConnection()
        gate = threading.Event()
        client = MagicMock()

        def slow_fetch():
            gate.wait(5)
            return puzzle()

        client.fetch.side_effect = slow_fetch
        channel = SyncChannel(URL, GridModel(), client=client)

        with patch("crossword_sync.io.channel.connect", AsyncMock(return_value=connection)):
            task = asyncio.create_task(channel.run_forever())
            while not client.fetch.called:
                await asyncio.sleep(0.01)
            await channel.close()
            gate.set()
            await asyncio.wait_for(task, 2)

        self.assertTrue(connection.closed)
        self.assertFalse(channel.ready)
        self.assertFalse(channel.send_edit(CellEdit(0, 0, "a")))


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
