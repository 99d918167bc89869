import asyncio
import unittest
from unittest.mock import AsyncMock, MagicMock, patch

import requests

from crossword_sync.core.exceptions import PuzzleLoadError
from crossword_sync.core.models import Coordinate
from crossword_sync.engine.session import LiveSession
from crossword_sync.io.channel import ChannelConfig
from crossword_sync.io.puzzle_client import PuzzleClient
from crossword_sync.utils.render import TextRenderer


PUZZLE = {
    "across": {"1a": {"hint": "Feline", "cells": [{"x": x, "y": 0, "c": " "} for x in range(3)]}},
    "down": {},
}


class PuzzleClientTests(unittest.TestCase):
    @patch("crossword_sync.io.puzzle_client.requests.get")
    def test_fetch_returns_decoded_puzzle(self, fake_get: MagicMock) -> None:
        fake_get.return_value.json.return_value = PUZZLE
        data = PuzzleClient("http://host/puzzle/1/data", timeout_seconds=3).fetch()
        self.assertEqual(data, PUZZLE)
        self.assertEqual(fake_get.call_args.kwargs["timeout"], 3)

    @patch("crossword_sync.io.puzzle_client.requests.get")
    def test_non_success_status_is_a_load_error(self, fake_get: MagicMock) -> None:
        fake_get.return_value.raise_for_status.side_effect = requests.HTTPError("404 Client Error")
        with self.assertRaises(PuzzleLoadError):
            PuzzleClient("http://host/puzzle/1/data").fetch()

    @patch("crossword_sync.io.puzzle_client.requests.get")
    def test_network_and_json_failures_are_load_errors(self, fake_get: MagicMock) -> None:
        fake_get.side_effect = requests.ConnectionError("refused")
        with self.assertRaises(PuzzleLoadError):
            PuzzleClient("http://host/puzzle/1/data").fetch()

        fake_get.side_effect = None
        fake_get.return_value.json.side_effect = ValueError("Expecting value")
        with self.assertRaises(PuzzleLoadError):
            PuzzleClient("http://host/puzzle/1/data").fetch()

        fake_get.return_value.json.side_effect = None
        fake_get.return_value.json.return_value = ["not", "a", "puzzle"]
        with self.assertRaises(PuzzleLoadError):
            PuzzleClient("http://host/puzzle/1/data").fetch()


class LiveSessionTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self) -> None:
        self.renderer = TextRenderer()
        self.session = LiveSession("http://host/puzzle/1", self.renderer)
        self.session._load(PUZZLE)

    async def test_typing_while_offline_keeps_local_edit(self) -> None:
        self.assertIsNotNone(self.session.click(0, 0))
        with self.assertLogs("crossword_sync.io.channel", level="WARNING"):
            edit = self.session.press("c")
        self.assertEqual(edit.to_payload(), {"x": 0, "y": 0, "c": "c"})
        self.assertEqual(self.session.grid.cell(0, 0).character, "c")
        self.assertEqual(self.session.controller.active_cell.coordinate, Coordinate(1, 0))

    async def test_reload_resets_selection(self) -> None:
        self.session.click(1, 0)
        self.session._load(PUZZLE)
        self.assertIsNone(self.session.controller.active_clue)
        self.assertIsNone(self.session.press("a"))
        self.assertEqual(self.renderer.across, [("1a", "Feline")])

    async def test_failed_reload_keeps_previous_grid(self) -> None:
        self.session.grid.apply_remote_edit(2, 0, "t")
        with self.assertRaises(PuzzleLoadError):
            self.session._load({"across": {"1a": {"hint": "x", "cells": []}}})
        self.assertEqual(self.session.grid.cell(2, 0).character, "t")

    async def test_click_outside_grid_is_harmless(self) -> None:
        with self.assertLogs("crossword_sync.engine.navigation", level="WARNING"):
            self.assertIsNone(self.session.click(8, 8))

    async def test_start_fails_when_the_server_is_unreachable(self) -> None:
        session = LiveSession(
            "http://host/puzzle/1",
            config=ChannelConfig(reconnect_initial_delay=0.01, initial_attempts=2),
        )
        fake = AsyncMock(side_effect=OSError("connection refused"))
        with patch("crossword_sync.io.channel.connect", fake):
            with self.assertRaises(PuzzleLoadError):
                await asyncio.wait_for(session.start(), 5)
            await session.close()
        self.assertEqual(fake.await_count, 2)


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
