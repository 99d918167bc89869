import logging
import unittest
from unittest.mock import patch

import main
from crossword_sync.core.exceptions import PuzzleLoadError
from crossword_sync.utils.logger import configure_logging


class CommandLineTests(unittest.TestCase):
    def tearDown(self) -> None:
        configure_logging(logging.INFO)

    def test_bad_puzzle_url_is_a_usage_error(self) -> None:
        with patch("main.run_show") as fake_show:
            with self.assertRaises(SystemExit) as raised:
                main.main(["show", "ftp://host/puzzle/1"])
        self.assertEqual(raised.exception.code, 2)
        fake_show.assert_not_called()

    def test_value_errors_from_commands_are_not_usage_errors(self) -> None:
        with patch("main.run_show", side_effect=ValueError("bad cell")):
            with self.assertRaises(ValueError):
                main.main(["show", "http://host/puzzle/1"])

    def test_load_failures_exit_with_a_message(self) -> None:
        with patch("main.run_show", side_effect=PuzzleLoadError("404")):
            with self.assertRaises(SystemExit) as raised:
                main.main(["show", "http://host/puzzle/1"])
        self.assertIn("Puzzle failed to load", str(raised.exception.code))

    def test_negative_admin_port_disables_admin(self) -> None:
        with patch("main.LiveServer") as fake_server, patch("main.asyncio.run") as fake_run:
            main.main(["serve", "--port", "9000", "--admin-port", "-1"])
        config = fake_server.call_args.args[0]
        self.assertEqual(config.port, 9000)
        self.assertIsNone(config.admin_port)
        fake_run.assert_called_once()


class LoggingTests(unittest.TestCase):
    def tearDown(self) -> None:
        configure_logging(logging.INFO)

    def test_library_loggers_stay_quiet_unless_debugging(self) -> None:
        configure_logging(logging.INFO)
        self.assertEqual(logging.getLogger("websockets").level, logging.WARNING)
        configure_logging(logging.DEBUG)
        self.assertEqual(logging.getLogger("werkzeug").level, logging.DEBUG)


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
