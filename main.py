"""CLI entrypoint for the live crossword grid."""

from __future__ import annotations

import argparse
import asyncio
import logging
from pathlib import Path

from crossword_sync.core.exceptions import PuzzleLoadError
from crossword_sync.core.models import CellEdit, Clue
from crossword_sync.engine.grid import GridModel
from crossword_sync.engine.session import LiveSession
from crossword_sync.io.protocol import endpoints
from crossword_sync.io.puzzle_client import PuzzleClient
from crossword_sync.io.server import LiveServer, ServerConfig
from crossword_sync.utils.logger import configure_logging
from crossword_sync.utils.render import TextRenderer, print_grid


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Serve or join a crossword grid shared by every viewer in real time",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default="INFO",
        help="Logging level (DEBUG, INFO, WARNING, ERROR)",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    serve = commands.add_parser("serve", help="Run the live puzzle server")
    serve.add_argument("--host", type=str, default="127.0.0.1", help="Interface to bind")
    serve.add_argument("--port", type=int, default=8080, help="Port to listen on")
    serve.add_argument(
        "--puzzle-dir",
        type=Path,
        help="Directory of <id>.json puzzles (defaults to $PUZZLE_PATH or ./puzzles)",
    )
    serve.add_argument("--demo", action="store_true", help="Also serve the built-in demo as puzzle 0")
    serve.add_argument(
        "--ping-interval",
        type=float,
        default=5.0,
        help="Seconds between heartbeat pings to each client",
    )
    serve.add_argument(
        "--admin-port",
        type=int,
        default=8081,
        help="Port for listing and adding puzzles (POST /puzzle/add); negative disables it",
    )

    show = commands.add_parser("show", help="Fetch a puzzle once and print it")
    show.add_argument("url", help="Puzzle URL, e.g. http://127.0.0.1:8080/puzzle/0")

    watch = commands.add_parser("watch", help="Follow a puzzle and reprint it on every edit")
    watch.add_argument("url", help="Puzzle URL, e.g. http://127.0.0.1:8080/puzzle/0")

    type_ = commands.add_parser("type", help="Type letters into one clue of a live puzzle")
    type_.add_argument("url", help="Puzzle URL, e.g. http://127.0.0.1:8080/puzzle/0")
    type_.add_argument("--clue", required=True, help="Clue name, e.g. 1a")
    type_.add_argument("--text", required=True, help="Letters to type from the clue's first cell")
    type_.add_argument("--timeout", type=float, default=10.0, help="Seconds to wait for the server")
    return parser


def select_clue(session: LiveSession, name: str) -> Clue:
    """Click the first cell of ``name`` until that clue becomes active."""
    try:
        clue = session.grid.clue(name)
    except KeyError:
        raise SystemExit(f"Puzzle has no clue named {name!r}")
    first = clue.coordinates[0]
    for _ in range(len(session.grid.cells[first].member_clues)):
        if session.click(first.x, first.y) is clue:
            return clue
    raise SystemExit(f"Could not activate clue {name!r}")


def run_show(url: str) -> None:
    renderer = TextRenderer()
    GridModel(renderer).load(PuzzleClient(endpoints(url).data_url).fetch())
    print_grid(renderer, label=url)


async def run_watch(url: str) -> None:
    renderer = TextRenderer()

    def redraw(edit: CellEdit) -> None:
        print_grid(renderer, label=f"{edit.x},{edit.y} -> {edit.character!r}")

    session = LiveSession(url, renderer, on_remote_edit=redraw)
    try:
        await session.start()
        print_grid(renderer, label=url)
        await session.wait_closed()
    finally:
        await session.close()


async def run_type(url: str, clue_name: str, text: str, timeout: float) -> None:
    renderer = TextRenderer()
    session = LiveSession(url, renderer)
    try:
        await asyncio.wait_for(session.start(), timeout)
        select_clue(session, clue_name)
        for key in text:
            session.press(key)
        await asyncio.wait_for(session.channel.flush(), timeout)
        print_grid(renderer, label=f"Typed {text!r} into {clue_name}")
    finally:
        await session.close()


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    level = getattr(logging, args.log_level.upper(), logging.INFO)
    configure_logging(level)

    if args.command != "serve":
        try:
            endpoints(args.url)
        except ValueError as exc:
            parser.error(str(exc))

    try:
        if args.command == "serve":
            config = ServerConfig(
                host=args.host,
                port=args.port,
                puzzle_dir=args.puzzle_dir,
                ping_interval=args.ping_interval,
                demo=args.demo,
                admin_port=args.admin_port if args.admin_port >= 0 else None,
            )
            asyncio.run(LiveServer(config).serve_forever())
        elif args.command == "show":
            run_show(args.url)
        elif args.command == "watch":
            asyncio.run(run_watch(args.url))
        elif args.command == "type":
            asyncio.run(run_type(args.url, args.clue, args.text, args.timeout))
    except PuzzleLoadError as exc:
        raise SystemExit(f"Puzzle failed to load: {exc}")
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
