"""Puzzle management routes: list stored puzzles and add new ones.

The live server only speaks GET (it is a WebSocket server that answers a few
plain requests), so adding a puzzle by POST goes through this small Flask app
on its own port.
"""

from __future__ import annotations

import threading

from flask import Flask, jsonify, request

from ..core.exceptions import PuzzleLoadError
from .store import PuzzleStore
from ..utils.logger import get_logger


LOGGER = get_logger(__name__)


def create_admin_app(store: PuzzleStore) -> Flask:
    app = Flask(__name__)

    @app.route("/puzzle/list", methods=["GET"])
    def list_puzzles():
        """Id and name of every stored puzzle."""
        return jsonify([info.to_payload() for info in store.list_puzzles()])

    @app.route("/puzzle/add", methods=["POST"])
    def add_puzzle():
        """Store ``{name, crossword}`` under the next free id."""
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            return jsonify({"error": "Body must be a JSON object"}), 400
        if "crossword" not in data:
            return jsonify({"error": "Missing crossword"}), 400

        try:
            info = store.add(data.get("name"), data["crossword"])
        except PuzzleLoadError as exc:
            LOGGER.warning("Rejected new puzzle: %s", exc)
            return jsonify({"error": str(exc)}), 400
        return jsonify(info.to_payload())

    return app


def start_admin(store: PuzzleStore, host: str, port: int) -> threading.Thread:
    """Serve the admin app from a daemon thread beside the live server."""
    app = create_admin_app(store)
    thread = threading.Thread(
        target=app.run,
        kwargs={"host": host, "port": port, "use_reloader": False},
        name="puzzle-admin",
        daemon=True,
    )
    thread.start()
    LOGGER.info("Puzzle admin listening on %s:%s", host, port)
    return thread
