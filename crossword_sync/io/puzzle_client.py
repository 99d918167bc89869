"""HTTP client for the one-shot puzzle data fetch."""

from __future__ import annotations

from typing import Any, Dict

import requests

from ..core.exceptions import PuzzleLoadError
from ..utils.logger import get_logger

LOGGER = get_logger(__name__)


class PuzzleClient:
    """Fetch the full puzzle definition from the collaborator server."""

    def __init__(self, data_url: str, timeout_seconds: float = 10.0) -> None:
        self.data_url = data_url
        self.timeout_seconds = timeout_seconds

    def fetch(self) -> Dict[str, Any]:
        """Return the decoded puzzle JSON or raise :class:`PuzzleLoadError`."""
        LOGGER.info("Fetching puzzle data from %s", self.data_url)
        try:
            response = requests.get(
                self.data_url,
                headers={"Accept": "application/json"},
                timeout=self.timeout_seconds,
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            raise PuzzleLoadError(f"Failed to get crossword data: {exc}") from exc

        try:
            data = response.json()
        except ValueError as exc:
            raise PuzzleLoadError(f"Crossword data from {self.data_url} is not JSON") from exc
        if not isinstance(data, dict):
            LOGGER.error("Unexpected puzzle payload: %r", data)
            raise PuzzleLoadError("Crossword data must be a JSON object")
        return data
