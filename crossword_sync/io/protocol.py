"""Wire helpers for the puzzle data endpoint and the live channel."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Union
from urllib.parse import urlsplit, urlunsplit

from ..core.constants import DATA_SUFFIX, LIVE_SUFFIX
from ..core.exceptions import ProtocolError
from ..core.models import CellEdit

# Sent once after connecting; the server treats it as a no-op.
GREETING = "Hello Server!"

_LIVE_SCHEMES = {"http": "ws", "https": "wss", "ws": "ws", "wss": "wss"}
_DATA_SCHEMES = {"http": "http", "https": "https", "ws": "http", "wss": "https"}


@dataclass(frozen=True)
class Endpoints:
    data_url: str
    live_url: str


def endpoints(base_url: str) -> Endpoints:
    """Derive the data and live URLs of the puzzle mounted at ``base_url``."""
    parts = urlsplit(base_url)
    scheme = parts.scheme.lower()
    if scheme not in _LIVE_SCHEMES or not parts.netloc:
        raise ValueError(f"Unsupported puzzle URL: {base_url!r}")
    path = parts.path.rstrip("/")
    data_url = urlunsplit((_DATA_SCHEMES[scheme], parts.netloc, path + DATA_SUFFIX, "", ""))
    live_url = urlunsplit((_LIVE_SCHEMES[scheme], parts.netloc, path + LIVE_SUFFIX, "", ""))
    return Endpoints(data_url=data_url, live_url=live_url)


def is_greeting(frame: Union[str, bytes]) -> bool:
    if isinstance(frame, bytes):
        frame = frame.decode("utf-8", errors="replace")
    return frame.strip() == GREETING


def decode_edit(frame: Union[str, bytes]) -> CellEdit:
    """Parse one inbound frame; anything but ``{x, y, c}`` is a protocol error."""
    try:
        payload = json.loads(frame)
    except (TypeError, ValueError) as exc:
        raise ProtocolError(f"Frame is not valid JSON: {frame!r}") from exc
    return CellEdit.from_payload(payload)


def encode_edit(edit: CellEdit) -> str:
    return edit.to_frame()
