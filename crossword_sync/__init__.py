"""Shared, live-synchronised crossword grid.

This package exposes the public API surface via:

- ``crossword_sync.engine.grid.GridModel``: cells, clues and hint ordering.
- ``crossword_sync.engine.navigation.NavigationController``: key and click handling.
- ``crossword_sync.io.channel.SyncChannel``: the reconnecting live channel.
- ``crossword_sync.engine.session.LiveSession``: the three wired together.
- ``crossword_sync.io.server.LiveServer``: the room server clients connect to.
"""

from .engine.grid import GridModel
from .engine.navigation import NavigationController
from .engine.session import LiveSession
from .io.channel import ChannelConfig, SyncChannel
from .io.server import LiveServer, ServerConfig

__all__ = [
    "GridModel",
    "NavigationController",
    "LiveSession",
    "ChannelConfig",
    "SyncChannel",
    "LiveServer",
    "ServerConfig",
]

__version__ = "0.1.0"
