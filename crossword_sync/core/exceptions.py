"""Custom exception hierarchy for the live crossword grid."""


class CrosswordSyncError(Exception):
    """Base exception for grid and channel failures."""


class PuzzleLoadError(CrosswordSyncError):
    """Raised when puzzle data cannot be fetched or does not describe a grid."""


class ProtocolError(CrosswordSyncError):
    """Raised when a live frame has an unknown shape or targets an unknown cell."""


class PuzzleNotFoundError(CrosswordSyncError):
    """Raised when the server store has no puzzle with the requested id."""
