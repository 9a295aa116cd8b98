"""Errors surfaced outside the timing engine."""


class LyricVideoError(Exception):
    """Base exception for all lyric video errors."""
    pass


class AudioLoadError(LyricVideoError):
    """Raised when an audio file cannot be opened or decoded."""
    pass


class ExportCancelled(LyricVideoError):
    """Raised when the user aborts an export. Partial output is discarded."""
    pass


class ExportFailed(LyricVideoError):
    """Raised when an export cannot finish (audio decode, encoder, drawing)."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason
