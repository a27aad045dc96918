"""
Beat Engine Errors - Failure taxonomy for the batch pipeline

Every failure is fatal to a run; nothing in the engine retries.
"""

from typing import Optional


class BeatDropError(Exception):
    """Base class for all beat engine failures."""


class ConfigurationError(BeatDropError, ValueError):
    """Raised when modifier or pipeline options are invalid.

    Always raised before the first batch is read.
    """


class StreamError(BeatDropError, IOError):
    """Raised when reading, writing or coding samples fails."""

    def __init__(self, message: str, source: Optional[str] = None):
        self.message = message
        self.source = source
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        if self.source:
            return f"{self.message} ({self.source})"
        return self.message


class ChannelMismatchError(BeatDropError):
    """Raised when the left and right channels of a batch diverge in length."""

    def __init__(self, left: int, right: int, batch_index: Optional[int] = None):
        self.left = left
        self.right = right
        self.batch_index = batch_index
        msg = f"channel sizes should be equal, {left} != {right}"
        if batch_index is not None:
            msg += f" (batch {batch_index})"
        super().__init__(msg)


class ProcessingError(BeatDropError):
    """Raised when a modifier or stretch window task fails."""

    def __init__(self, message: str, batch_index: Optional[int] = None):
        self.message = message
        self.batch_index = batch_index
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        msg = self.message
        if self.batch_index is not None:
            msg += f" (batch {self.batch_index})"
        return msg
