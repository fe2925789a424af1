"""
Exception types raised by owllama.
"""


class OwllamaError(Exception):
    """Base class for owllama errors."""


class InferenceError(OwllamaError):
    """User-friendly error from the inference server or the transport."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        original: Exception | None = None,
    ):
        self.status_code = status_code
        self.original = original
        super().__init__(message)


class HistoryWriteError(OwllamaError):
    """The history file could not be written."""


class SessionClosedError(OwllamaError):
    """Input was submitted to a chat session that has already ended."""


class SearchError(OwllamaError):
    """A web search lookup failed."""


class ExecutableNotFoundError(OwllamaError):
    """The executable that unknown commands are forwarded to is not on PATH."""
