from __future__ import annotations


class HandoffError(Exception):
    """Base class for handoff related exceptions."""

    def __init__(self, message: str, *args) -> None:
        self.message = message
        super().__init__(message, *args)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, HandoffError):
            return type(self) is type(other) and self.args == other.args
        return NotImplemented

    def __hash__(self) -> int:
        return hash((type(self), self.args))


class InvalidConfiguration(HandoffError):
    """A queue or session was configured with values it cannot run with."""


class Cancelled(HandoffError):
    """A blocked put/take was cancelled through its CancelToken."""


class QueueTimeout(HandoffError, TimeoutError):
    """A bounded wait on the queue expired before its predicate held."""


class IoFailure(HandoffError):
    """The record stream could not be opened or read at all."""


class RowSkipped(HandoffError):
    """A single record row was malformed and has been dropped."""

    def __init__(self, line: int, reason: str) -> None:
        self.line = line
        self.reason = reason
        super().__init__(f"Skipping invalid row {line}: {reason}", line, reason)
