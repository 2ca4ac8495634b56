"""
Error taxonomy for the board engine.

Every error carries the 3-tuple (message, raw_response, status) that
callers receive. `status` is "error" for transport
failures and "rejected" for semantic failures reported by the remote side.
"""
from typing import Any, Optional, Tuple


class BoardError(Exception):
    """Base class for board failures."""

    default_status = "error"
    intent = None               # the MoveIntent, when raised by a move

    def __init__(self, message: str, raw_response: Any = None, status: Optional[str] = None):
        super().__init__(message, raw_response, status or self.default_status)
        self.message = message
        self.raw_response = raw_response
        self.status = status or self.default_status

    def as_tuple(self) -> Tuple[str, Any, str]:
        return (self.message, self.raw_response, self.status)

    def __str__(self) -> str:
        return self.message


class ConfigError(BoardError):
    """Raised when board configuration is invalid or incomplete."""
    pass


class FieldNotFound(BoardError):
    """The board field does not exist in the list definition."""
    pass


class UnsupportedFieldType(BoardError):
    """The board field is neither an enumerated nor a reference field."""
    pass


class TransportError(BoardError):
    """Network failure while fetching records or pushing an update."""
    pass


class RemoteValidationError(BoardError):
    """The remote store refused an update (e.g. a required field is blank)."""

    default_status = "rejected"


class BoardNotReady(BoardError):
    """A board operation was called before the first render finished."""
    pass
