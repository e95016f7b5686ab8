"""
Exception types raised by the matching engine and its snapshot store.
"""

from enum import Enum
from typing import Optional


class InvalidOrderError(ValueError):
    """Raised when an order intent cannot be accepted into the book."""


class PersistErrorKind(Enum):
    """Failure classes for snapshot persistence."""
    READ = "read"
    WRITE = "write"
    CORRUPT = "corrupt"


class PersistError(Exception):
    """
    Snapshot persistence failure.

    Attributes:
        kind: Which stage failed (read, write, or decoding)
        path: Snapshot path involved
    """

    def __init__(self, kind: PersistErrorKind, path: str, message: str, cause: Optional[BaseException] = None):
        super().__init__(f"{kind.value} error for snapshot {path}: {message}")
        self.kind = kind
        self.path = path
        self.message = message
        self.cause = cause

    def to_dict(self) -> dict:
        return {"kind": self.kind.value, "path": self.path, "message": self.message}
