"""
Error taxonomy for CurioLoop.

Every failure that reaches the progression engine is one of these kinds:
- GenerationError: provider call failed, or its reply did not match the schema
- NotFoundError: a referenced learning path does not exist
- StorageError: reading or writing local data failed
- TransitionError: an engine operation was invoked from the wrong state
"""

from __future__ import annotations


class CurioLoopError(Exception):
    """Base class for all CurioLoop errors."""


class GenerationError(CurioLoopError):
    """Raised when a generation call fails or returns an unusable payload."""

    def __init__(self, operation: str, message: str):
        self.operation = operation
        super().__init__(f"{operation}: {message}")


class NotFoundError(CurioLoopError):
    """Raised when a learning path id is not in the collection."""

    def __init__(self, kind: str, identifier: object):
        self.kind = kind
        self.identifier = identifier
        super().__init__(f"{kind} not found: {identifier}")


class StorageError(CurioLoopError):
    """Raised when a local data document cannot be read or written."""


class TransitionError(CurioLoopError):
    """Raised when an operation is not valid in the engine's current state."""
