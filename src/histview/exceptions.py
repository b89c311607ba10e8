"""histview exception hierarchy.

All histview-specific exceptions inherit from HistViewError.
"""

from __future__ import annotations

from pathlib import Path


class HistViewError(Exception):
    """Base exception for all histview errors."""


class NotARepository(HistViewError):
    """Raised when no git repository exists at (or above) a path."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        super().__init__(f"Not a git repository: {path}")


class ObjectNotFound(HistViewError):
    """Raised when a commit lookup by identifier fails."""

    def __init__(self, object_id: str) -> None:
        self.object_id = object_id
        super().__init__(f"Object not found: {object_id}")


class TraversalError(HistViewError):
    """Raised when a history walker cannot be created.

    Typical causes are an empty repository (HEAD points at an unborn
    branch) or a handle whose underlying repository has gone away.
    """

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Cannot walk history: {reason}")


class CommitDecodeError(HistViewError):
    """Raised when a raw commit object cannot be turned into a record."""

    def __init__(self, commit_id: str, reason: str) -> None:
        self.commit_id = commit_id
        self.reason = reason
        super().__init__(f"Cannot decode commit {commit_id}: {reason}")


class InvalidInput(HistViewError):
    """Raised when user-supplied input fails validation."""

    def __init__(self, value: str, reason: str) -> None:
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid input {value!r}: {reason}")
