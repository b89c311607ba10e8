"""Git integration for streaming repository history."""

from .repository import GIT_AVAILABLE, GitRepository
from .stream import DEFAULT_BATCH_SIZE, DEFAULT_LIMIT, CommitStream, RepositoryHandle

__all__ = [
    "CommitStream",
    "DEFAULT_BATCH_SIZE",
    "DEFAULT_LIMIT",
    "GIT_AVAILABLE",
    "GitRepository",
    "RepositoryHandle",
]
