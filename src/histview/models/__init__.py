"""Plain data objects shared by the git layer and the viewer state."""

from .commit import CommitRecord, Signature
from .repository import ReferenceSet, RepositoryInfo

__all__ = [
    "CommitRecord",
    "ReferenceSet",
    "RepositoryInfo",
    "Signature",
]
