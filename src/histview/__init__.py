"""histview package.

Data layer of a desktop git history viewer: a batched, resumable commit
stream over GitPython plus the small host-side state that consumes it.
"""

__all__ = [
    "cli",
    "config",
    "exceptions",
    "git",
    "models",
    "state",
    "validation",
]
