"""Immutable commit records produced by history traversal."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Tuple

from ..exceptions import CommitDecodeError

DEFAULT_SHORT_ID_LENGTH = 7


def _to_datetime(timestamp: Any) -> datetime:
    """Convert a unix timestamp into an aware UTC datetime.

    Values that cannot be converted fall back to the current time so a
    single odd commit never fails the whole decode.
    """

    try:
        return datetime.fromtimestamp(int(timestamp), tz=timezone.utc)
    except (TypeError, ValueError, OverflowError, OSError):
        return datetime.now(timezone.utc)


def _to_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)


@dataclass(frozen=True, slots=True)
class Signature:
    """Who made a commit and when."""

    name: str
    email: str
    when: datetime

    @classmethod
    def from_actor(cls, actor: Any, timestamp: Any) -> "Signature":
        """Build a signature from a GitPython ``Actor`` and a unix timestamp."""

        return cls(
            name=_to_text(getattr(actor, "name", None)),
            email=_to_text(getattr(actor, "email", None)),
            when=_to_datetime(timestamp),
        )

    def to_dict(self) -> Dict[str, str]:
        return {"name": self.name, "email": self.email, "when": self.when.isoformat()}

    @classmethod
    def from_dict(cls, data: Dict[str, str]) -> "Signature":
        return cls(
            name=data.get("name", ""),
            email=data.get("email", ""),
            when=datetime.fromisoformat(data["when"]),
        )

    def __str__(self) -> str:
        return f"{self.name} <{self.email}>"


@dataclass(frozen=True, slots=True)
class CommitRecord:
    """Snapshot of a single commit.

    Attributes
    ----------
    id:
        Full 40 character hex object id.
    short_id:
        Abbreviated id used for display.
    author, committer:
        Signatures recorded in the commit object.
    message:
        Full commit message.
    summary:
        First line of ``message``.
    parent_ids:
        Parent ids in commit order. Empty for root commits, two or more for
        merges.
    tree_id:
        Id of the tree snapshot the commit points at.
    """

    id: str
    short_id: str
    author: Signature
    committer: Signature
    message: str
    summary: str
    parent_ids: Tuple[str, ...] = field(default_factory=tuple)
    tree_id: str = ""

    @property
    def is_merge(self) -> bool:
        return len(self.parent_ids) > 1

    @property
    def is_root(self) -> bool:
        return not self.parent_ids

    @classmethod
    def from_git(
        cls, commit: Any, short_id_length: int = DEFAULT_SHORT_ID_LENGTH
    ) -> "CommitRecord":
        """Decode a GitPython ``Commit`` into a record.

        GitPython loads commit objects lazily, so reading the first attribute
        is what actually touches the object database. Any failure while doing
        so is reported as :class:`CommitDecodeError`.
        """

        commit_id = _to_text(getattr(commit, "hexsha", None)) or "<unknown>"
        try:
            author = Signature.from_actor(commit.author, commit.authored_date)
            committer = Signature.from_actor(commit.committer, commit.committed_date)
            message = _to_text(commit.message)
            parent_ids = tuple(parent.hexsha for parent in commit.parents)
            tree_id = commit.tree.hexsha
        except Exception as exc:
            raise CommitDecodeError(commit_id, str(exc) or type(exc).__name__) from exc

        return cls(
            id=commit_id,
            short_id=commit_id[:short_id_length],
            author=author,
            committer=committer,
            message=message,
            summary=message.split("\n", 1)[0].strip(),
            parent_ids=parent_ids,
            tree_id=tree_id,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Return a JSON-serialisable representation."""

        return {
            "id": self.id,
            "short_id": self.short_id,
            "author": self.author.to_dict(),
            "committer": self.committer.to_dict(),
            "message": self.message,
            "summary": self.summary,
            "parent_ids": list(self.parent_ids),
            "tree_id": self.tree_id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CommitRecord":
        return cls(
            id=data["id"],
            short_id=data.get("short_id", data["id"][:DEFAULT_SHORT_ID_LENGTH]),
            author=Signature.from_dict(data["author"]),
            committer=Signature.from_dict(data["committer"]),
            message=data.get("message", ""),
            summary=data.get("summary", ""),
            parent_ids=tuple(data.get("parent_ids", ())),
            tree_id=data.get("tree_id", ""),
        )
