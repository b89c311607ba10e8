"""Summary metadata about an opened repository."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional


@dataclass(slots=True)
class RepositoryInfo:
    """Metadata shown in the viewer's title bar and reference panels."""

    path: Path
    name: str
    is_bare: bool
    head_branch: Optional[str]
    branches: List[str] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)
    remotes: List[str] = field(default_factory=list)

    @classmethod
    def from_repo(cls, repo: Any) -> "RepositoryInfo":
        """Collect metadata from a GitPython ``Repo``."""

        path = Path(repo.working_tree_dir or repo.git_dir).resolve()

        head_branch: Optional[str] = None
        if repo.head.is_valid():
            try:
                head_branch = repo.active_branch.name
            except TypeError:
                # Detached HEAD
                head_branch = None

        return cls(
            path=path,
            name=path.name or "Unknown",
            is_bare=repo.bare,
            head_branch=head_branch,
            branches=[head.name for head in repo.heads],
            tags=[tag.name for tag in repo.tags],
            remotes=[remote.name for remote in repo.remotes],
        )


@dataclass(slots=True)
class ReferenceSet:
    """Branches and tags of a repository, indexed by the commit they point at.

    ``by_commit`` maps a full commit id to the short names of every
    reference resolving to it, which is what the history list shows next
    to each row.
    """

    local_branches: List[str] = field(default_factory=list)
    remote_branches: List[str] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)
    current_branch: Optional[str] = None
    is_detached: bool = False
    by_commit: Dict[str, List[str]] = field(default_factory=dict)

    def refs_for_commit(self, commit_id: str) -> List[str]:
        return list(self.by_commit.get(commit_id, []))

    def has_local_branch(self, name: str) -> bool:
        return name in self.local_branches
