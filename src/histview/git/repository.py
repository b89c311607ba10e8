"""Repository handle built on GitPython."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Iterator, List, Optional

try:
    from git import Head, RemoteReference, Repo, TagReference
    from git.exc import GitError, InvalidGitRepositoryError, NoSuchPathError, ODBError
    GIT_AVAILABLE = True
except ImportError:
    GIT_AVAILABLE = False
    Head = RemoteReference = Repo = TagReference = None

from ..exceptions import HistViewError, NotARepository, ObjectNotFound, TraversalError
from ..models.commit import DEFAULT_SHORT_ID_LENGTH, CommitRecord
from ..models.repository import ReferenceSet, RepositoryInfo
from ..validation import validate_commit_id, validate_search_query
from .stream import DEFAULT_BATCH_SIZE, CommitStream

logger = logging.getLogger(__name__)

DEFAULT_MAX_COUNT = 1000


class GitRepository:
    """Wrapper around GitPython exposing what the history viewer needs.

    The underlying ``Repo`` stays open for the lifetime of this object;
    :meth:`walk` only starts a new ``git rev-list`` each time it is called.
    """

    def __init__(
        self,
        repo_path: Path,
        search_parent_directories: bool = False,
        short_id_length: int = DEFAULT_SHORT_ID_LENGTH,
    ):
        if not GIT_AVAILABLE:
            raise HistViewError(
                "GitPython is not installed or git is missing. Install with: pip install gitpython"
            )

        self.short_id_length = short_id_length
        try:
            self.repo = Repo(
                Path(repo_path), search_parent_directories=search_parent_directories
            )
        except (InvalidGitRepositoryError, NoSuchPathError) as e:
            raise NotARepository(repo_path) from e
        self.path = Path(self.repo.working_tree_dir or self.repo.git_dir).resolve()
        logger.debug("Opened repository at %s", self.path)

    @classmethod
    def open(cls, path: Path, short_id_length: int = DEFAULT_SHORT_ID_LENGTH) -> "GitRepository":
        """Open the repository rooted exactly at ``path``."""
        return cls(path, search_parent_directories=False, short_id_length=short_id_length)

    @classmethod
    def discover(
        cls, path: Path, short_id_length: int = DEFAULT_SHORT_ID_LENGTH
    ) -> "GitRepository":
        """Open the repository containing ``path``, searching parent directories."""
        return cls(path, search_parent_directories=True, short_id_length=short_id_length)

    @property
    def info(self) -> RepositoryInfo:
        return RepositoryInfo.from_repo(self.repo)

    def close(self) -> None:
        self.repo.close()

    def __enter__(self) -> "GitRepository":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"GitRepository(path={str(self.path)!r})"

    # Stream collaborator interface

    def walk(self, rev: str = "HEAD") -> Iterator[str]:
        """Return ids of commits reachable from ``rev``, newest commit time first.

        The ids are read lazily from a ``git rev-list`` process, so only the
        part of the history actually consumed is ever read.
        """

        if rev == "HEAD":
            if not self.repo.head.is_valid():
                raise TraversalError(f"HEAD does not point at a commit in {self.path}")
        else:
            try:
                self.repo.commit(rev)
            except (ODBError, GitError, ValueError) as e:
                raise TraversalError(f"Cannot resolve {rev!r}") from e
        try:
            commits = self.repo.iter_commits(rev)
        except (GitError, ValueError, OSError) as e:
            raise TraversalError(str(e)) from e
        return (commit.hexsha for commit in commits)

    def find_commit(self, commit_id: str) -> Any:
        """Look up the raw GitPython commit for ``commit_id``."""

        try:
            return self.repo.commit(commit_id)
        except (ODBError, GitError, ValueError) as e:
            raise ObjectNotFound(commit_id) from e

    def decode(self, commit: Any) -> CommitRecord:
        return CommitRecord.from_git(commit, short_id_length=self.short_id_length)

    # Queries

    def get_commits_streaming(
        self,
        limit: Optional[int] = None,
        batch_size: int = DEFAULT_BATCH_SIZE,
        start: str = "HEAD",
    ) -> CommitStream:
        """Create a stream walking from ``start`` over this handle.

        The stream shares this ``Repo`` and its ``git cat-file`` processes,
        so closing this repository is all the cleanup it needs.
        """

        handle = self if start == "HEAD" else _StartPoint(self, start)
        return CommitStream(handle, batch_size=batch_size, limit=limit, decoder=self.decode)

    def get_commits(
        self, max_count: Optional[int] = DEFAULT_MAX_COUNT, start: str = "HEAD"
    ) -> List[CommitRecord]:
        """Load up to ``max_count`` commits in one go by draining a stream."""

        stream = self.get_commits_streaming(limit=max_count, start=start)
        commits: List[CommitRecord] = []
        while not stream.is_complete:
            commits.extend(stream.next_batch())
        return commits

    def get_commit(self, commit_id: str) -> CommitRecord:
        validate_commit_id(commit_id)
        return self.decode(self.find_commit(commit_id))

    def get_head_commit(self) -> CommitRecord:
        if not self.repo.head.is_valid():
            raise ObjectNotFound("HEAD")
        return self.decode(self.repo.head.commit)

    def get_commits_in_range(self, from_commit: str, to_commit: str) -> List[CommitRecord]:
        """Commits reachable from ``to_commit`` but not from ``from_commit``.

        Parameters
        ----------
        from_commit:
            Exclusive lower bound
        to_commit:
            Inclusive upper bound

        Returns
        -------
        List of CommitRecord objects, newest first
        """
        for commit_id in (from_commit, to_commit):
            validate_commit_id(commit_id)
            self.find_commit(commit_id)

        try:
            commits = list(self.repo.iter_commits(f"{from_commit}..{to_commit}"))
        except (GitError, ValueError) as e:
            raise TraversalError(str(e)) from e
        return [self.decode(commit) for commit in commits]

    def search_commits(
        self, query: str, max_count: Optional[int] = DEFAULT_MAX_COUNT
    ) -> List[CommitRecord]:
        """Find commits whose message, author or id contains ``query``.

        The search is case-insensitive and looks at no more than ``max_count``
        commits from HEAD.
        """
        validate_search_query(query)
        needle = query.lower()

        matches: List[CommitRecord] = []
        for record in self.get_commits(max_count=max_count):
            if (
                needle in record.message.lower()
                or needle in record.author.name.lower()
                or needle in record.author.email.lower()
                or needle in record.id
            ):
                matches.append(record)
        return matches

    # References

    def get_references(self) -> ReferenceSet:
        """Collect local branches, remote branches and tags in one pass."""

        references = ReferenceSet(
            current_branch=self.get_current_branch(),
            is_detached=self.is_detached_head(),
        )
        for ref in self.repo.references:
            # RemoteReference subclasses Head, so it is checked first
            if isinstance(ref, RemoteReference):
                if ref.name.endswith("/HEAD"):
                    continue
                references.remote_branches.append(ref.name)
            elif isinstance(ref, Head):
                references.local_branches.append(ref.name)
            elif isinstance(ref, TagReference):
                references.tags.append(ref.name)
            else:
                continue

            try:
                commit_id = ref.commit.hexsha
            except (ODBError, GitError, ValueError) as e:
                logger.debug("Reference %s does not resolve to a commit: %s", ref.name, e)
                continue
            references.by_commit.setdefault(commit_id, []).append(ref.name)
        return references

    def refs_for_commit(self, commit_id: str) -> List[str]:
        """Names of the branches and tags pointing at ``commit_id``."""
        return self.get_references().refs_for_commit(commit_id)

    def is_detached_head(self) -> bool:
        return self.repo.head.is_detached

    def get_current_branch(self) -> Optional[str]:
        if self.repo.head.is_detached:
            return None
        return self.repo.active_branch.name

    def get_branches(self) -> List[str]:
        return [head.name for head in self.repo.heads]

    def get_remote_branches(self) -> List[str]:
        return self.get_references().remote_branches

    def get_tags(self) -> List[str]:
        return [tag.name for tag in self.repo.tags]

    def get_file_content(self, commit_id: str, file_path: str) -> str:
        """Retrieve file contents at a specific commit.

        Parameters
        ----------
        commit_id:
            Commit SHA
        file_path:
            Relative path to file in repository

        Returns
        -------
        File contents as string, undecodable bytes replaced
        """
        validate_commit_id(commit_id)
        commit = self.find_commit(commit_id)
        try:
            entry = commit.tree / file_path
        except KeyError as e:
            raise ObjectNotFound(f"{commit_id}:{file_path}") from e

        if entry.type != "blob":
            raise HistViewError(f"Object is not a blob: {commit_id}:{file_path}")
        return entry.data_stream.read().decode("utf-8", errors="replace")


class _StartPoint:
    """Presents a repository as a handle whose walks begin at ``rev``."""

    def __init__(self, repository: GitRepository, rev: str) -> None:
        self._repository = repository
        self.rev = rev

    def walk(self) -> Iterator[str]:
        return self._repository.walk(self.rev)

    def find_commit(self, commit_id: str) -> Any:
        return self._repository.find_commit(commit_id)
