"""Shared fixtures: in-memory repository handles and real git repositories."""

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace
from typing import Callable, Iterable, List, Optional

import pytest

from histview.exceptions import ObjectNotFound, TraversalError

BASE_TIMESTAMP = 1_700_000_000


def fake_commit_id(index: int) -> str:
    return f"{index + 1:040x}"


def make_fake_commit(index: int, total: int) -> SimpleNamespace:
    """Raw commit shaped like a GitPython ``Commit``; index 0 is the newest."""

    author = SimpleNamespace(name=f"Author {index}", email=f"author{index}@example.com")
    parents = [SimpleNamespace(hexsha=fake_commit_id(index + 1))] if index + 1 < total else []
    return SimpleNamespace(
        hexsha=fake_commit_id(index),
        author=author,
        authored_date=BASE_TIMESTAMP - index * 60,
        committer=author,
        committed_date=BASE_TIMESTAMP - index * 60,
        message=f"Commit {index}\n\nBody of commit {index}\n",
        parents=parents,
        tree=SimpleNamespace(hexsha=f"{index + 1:040x}"[::-1]),
    )


class FakeWalker:
    """Iterator over ids that raises for selected positions and keeps going."""

    def __init__(self, commit_ids: List[str], unreadable: Iterable[int]) -> None:
        self._commit_ids = commit_ids
        self._unreadable = set(unreadable)
        self._position = 0
        self.closed = False

    def __iter__(self) -> "FakeWalker":
        return self

    def __next__(self) -> str:
        if self._position >= len(self._commit_ids):
            raise StopIteration
        position = self._position
        self._position += 1
        if position in self._unreadable:
            raise RuntimeError(f"unreadable node {position}")
        return self._commit_ids[position]

    def close(self) -> None:
        self.closed = True


class FakeRepository:
    """In-memory stand-in for :class:`GitRepository`'s walk/find interface.

    Parameters
    ----------
    count:
        Number of commits in the linear history.
    missing:
        Walk positions whose commit object cannot be found.
    unreadable:
        Walk positions where the walker itself raises.
    has_head:
        When False, ``walk()`` fails the way an empty repository does.
    """

    def __init__(
        self,
        count: int,
        missing: Iterable[int] = (),
        unreadable: Iterable[int] = (),
        has_head: bool = True,
    ) -> None:
        self.commits = [make_fake_commit(i, count) for i in range(count)]
        self.missing = {fake_commit_id(i) for i in missing}
        self.unreadable = set(unreadable)
        self.has_head = has_head
        self.walkers: List[FakeWalker] = []

    @property
    def commit_ids(self) -> List[str]:
        return [commit.hexsha for commit in self.commits]

    def walk(self) -> FakeWalker:
        if not self.has_head:
            raise TraversalError("HEAD does not point at a commit")
        walker = FakeWalker(self.commit_ids, self.unreadable)
        self.walkers.append(walker)
        return walker

    def find_commit(self, commit_id: str) -> SimpleNamespace:
        if commit_id in self.missing:
            raise ObjectNotFound(commit_id)
        for commit in self.commits:
            if commit.hexsha == commit_id:
                return commit
        raise ObjectNotFound(commit_id)


@pytest.fixture
def fake_repository() -> Callable[..., FakeRepository]:
    return FakeRepository


@pytest.fixture
def make_git_repo(tmp_path: Path) -> Callable[..., Path]:
    """Return a factory creating a git repository with ``count`` linear commits.

    Commit ``i`` is made one minute after commit ``i - 1`` so HEAD is the
    newest. The factory returns the working tree path.
    """

    from git import Actor, Repo

    actor = Actor("Test User", "test@example.com")

    def factory(count: int, name: str = "repo", messages: Optional[List[str]] = None) -> Path:
        path = tmp_path / name
        path.mkdir()
        repo = Repo.init(path)
        with repo.config_writer() as writer:
            writer.set_value("user", "name", actor.name)
            writer.set_value("user", "email", actor.email)
        for i in range(count):
            filename = f"file_{i}.txt"
            (path / filename).write_text(f"content {i}\n", encoding="utf-8")
            repo.index.add([filename])
            date = f"{BASE_TIMESTAMP + i * 60} +0000"
            message = messages[i] if messages else f"Commit {i}\n\nDetails for commit {i}\n"
            repo.index.commit(
                message,
                author=actor,
                committer=actor,
                author_date=date,
                commit_date=date,
            )
        repo.close()
        return path

    return factory
