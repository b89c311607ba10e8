from __future__ import annotations

import pytest

from histview.exceptions import CommitDecodeError, InvalidInput, NotARepository, ObjectNotFound, TraversalError
from histview.git.repository import GIT_AVAILABLE, GitRepository
from histview.git.stream import CommitStream

pytestmark = pytest.mark.skipif(not GIT_AVAILABLE, reason="GitPython or git executable unavailable")


def test_walk_is_newest_first(make_git_repo) -> None:
    repository = GitRepository.open(make_git_repo(6))

    commit_ids = list(repository.walk())

    assert len(commit_ids) == 6
    assert commit_ids[0] == repository.repo.head.commit.hexsha
    times = [repository.repo.commit(commit_id).committed_date for commit_id in commit_ids]
    assert times == sorted(times, reverse=True)


def test_stream_over_real_repository(make_git_repo) -> None:
    repository = GitRepository.open(make_git_repo(5))
    stream = CommitStream(repository, batch_size=2, limit=10, decoder=repository.decode)

    sizes = []
    for _ in range(4):
        sizes.append(len(stream.next_batch()))
        if len(sizes) < 3:
            assert not stream.is_complete
    assert sizes == [2, 2, 1, 0]
    assert stream.is_complete
    assert stream.loaded_count == 5


def test_drained_stream_matches_history(make_git_repo) -> None:
    repository = GitRepository.open(make_git_repo(12))
    stream = repository.get_commits_streaming(batch_size=5)

    records = []
    while not stream.is_complete:
        records.extend(stream.next_batch())

    assert [record.id for record in records] == list(repository.walk())
    assert [record.summary for record in records] == [f"Commit {i}" for i in reversed(range(12))]
    assert records[-1].is_root
    assert records[0].parent_ids == (records[1].id,)


def test_stream_skips_undecodable_commit(make_git_repo) -> None:
    repository = GitRepository.open(make_git_repo(6))
    bad_id = list(repository.walk())[2]

    def decoder(commit):
        if commit.hexsha == bad_id:
            raise CommitDecodeError(commit.hexsha, "simulated corruption")
        return repository.decode(commit)

    stream = CommitStream(repository, batch_size=2, decoder=decoder)
    records = list(stream)

    assert len(records) == 5
    assert bad_id not in {record.id for record in records}
    assert stream.loaded_count == 5
    assert stream.is_complete


def test_empty_repository_has_no_walk(make_git_repo) -> None:
    repository = GitRepository.open(make_git_repo(0))

    with pytest.raises(TraversalError):
        repository.walk()

    stream = CommitStream(repository, batch_size=3)
    with pytest.raises(TraversalError):
        stream.next_batch()
    assert stream.try_next() is None
    assert stream.loaded_count == 0


def test_not_a_repository(tmp_path) -> None:
    plain = tmp_path / "plain"
    plain.mkdir()

    with pytest.raises(NotARepository):
        GitRepository.open(plain)
    with pytest.raises(NotARepository):
        GitRepository.open(tmp_path / "does-not-exist")


def test_discover_from_subdirectory(make_git_repo) -> None:
    path = make_git_repo(1)
    nested = path / "nested" / "deeper"
    nested.mkdir(parents=True)

    repository = GitRepository.discover(nested)

    assert repository.path == path.resolve()


def test_find_and_get_commit(make_git_repo) -> None:
    repository = GitRepository.open(make_git_repo(3))
    head = repository.get_head_commit()

    assert repository.get_commit(head.id) == head
    assert repository.get_commit(head.short_id).id == head.id
    assert head.summary == "Commit 2"
    assert head.author.name == "Test User"
    assert head.author.email == "test@example.com"


def test_unknown_commit_is_not_found(make_git_repo) -> None:
    repository = GitRepository.open(make_git_repo(1))

    with pytest.raises(ObjectNotFound):
        repository.find_commit("1234" * 10)
    with pytest.raises(InvalidInput):
        repository.get_commit("not-a-sha")


def test_get_commits_respects_max_count(make_git_repo) -> None:
    repository = GitRepository.open(make_git_repo(8))

    assert len(repository.get_commits(max_count=3)) == 3
    assert len(repository.get_commits()) == 8


def test_commits_in_range(make_git_repo) -> None:
    repository = GitRepository.open(make_git_repo(5))
    commit_ids = list(repository.walk())

    records = repository.get_commits_in_range(commit_ids[3], commit_ids[0])

    assert [record.id for record in records] == commit_ids[:3]


def test_search_commits(make_git_repo) -> None:
    messages = ["Add parser\n", "Fix crash in parser\n", "Update README\n"]
    repository = GitRepository.open(make_git_repo(3, messages=messages))

    assert [record.summary for record in repository.search_commits("PARSER")] == [
        "Fix crash in parser",
        "Add parser",
    ]
    assert len(repository.search_commits("test@example")) == 3
    assert repository.search_commits("nothing like this") == []


def test_merge_commit_has_two_parents(make_git_repo) -> None:
    from git import Actor

    path = make_git_repo(2)
    repository = GitRepository.open(path)
    repo = repository.repo
    first, second = list(repo.iter_commits("HEAD"))[::-1]
    actor = Actor("Merger", "merger@example.com")
    repo.index.commit(
        "Merge branch 'feature'",
        parent_commits=[second, first],
        author=actor,
        committer=actor,
        author_date="1800000000 +0000",
        commit_date="1800000000 +0000",
    )

    head = repository.get_head_commit()

    assert head.is_merge
    assert head.parent_ids == (second.hexsha, first.hexsha)


def test_file_content_at_commit(make_git_repo) -> None:
    repository = GitRepository.open(make_git_repo(2))
    head = repository.get_head_commit()

    assert repository.get_file_content(head.id, "file_1.txt") == "content 1\n"
    with pytest.raises(ObjectNotFound):
        repository.get_file_content(head.id, "missing.txt")


def test_repository_info(make_git_repo) -> None:
    path = make_git_repo(2, name="sample")
    repository = GitRepository.open(path)
    repository.repo.create_tag("v1.0")

    info = repository.info

    assert info.name == "sample"
    assert info.path == path.resolve()
    assert not info.is_bare
    assert info.head_branch in repository.get_branches()
    assert info.tags == ["v1.0"] == repository.get_tags()
    assert info.remotes == []


def test_stream_reuses_handle_and_close_stops_git_processes(make_git_repo, monkeypatch) -> None:
    repository = GitRepository.open(make_git_repo(5))
    opened = []
    monkeypatch.setattr("histview.git.repository.Repo", lambda *args, **kwargs: opened.append(args))

    stream = repository.get_commits_streaming(batch_size=2)
    records = list(stream)

    assert len(records) == 5
    assert stream.is_complete
    assert opened == []

    git_cmd = repository.repo.git
    processes = [cmd.proc for cmd in (git_cmd.cat_file_all, git_cmd.cat_file_header) if cmd is not None]
    assert processes

    repository.close()

    assert all(process.poll() is not None for process in processes)


def test_refs_for_tagged_commit(make_git_repo) -> None:
    repository = GitRepository.open(make_git_repo(3))
    commit_ids = list(repository.walk())
    branch = repository.get_current_branch()
    repository.repo.create_tag("v1.0")
    repository.repo.create_tag("v0.1", ref=commit_ids[2], message="First release")
    repository.repo.create_head("feature", commit_ids[1])

    assert sorted(repository.refs_for_commit(commit_ids[0])) == sorted([branch, "v1.0"])
    assert repository.refs_for_commit(commit_ids[1]) == ["feature"]
    assert repository.refs_for_commit(commit_ids[2]) == ["v0.1"]

    references = repository.get_references()
    assert sorted(references.local_branches) == sorted([branch, "feature"])
    assert sorted(references.tags) == ["v0.1", "v1.0"]
    assert references.remote_branches == []
    assert references.current_branch == branch
    assert not references.is_detached


def test_detached_head(make_git_repo) -> None:
    repository = GitRepository.open(make_git_repo(3))
    commit_ids = list(repository.walk())
    branch = repository.get_current_branch()

    repository.repo.git.checkout(commit_ids[1])

    assert repository.is_detached_head()
    assert repository.get_current_branch() is None
    assert repository.info.head_branch is None
    references = repository.get_references()
    assert references.is_detached
    assert references.current_branch is None
    assert references.local_branches == [branch]
    assert list(repository.walk()) == commit_ids[1:]


def test_stream_from_another_branch(make_git_repo) -> None:
    repository = GitRepository.open(make_git_repo(6))
    commit_ids = list(repository.walk())
    repository.repo.create_head("older", commit_ids[2])

    records = repository.get_commits(start="older")

    assert [record.id for record in records] == commit_ids[2:]
    assert not repository.is_detached_head()

    stream = repository.get_commits_streaming(start="no-such-branch")
    with pytest.raises(TraversalError):
        stream.next_batch()
    assert stream.loaded_count == 0


def test_remote_branches_of_a_clone(make_git_repo, tmp_path) -> None:
    source = GitRepository.open(make_git_repo(2))
    branch = source.get_current_branch()
    clone_path = tmp_path / "clone"
    source.repo.clone(str(clone_path)).close()

    with GitRepository.open(clone_path) as clone:
        assert clone.get_remote_branches() == [f"origin/{branch}"]
        assert clone.get_branches() == [branch]
        head_id = clone.get_head_commit().id
        assert sorted(clone.refs_for_commit(head_id)) == sorted([branch, f"origin/{branch}"])


def test_search_matches_any_part_of_commit_id(make_git_repo) -> None:
    repository = GitRepository.open(make_git_repo(4))
    head = repository.get_head_commit()

    matches = repository.search_commits(head.id[12:24])

    assert head.id in [record.id for record in matches]
