"""History list state driven by a commit stream.

``HistoryState`` is what the viewer's history panel holds on to: the opened
repository, the commits loaded so far and the current selection. It pulls
commits from a :class:`~histview.git.stream.CommitStream` each time
:meth:`HistoryState.poll_commit_stream` is called, typically once per UI
frame.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from .config import ViewerConfig
from .exceptions import HistViewError
from .git.repository import GitRepository
from .git.stream import CommitStream
from .models.commit import CommitRecord
from .models.repository import ReferenceSet
from .validation import validate_commit_id, validate_ref_name

logger = logging.getLogger(__name__)


@dataclass
class HistoryState:
    config: ViewerConfig = field(default_factory=ViewerConfig)
    repository: Optional[GitRepository] = None
    commits: List[CommitRecord] = field(default_factory=list)
    selected_commit: Optional[str] = None
    selected_commit_index: Optional[int] = None
    search_query: str = ""
    search_results: List[CommitRecord] = field(default_factory=list)
    error_message: Optional[str] = None
    loading: bool = False
    stream_complete: bool = False
    commit_stream: Optional[CommitStream] = None
    references: ReferenceSet = field(default_factory=ReferenceSet)
    selected_branch: Optional[str] = None
    show_remote_branches: bool = False

    def set_repository(self, repository: GitRepository) -> None:
        """Switch to ``repository``, closing the one previously held."""
        if self.repository is not None and self.repository is not repository:
            self.close()
        self.repository = repository
        self.selected_commit = None
        self.selected_commit_index = None
        self.selected_branch = None
        self.load_references()
        if self.config.enable_commit_streaming:
            self.start_streaming_commits()
        else:
            self.refresh_commits()

    def close(self) -> None:
        """Drop the active stream and release the repository's git processes."""
        self.commit_stream = None
        self.loading = False
        if self.repository is not None:
            self.repository.close()
            self.repository = None

    def start_streaming_commits(self) -> None:
        if self.repository is None:
            return
        self.loading = True
        self.commits.clear()
        self.stream_complete = False
        try:
            self.commit_stream = self.repository.get_commits_streaming(
                limit=self.config.commit_limit,
                batch_size=self.config.commit_batch_size,
                start=self.selected_branch or "HEAD",
            )
        except HistViewError as e:
            self.error_message = f"Failed to start streaming commits: {e}"
            self.loading = False

    def poll_commit_stream(self) -> bool:
        """Append the stream's next batch to ``commits``.

        Each call runs at most one load cycle. Returns True when at least one
        commit was added.
        """

        stream = self.commit_stream
        if stream is None:
            return False

        try:
            batch = stream.next_batch()
        except HistViewError as e:
            self.error_message = f"Error loading commits: {e}"
            self.loading = False
            self.commit_stream = None
            return False
        self.commits.extend(batch)

        if stream.is_complete:
            logger.debug("Commit stream completed, total commits loaded: %d", len(self.commits))
            self.stream_complete = True
            self.loading = False
            self.commit_stream = None

        return bool(batch)

    def is_streaming(self) -> bool:
        return self.commit_stream is not None

    def refresh_commits(self) -> None:
        """Reload the whole list in one blocking call."""
        if self.repository is None:
            return
        self.loading = True
        try:
            self.commits = self.repository.get_commits(
                max_count=self.config.commit_limit, start=self.selected_branch or "HEAD"
            )
            self.error_message = None
        except HistViewError as e:
            self.error_message = f"Failed to load commits: {e}"
        finally:
            self.loading = False

    def search_commits(self, query: str) -> None:
        if self.repository is None:
            return
        self.search_query = query
        if not query:
            self.search_results = []
            return
        try:
            self.search_results = self.repository.search_commits(
                query, max_count=self.config.commit_limit
            )
        except HistViewError as e:
            logger.warning("Commit search failed: %s", e)
            self.error_message = str(e)
            self.search_results = []

    def select_commit(self, commit_id: str) -> None:
        try:
            validate_commit_id(commit_id)
        except HistViewError as e:
            logger.warning("Rejected commit selection: %s", e)
            self.error_message = str(e)
            return
        self.selected_commit = commit_id

    def get_selected_commit(self) -> Optional[CommitRecord]:
        if self.selected_commit is None:
            return None
        for record in self.commits:
            if record.id == self.selected_commit:
                return record
        return None

    def clear_error(self) -> None:
        self.error_message = None

    def navigate_commits(self, delta: int) -> None:
        """Move the selection ``delta`` rows, clamped to the loaded list."""
        if not self.commits:
            return
        current = self.selected_commit_index or 0
        new_index = min(max(current + delta, 0), len(self.commits) - 1)
        self._select_index(new_index)

    def navigate_to_first_commit(self) -> None:
        if self.commits:
            self._select_index(0)

    def navigate_to_last_commit(self) -> None:
        if self.commits:
            self._select_index(len(self.commits) - 1)

    def _select_index(self, index: int) -> None:
        self.selected_commit_index = index
        self.select_commit(self.commits[index].id)

    # References

    def load_references(self) -> None:
        if self.repository is None:
            return
        try:
            self.references = self.repository.get_references()
        except HistViewError as e:
            logger.warning("Could not read references: %s", e)
            self.error_message = f"Failed to load references: {e}"
            self.references = ReferenceSet()

    def refresh_references(self) -> None:
        self.load_references()

    def get_branches(self) -> List[str]:
        if self.show_remote_branches:
            return self.references.local_branches + self.references.remote_branches
        return list(self.references.local_branches)

    def get_tags(self) -> List[str]:
        return list(self.references.tags)

    def get_current_branch(self) -> Optional[str]:
        return self.references.current_branch

    def is_detached_head(self) -> bool:
        return self.references.is_detached

    def get_refs_for_commit(self, commit_id: str) -> List[str]:
        return self.references.refs_for_commit(commit_id)

    def toggle_remote_branches(self) -> None:
        self.show_remote_branches = not self.show_remote_branches

    def switch_to_branch(self, branch_name: str) -> None:
        """Show the history of ``branch_name`` instead of HEAD.

        Only the viewed history changes; the working tree is never checked
        out. Unknown or malformed names leave the current list in place and
        set ``error_message``.
        """

        try:
            validate_ref_name(branch_name)
        except HistViewError as e:
            self.error_message = str(e)
            return
        known = self.references.local_branches + self.references.remote_branches
        if branch_name not in known:
            self.error_message = f"Branch '{branch_name}' not found"
            return

        self.selected_branch = branch_name
        self.selected_commit = None
        self.selected_commit_index = None
        self.error_message = None
        if self.config.enable_commit_streaming:
            self.start_streaming_commits()
        else:
            self.refresh_commits()
