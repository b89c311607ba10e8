"""Incremental, batched traversal of a repository's commit history.

A :class:`CommitStream` hands out commits newest-first in fixed-size
batches. The walk primitive it sits on is stateless: every load cycle asks
the repository for a brand-new walker rooted at HEAD and fast-forwards past
the nodes earlier cycles already consumed. The position is kept as a plain
count of walked nodes (``next_skip``) so nothing holds a walker open between
calls.

Nodes that cannot be read or decoded are logged and skipped. Only the
failure to create a walker at all is reported to the caller.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Any, Callable, Deque, Iterator, List, Optional, Protocol

from ..exceptions import HistViewError
from ..models.commit import CommitRecord

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 10_000
DEFAULT_BATCH_SIZE = 50

Decoder = Callable[[Any], CommitRecord]


class RepositoryHandle(Protocol):
    """What a stream needs from a repository."""

    def walk(self) -> Iterator[str]:
        """Return a fresh iterator of commit ids reachable from HEAD.

        Ids come newest commit time first. Raises ``TraversalError`` when no
        walk is possible.
        """

    def find_commit(self, commit_id: str) -> Any:
        """Return the raw commit object for ``commit_id``."""


class CommitStream:
    """Stateful cursor over a repository's history.

    Parameters
    ----------
    repository:
        Handle providing ``walk()`` and ``find_commit()``. The stream keeps a
        reference to it but does not close it.
    batch_size:
        Number of new records each load cycle tries to produce.
    limit:
        Upper bound on the number of records the stream will ever produce.
        Defaults to ``DEFAULT_LIMIT``.
    decoder:
        Callable turning a raw commit object into a :class:`CommitRecord`.
        Defaults to :meth:`CommitRecord.from_git`.
    """

    def __init__(
        self,
        repository: RepositoryHandle,
        batch_size: int,
        limit: Optional[int] = None,
        decoder: Optional[Decoder] = None,
    ) -> None:
        if batch_size < 1:
            raise ValueError(f"batch_size must be a positive integer, got {batch_size}")
        if limit is None:
            limit = DEFAULT_LIMIT
        if limit < 1:
            raise ValueError(f"limit must be a positive integer, got {limit}")

        self._repository = repository
        self._decoder: Decoder = decoder or CommitRecord.from_git
        self._queue: Deque[CommitRecord] = deque()
        self._limit = limit
        self._loaded = 0
        self._batch_size = batch_size
        self._complete = False
        self._next_skip = 0

    @property
    def is_complete(self) -> bool:
        """True once no further records can ever be produced."""
        return self._complete

    @property
    def loaded_count(self) -> int:
        """Number of records produced so far across all batches."""
        return self._loaded

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def batch_size(self) -> int:
        return self._batch_size

    @property
    def next_skip(self) -> int:
        """Walk nodes a fresh walker must pass before the next record."""
        return self._next_skip

    @property
    def pending(self) -> int:
        """Records loaded but not yet handed to the caller."""
        return len(self._queue)

    def next_batch(self) -> List[CommitRecord]:
        """Return the buffered records, loading a new batch when none are buffered.

        An empty list means the stream is complete. Raises
        :class:`TraversalError` when the repository cannot provide a walker;
        the stream's counters are untouched in that case so the call can be
        retried.
        """

        if not self._queue:
            if self._complete:
                return []
            self._load_batch()

        batch = list(self._queue)
        self._queue.clear()
        return batch

    def try_next(self) -> Optional[CommitRecord]:
        """Return the next record, or ``None`` when nothing more is available.

        A failure to load the next batch is logged and reported as ``None``.
        """

        if self._queue:
            return self._queue.popleft()
        if self._complete:
            return None

        try:
            self._load_batch()
        except HistViewError as exc:
            logger.warning("Could not load commits: %s", exc)
            return None

        if self._queue:
            return self._queue.popleft()
        return None

    def __iter__(self) -> Iterator[CommitRecord]:
        while True:
            record = self.try_next()
            if record is None:
                return
            yield record

    def _load_batch(self) -> None:
        logger.debug("Loading batch of commits, loaded so far: %d", self._loaded)

        walker = iter(self._repository.walk())
        try:
            if not self._fast_forward(walker):
                logger.debug(
                    "History ended within the first %d nodes, stream complete",
                    self._next_skip,
                )
                self._complete = True
                return
            batch_loaded, exhausted = self._pull(walker)
        finally:
            close = getattr(walker, "close", None)
            if close is not None:
                close()

        if exhausted or self._loaded >= self._limit:
            self._complete = True

        logger.debug(
            "Batch complete: loaded %d commits in this batch, total loaded: %d, is_complete: %s",
            batch_loaded,
            self._loaded,
            self._complete,
        )

    def _fast_forward(self, walker: Iterator[str]) -> bool:
        """Discard the nodes earlier cycles consumed.

        Returns ``False`` when the walk ends before the resume point.
        """

        skipped = 0
        while skipped < self._next_skip:
            try:
                next(walker)
            except StopIteration:
                return False
            except Exception as exc:
                logger.debug("Unreadable node %d while resuming walk: %s", skipped, exc)
            skipped += 1
        return True

    def _pull(self, walker: Iterator[str]) -> tuple[int, bool]:
        """Pull nodes until the batch is full, the limit is hit or the walk ends.

        Returns the number of records added and whether the walk ran out.
        """

        batch_loaded = 0
        while batch_loaded < self._batch_size and self._loaded < self._limit:
            try:
                commit_id = next(walker)
            except StopIteration:
                return batch_loaded, True
            except Exception as exc:
                logger.warning("Error in history walk: %s", exc)
                self._next_skip += 1
                continue

            record = self._resolve(commit_id)
            self._next_skip += 1
            if record is None:
                continue

            logger.debug("Loaded commit: %s - %s", record.id, record.summary)
            self._queue.append(record)
            self._loaded += 1
            batch_loaded += 1

        return batch_loaded, False

    def _resolve(self, commit_id: str) -> Optional[CommitRecord]:
        try:
            raw = self._repository.find_commit(commit_id)
            return self._decoder(raw)
        except Exception as exc:
            logger.warning("Skipping commit %s: %s", commit_id, exc)
            return None

    def __repr__(self) -> str:
        return (
            f"CommitStream(pending={len(self._queue)}, limit={self._limit}, "
            f"loaded={self._loaded}, batch_size={self._batch_size}, "
            f"is_complete={self._complete}, next_skip={self._next_skip})"
        )
