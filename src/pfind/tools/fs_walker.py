"""
Concurrent filesystem walker for pfind.

This module walks a directory tree with one task per directory, running the
tasks on a thread pool whose concurrency is bounded by a permit pool. Matches
are published onto a result stream as soon as they are found and the stream
is closed when the last task has finished.
"""

import logging
import os
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Union

from ..models.config import FinderConfig, OutputMode
from ..models.search_results import EntryKind, ResultRecord
from .classifier import classify_entry, compute_xxhash, file_size, list_directory
from .concurrency import ConcurrencyLimiter, OutstandingCounter, ResultStream


logger = logging.getLogger(__name__)


_STAT_KEYS = (
    'directories_traversed',
    'entries_scanned',
    'files_matched',
    'directories_matched',
    'symlinks_matched',
    'directories_excluded',
    'errors',
)

_MATCH_STAT_KEYS = {
    EntryKind.FILE: 'files_matched',
    EntryKind.OTHER: 'files_matched',
    EntryKind.DIRECTORY: 'directories_matched',
    EntryKind.SYMLINK: 'symlinks_matched',
}


class TraversalError(Exception):
    """Raised when a traversal task fails with an unexpected error."""
    pass


@dataclass
class _TraversalRun:
    """State shared by every task of a single walk."""
    executor: ThreadPoolExecutor
    limiter: ConcurrencyLimiter
    stream: ResultStream
    counter: OutstandingCounter
    failures: List[BaseException] = field(default_factory=list)
    lock: threading.Lock = field(default_factory=threading.Lock)

    def fail(self, error: BaseException) -> None:
        with self.lock:
            self.failures.append(error)
        self.stream.cancel()


class FSWalker:
    """
    Filesystem walker that streams matching entries.

    Each directory is scanned by its own task. A task holds one limiter permit
    while it lists its directory and publishes matches; every subdirectory it
    finds is counted as outstanding and submitted as a new task before the
    scan moves on. Failures to list a directory or to stat/hash a file are
    logged and only drop that subtree or entry.
    """

    def __init__(self, config: FinderConfig):
        """
        Initialize the filesystem walker.

        Args:
            config: Shared read-only configuration for every task
        """
        self.config = config
        self.limiter: Optional[ConcurrencyLimiter] = None
        self._stats_lock = threading.Lock()
        self._stats = dict.fromkeys(_STAT_KEYS, 0)

    def walk(self, root: Union[str, os.PathLike]) -> Iterator[ResultRecord]:
        """
        Walk a directory tree and yield matches as they are found.

        Records arrive in no particular order. Closing the generator early
        cancels the remaining work and waits for in-flight tasks to exit.

        Args:
            root: Directory to search; it is not itself reported

        Yields:
            ResultRecord objects for every matching entry

        Raises:
            TraversalError: If a task failed with an unexpected error
        """
        root_path = os.fspath(root)
        stream = ResultStream(maxsize=self.config.stream_buffer)
        run = _TraversalRun(
            executor=ThreadPoolExecutor(
                max_workers=self.config.max_concurrent,
                thread_name_prefix="pfind-walk",
            ),
            limiter=ConcurrencyLimiter(self.config.max_concurrent),
            stream=stream,
            counter=OutstandingCounter(on_zero=stream.close),
        )
        self.limiter = run.limiter

        logger.info(f"Walking directory tree: {root_path}")
        finished = False
        try:
            # The counter already accounts for the root task.
            run.executor.submit(self._traverse, run, root_path)
            yield from stream
            finished = True
        finally:
            if not finished:
                stream.cancel()
            run.executor.shutdown(wait=True)

        if run.failures:
            raise TraversalError(f"Traversal of {root_path} failed: {run.failures[0]}") from run.failures[0]
        logger.info(f"Finished walking {root_path}: {self._format_stats()}")

    def _traverse(self, run: _TraversalRun, dir_path: str) -> None:
        try:
            with run.limiter:
                if not run.stream.cancelled:
                    self._scan_directory(run, dir_path)
        except Exception as e:
            logger.error(f"Unexpected error walking directory {dir_path}: {e}")
            self._bump('errors')
            run.fail(e)
        finally:
            run.counter.decrement()

    def _spawn(self, run: _TraversalRun, dir_path: str) -> None:
        run.counter.increment()
        try:
            run.executor.submit(self._traverse, run, dir_path)
        except RuntimeError:
            # The pool only refuses work once the consumer has gone away.
            run.counter.decrement()
            if not run.stream.cancelled:
                raise

    def _scan_directory(self, run: _TraversalRun, dir_path: str) -> None:
        """
        List one directory, publish its matches and schedule its subdirectories.

        Args:
            run: State of the current walk
            dir_path: Directory handled by this task
        """
        try:
            entries = list_directory(dir_path)
        except OSError as e:
            logger.warning(f"failed to read directory {dir_path}: {e}")
            self._bump('errors')
            return

        self._bump('directories_traversed')
        query = self.config.query

        for entry in entries:
            if run.stream.cancelled:
                return
            self._bump('entries_scanned')

            try:
                kind = classify_entry(entry)
            except OSError as e:
                logger.warning(f"failed to classify entry {entry.path}: {e}")
                self._bump('errors')
                continue

            if kind is EntryKind.DIRECTORY:
                self._handle_directory(run, entry)
                continue

            if not query.matches(entry.name):
                continue

            if kind is EntryKind.FILE:
                record = self._file_record(entry.path)
                if record is None:
                    continue
            else:
                # Symlinks and special files are reported without being opened.
                record = ResultRecord(path=entry.path, kind=kind)

            self._publish(run, record)

    def _handle_directory(self, run: _TraversalRun, entry: os.DirEntry) -> None:
        if self.config.print_dirs and self.config.query.matches(entry.name):
            self._publish(run, ResultRecord(path=entry.path, kind=EntryKind.DIRECTORY))

        if self.config.is_excluded(entry.path, entry.name):
            logger.debug(f"Skipping excluded directory: {entry.path}")
            self._bump('directories_excluded')
            return

        self._spawn(run, entry.path)

    def _file_record(self, path: str) -> Optional[ResultRecord]:
        """
        Build the record for a matching regular file.

        Args:
            path: Path of the file

        Returns:
            ResultRecord, or None if the requested data could not be read
        """
        mode = self.config.output_mode
        if mode is OutputMode.HASH:
            try:
                return ResultRecord(path=path, xxhash=compute_xxhash(path))
            except OSError as e:
                logger.warning(f"failed to compute xxHash for file {path}: {e}")
                self._bump('errors')
                return None
        if mode is OutputMode.SIZE:
            try:
                return ResultRecord(path=path, size=file_size(path))
            except OSError as e:
                logger.warning(f"failed to stat file {path}: {e}")
                self._bump('errors')
                return None
        return ResultRecord(path=path)

    def _publish(self, run: _TraversalRun, record: ResultRecord) -> None:
        if run.stream.publish(record):
            self._bump(_MATCH_STAT_KEYS[record.kind])

    def _bump(self, key: str, amount: int = 1) -> None:
        with self._stats_lock:
            self._stats[key] += amount

    def _format_stats(self) -> str:
        stats = self.get_stats()
        return ", ".join(f"{key}={stats[key]}" for key in _STAT_KEYS)

    def get_stats(self) -> Dict[str, int]:
        """
        Get statistics about the filesystem walking operation.

        Returns:
            Dictionary containing operation statistics
        """
        with self._stats_lock:
            return self._stats.copy()

    def reset_stats(self) -> None:
        """Reset the statistics counters."""
        with self._stats_lock:
            self._stats = dict.fromkeys(_STAT_KEYS, 0)


def walk_tree(root: Union[str, os.PathLike], config: Optional[FinderConfig] = None) -> Iterator[ResultRecord]:
    """
    Convenience function to walk a tree with a fresh walker.

    Args:
        root: Directory to search
        config: Configuration to use (defaults match every entry)

    Returns:
        Iterator of ResultRecord objects
    """
    walker = FSWalker(config or FinderConfig())
    return walker.walk(root)
