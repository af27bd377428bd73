"""
File handle cache with one background writer thread per open file

Each resolved path maps to a CacheEntry that owns the open file and a
bounded queue of encoded lines. A dedicated daemon thread drains the queue
in batches, so callers of write() never wait on disk I/O unless the queue
is full. One lock guards cache membership; it is never held across file I/O
or while waiting on a writer thread.

Paths handed to rotating() are fenced off: their entries are drained and
closed, and nobody reopens them until the block exits, so a file can be
archived and removed without a late line slipping into it.
"""

import os
import threading
from collections import deque
from contextlib import contextmanager
from datetime import datetime
from typing import (
    Callable,
    Deque,
    Dict,
    FrozenSet,
    Iterable,
    Iterator,
    List,
    Mapping,
    Optional,
    Tuple,
)

from .exceptions import DatelogError, NotStartedError
from .logger import get_logger
from .stats import Stats

PropertyKey = FrozenSet[Tuple[str, str]]


def property_key(properties: Mapping[str, str]) -> PropertyKey:
    """Hashable identity of a property set"""
    return frozenset(properties.items())


def normalize_line(line: str) -> str:
    """Terminate ``line`` with exactly one newline"""
    return line.rstrip("\n") + "\n"


class CacheEntry:
    """An open log file plus the queue and thread that write to it"""

    def __init__(
        self,
        path: str,
        stream,
        properties: Mapping[str, str],
        created_at: datetime,
        queue_size: int = 1000,
        encoding: str = "utf-8",
        sync: bool = True,
        stats: Optional[Stats] = None,
        on_exit: Optional[Callable[["CacheEntry"], None]] = None,
    ):
        self.path = path
        self.properties = dict(properties)
        self.created_at = created_at
        self.encoding = encoding
        self.sync = sync

        self._stream = stream
        self._stats = stats or Stats()
        self._on_exit = on_exit

        self._queue_size = queue_size
        self._pending: Deque[bytes] = deque()
        self._cond = threading.Condition()
        self._closed = False
        self._exited = threading.Event()
        self._thread = threading.Thread(
            target=self._run,
            daemon=True,
            name=f"datelog-writer:{os.path.basename(path)}",
        )
        self.logger = get_logger("writer")

    def start(self) -> None:
        self._thread.start()

    @property
    def closed(self) -> bool:
        with self._cond:
            return self._closed

    def write(self, line: str) -> bool:
        """
        Queue ``line`` for writing

        Blocks while the queue is full. Returns False without queueing when
        the entry has been closed, so the caller can retry on a fresh entry.
        """
        data = normalize_line(line).encode(self.encoding)
        with self._cond:
            while len(self._pending) >= self._queue_size and not self._closed:
                self._cond.wait()
            if self._closed:
                return False
            self._pending.append(data)
            self._cond.notify_all()
        self._stats.incr("lines_enqueued")
        return True

    def close(self) -> None:
        """Stop accepting lines and wait until every queued line is on disk"""
        with self._cond:
            self._closed = True
            self._cond.notify_all()
        self._exited.wait()

    def _next_batch(self) -> Tuple[List[bytes], bool]:
        """Wait for lines and take all of them; the flag is True once closed"""
        with self._cond:
            while not self._pending and not self._closed:
                self._cond.wait()
            batch = list(self._pending)
            self._pending.clear()
            self._cond.notify_all()
            return batch, self._closed

    def _write_batch(self, batch: List[bytes]) -> None:
        for data in batch:
            self._stream.write(data)
        self._stream.flush()
        if self.sync:
            os.fsync(self._stream.fileno())

    def _run(self) -> None:
        try:
            while True:
                batch, closing = self._next_batch()
                if batch:
                    self._write_batch(batch)
                    self._stats.incr("lines_written", len(batch))
                if closing and not batch:
                    break
            if not self.sync:
                os.fsync(self._stream.fileno())
        except Exception as e:
            self._stats.incr("write_errors")
            self.logger.warning(
                f"write file {self.path} error: {e}", extra={"ctx_path": self.path}
            )
            self._abandon()
        finally:
            self._finish()

    def _abandon(self) -> None:
        """Close after a write failure, dropping whatever is still queued"""
        with self._cond:
            self._closed = True
            dropped = len(self._pending)
            self._pending.clear()
            self._cond.notify_all()
        if dropped:
            self._stats.incr("lines_dropped", dropped)
            self.logger.warning(
                f"dropped {dropped} queued lines for {self.path}",
                extra={"ctx_path": self.path},
            )

    def _finish(self) -> None:
        try:
            self._stream.close()
        except OSError as e:
            self.logger.warning(f"close file {self.path} error: {e}")
        try:
            if self._on_exit:
                self._on_exit(self)
        finally:
            self._exited.set()
            self.logger.debug(f"closed {self.path}")


class FileCache:
    """Map from resolved path to CacheEntry, plus the property sets seen so far"""

    def __init__(
        self,
        queue_size: int = 1000,
        encoding: str = "utf-8",
        sync: bool = True,
        file_mode: int = 0o600,
        stats: Optional[Stats] = None,
    ):
        self.queue_size = queue_size
        self.encoding = encoding
        self.sync = sync
        self.file_mode = file_mode
        self.stats = stats or Stats()

        self._lock = threading.Lock()
        self._cond = threading.Condition(self._lock)
        self._entries: Dict[str, CacheEntry] = {}
        # path -> ident of the thread rotating it
        self._rotating: Dict[str, int] = {}
        # property set -> (properties, last time a write used it)
        self._known: Dict[PropertyKey, Tuple[Dict[str, str], datetime]] = {}
        self._closed = False
        self.logger = get_logger("cache")

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, path: str) -> bool:
        with self._lock:
            return path in self._entries

    def get(self, path: str) -> Optional[CacheEntry]:
        with self._lock:
            return self._entries.get(path)

    def _open(self, path: str):
        parent = os.path.dirname(path)
        if parent:
            os.makedirs(parent, exist_ok=True)
        fd = os.open(path, os.O_WRONLY | os.O_APPEND | os.O_CREAT, self.file_mode)
        return os.fdopen(fd, "ab")

    def get_or_create(
        self, path: str, properties: Mapping[str, str], now: datetime
    ) -> CacheEntry:
        """
        Return the live entry for ``path``, opening the file if needed

        Waits while ``path`` is being rotated by another thread.

        Raises:
            NotStartedError: if the cache has been closed
            DatelogError: if the calling thread is rotating ``path`` itself
            OSError: if the directory or file cannot be created
        """
        key = property_key(properties)
        while True:
            with self._lock:
                self._wait_for_rotation(path)
                if self._closed:
                    raise NotStartedError()
                self._known[key] = (dict(properties), now)
                entry = self._entries.get(path)
                if entry is not None:
                    return entry

            stream = self._open(path)

            with self._lock:
                if self._closed:
                    stream.close()
                    raise NotStartedError()
                if path in self._rotating:
                    # Rotation began while the file was being opened
                    stream.close()
                    continue
                existing = self._entries.get(path)
                if existing is not None:
                    stream.close()
                    return existing

                entry = CacheEntry(
                    path,
                    stream,
                    properties,
                    created_at=now,
                    queue_size=self.queue_size,
                    encoding=self.encoding,
                    sync=self.sync,
                    stats=self.stats,
                    on_exit=self._discard,
                )
                self._entries[path] = entry
                entry.start()

            self.stats.incr("entries_opened")
            self.logger.debug(f"opened {path}", extra={"ctx_path": path})
            return entry

    def _wait_for_rotation(self, path: str) -> None:
        # Called with the lock held
        while path in self._rotating:
            if self._rotating[path] == threading.get_ident():
                raise DatelogError(f"{path} is being rotated by this thread")
            self._cond.wait()

    def _discard(self, entry: CacheEntry) -> None:
        """Drop ``entry`` from the map unless it was already replaced"""
        with self._lock:
            if self._entries.get(entry.path) is entry:
                del self._entries[entry.path]

    def _close_entries(self, entries: List[CacheEntry]) -> None:
        for entry in entries:
            entry.close()

    def evict_older_than(self, cutoff: datetime) -> List[str]:
        """Close entries created before ``cutoff``; return their paths"""
        with self._lock:
            stale = [e for e in self._entries.values() if e.created_at < cutoff]
            for entry in stale:
                del self._entries[entry.path]

        self._close_entries(stale)
        if stale:
            self.stats.incr("entries_evicted", len(stale))
        return [entry.path for entry in stale]

    @contextmanager
    def rotating(self, paths: Iterable[str]) -> Iterator[List[str]]:
        """
        Close the entries for ``paths`` and keep them closed for the block

        Other threads calling get_or_create() for one of these paths wait
        until the block exits, then open a fresh file. Yields the paths
        whose entries were closed.
        """
        wanted = set(paths)
        owner = threading.get_ident()
        with self._lock:
            for path in wanted:
                self._rotating[path] = owner
            victims = [self._entries.pop(p) for p in list(self._entries) if p in wanted]

        try:
            self._close_entries(victims)
            yield [entry.path for entry in victims]
        finally:
            with self._lock:
                for path in wanted:
                    self._rotating.pop(path, None)
                self._cond.notify_all()

    def property_sets(self) -> List[Dict[str, str]]:
        """Snapshot of the distinct property sets written through this cache"""
        with self._lock:
            return [dict(props) for props, _ in self._known.values()]

    def forget_property_sets(self, last_seen_before: datetime) -> int:
        """Forget property sets with no open file and no write since the cutoff"""
        with self._lock:
            active = {property_key(e.properties) for e in self._entries.values()}
            expired = [
                key
                for key, (_, last_seen) in self._known.items()
                if last_seen < last_seen_before and key not in active
            ]
            for key in expired:
                del self._known[key]
        return len(expired)

    def close_all(self) -> None:
        """Refuse new entries, then drain and close every open entry"""
        with self._lock:
            self._closed = True
            entries = list(self._entries.values())
            self._entries.clear()
            self._known.clear()

        self._close_entries(entries)
