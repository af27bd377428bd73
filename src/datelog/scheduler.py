"""
Background rotation: evict stale handles, delete expired files, archive aged ones
"""

import functools
import glob
import os
import queue
import threading
from datetime import datetime
from typing import Callable, Dict, List, Mapping, Optional, Sequence

from .archive import ARCHIVE_SUFFIX, create_archive, is_archive
from .cache import FileCache
from .clock import Clock, Ticker
from .config import RotationConfig
from .logger import get_logger
from .pattern import resolve_path
from .stats import Stats

Archiver = Callable[[str, Sequence[str]], None]

_TICK = object()
_STOP = object()


class RotationScheduler:
    """
    Runs one rotation per period on a daemon thread

    A rotation works on the property sets the cache has seen, in three
    passes: close entries older than ``stale_periods``, delete files at or
    beyond ``delete_days``, then archive files at or beyond ``archive_days``.
    Each pass walks backwards one period at a time from its horizon and
    stops at the first period where no property set has any file.
    """

    def __init__(
        self,
        cache: FileCache,
        config: RotationConfig,
        clock: Clock,
        stats: Optional[Stats] = None,
        archiver: Optional[Archiver] = None,
    ):
        self.cache = cache
        self.config = config
        self.clock = clock
        self.stats = stats or cache.stats
        self.archiver = archiver or functools.partial(
            create_archive, compression_level=config.compression_level
        )
        self.period = config.period

        self._control: "queue.Queue[object]" = queue.Queue()
        self._stopping = threading.Event()
        self._cond = threading.Condition()
        self._tick_pending = False
        self._busy = False
        self._run_lock = threading.Lock()
        self._ticker: Optional[Ticker] = None
        self._thread: Optional[threading.Thread] = None
        self.logger = get_logger("scheduler")

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start ticking"""
        if self.running:
            return

        self._stopping.clear()
        self._control = queue.Queue()
        with self._cond:
            self._tick_pending = False
        self._thread = threading.Thread(
            target=self._loop, daemon=True, name="datelog-scheduler"
        )
        self._thread.start()
        self._ticker = self.clock.ticker(self.period, self._on_tick)

    def stop(self, timeout: Optional[float] = None) -> None:
        """Stop ticking and wait for an in-progress rotation to finish"""
        if self._ticker:
            self._ticker.stop()
            self._ticker = None

        self._stopping.set()
        self._control.put(_STOP)

        if self._thread:
            self._thread.join(timeout)
            self._thread = None

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """Wait until no tick is queued or running"""
        with self._cond:
            return self._cond.wait_for(
                lambda: self._stopping.is_set()
                or not (self._tick_pending or self._busy),
                timeout,
            )

    def _on_tick(self, when: datetime) -> None:
        # Ticks arriving while one is still queued are dropped
        with self._cond:
            if self._tick_pending:
                return
            self._tick_pending = True
        self._control.put(_TICK)

    def _loop(self) -> None:
        self.logger.info("scheduler started")
        try:
            while True:
                self._control.get()
                if self._stopping.is_set():
                    return

                with self._cond:
                    self._tick_pending = False
                    self._busy = True
                try:
                    self.run_once()
                except Exception:
                    self.logger.exception("rotation failed")
                finally:
                    with self._cond:
                        self._busy = False
                        self._cond.notify_all()
        finally:
            with self._cond:
                self._cond.notify_all()
            self.logger.info("scheduler stopped")

    def run_once(self) -> None:
        """Run a single rotation against the current clock time"""
        with self._run_lock:
            now = self.clock.now()

            self.evict_stale(now)
            if self.config.delete_days > 0:
                self.delete_expired(now)
            if self.config.archive_days > 0:
                self.archive_aged(now)

            keep = max(
                self.config.archive_days,
                self.config.delete_days,
                self.config.stale_periods,
            )
            self.cache.forget_property_sets(now - self.period * (keep + 1))
            self.stats.incr("rotations")

    def evict_stale(self, now: datetime) -> List[str]:
        """Close cache entries older than ``stale_periods`` rotation periods"""
        evicted = self.cache.evict_older_than(
            now - self.period * self.config.stale_periods
        )
        for path in evicted:
            self.logger.info(f"evicted {path}", extra={"ctx_path": path})
        return evicted

    def delete_expired(self, now: datetime) -> None:
        """Delete plain and archived files at or past the delete horizon"""
        self._walk_back(now - self.period * self.config.delete_days, self._delete)

    def archive_aged(self, now: datetime) -> None:
        """Archive plain files at or past the archive horizon"""
        self._walk_back(now - self.period * self.config.archive_days, self._archive)

    def _walk_back(
        self, start: datetime, visit: Callable[[Dict[str, Mapping[str, str]]], bool]
    ) -> None:
        property_sets = self.cache.property_sets()
        if not property_sets:
            return

        day = start
        previous = None
        while True:
            prefixes = {
                resolve_path(self.config.pattern, props, day): props
                for props in property_sets
            }
            # A pattern without date tokens resolves the same way every day
            if set(prefixes) == previous:
                return
            if not visit(prefixes):
                return
            previous = set(prefixes)
            day -= self.period

    def _matches(self, prefix: str) -> List[str]:
        return sorted(glob.glob(glob.escape(prefix) + "*"))

    def _remove_files(
        self, files: Sequence[str], counter: Optional[str] = "files_deleted"
    ) -> None:
        for filename in files:
            try:
                os.remove(filename)
            except OSError as e:
                self.stats.incr("delete_errors")
                self.logger.warning(f"remove {filename} error: {e}")
            else:
                if counter:
                    self.stats.incr(counter)
                self.logger.info(f"remove {filename} success")

    def _delete(self, prefixes: Dict[str, Mapping[str, str]]) -> bool:
        found = False
        for prefix in prefixes:
            matches = self._matches(prefix)
            if not matches:
                continue

            found = True
            with self.cache.rotating(matches):
                self._remove_files(matches)
        return found

    def _archive_name(self, prefix: str) -> str:
        name = prefix + ARCHIVE_SUFFIX
        n = 1
        while os.path.exists(name):
            name = f"{prefix}.{n}{ARCHIVE_SUFFIX}"
            n += 1
        return name

    def _archive(self, prefixes: Dict[str, Mapping[str, str]]) -> bool:
        found = False
        for prefix in prefixes:
            matches = [m for m in self._matches(prefix) if not is_archive(m)]
            if not matches:
                continue

            found = True
            # Writers to these paths wait until the originals are gone
            with self.cache.rotating(matches):
                self._archive_prefix(prefix, matches)
        return found

    def _archive_prefix(self, prefix: str, matches: List[str]) -> None:
        archive_name = self._archive_name(prefix)
        try:
            self.archiver(archive_name, matches)
        except Exception as e:
            self.stats.incr("archive_errors")
            self.logger.warning(
                f"create {archive_name} with files {matches} error: {e}",
                extra={"ctx_archive": archive_name},
            )
            return

        self.stats.incr("files_archived", len(matches))
        self.logger.info(
            f"create {archive_name} success with files {matches}",
            extra={"ctx_archive": archive_name},
        )
        self._remove_files(matches, counter=None)
