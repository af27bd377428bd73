"""
Date-sharded log file writer
"""

import threading
from datetime import datetime
from typing import Any, Dict, Mapping, Optional, Union

from .cache import FileCache
from .clock import Clock, SystemClock
from .config import RotationConfig, get_default_config
from .exceptions import (
    DatelogError,
    NotStartedError,
    OverArchiveDaysError,
    OverMaxDelayError,
)
from .logger import get_logger
from .pattern import resolve_path
from .scheduler import Archiver, RotationScheduler
from .stats import Stats

LogTime = Union[datetime, float]

# Attempts to queue one line when its entry closes underneath the caller
_MAX_QUEUE_ATTEMPTS = 3


def _as_local(log_time: LogTime) -> datetime:
    """Convert epoch seconds or aware datetimes to naive local time"""
    if isinstance(log_time, (int, float)):
        return datetime.fromtimestamp(log_time)
    if log_time.tzinfo is not None:
        return log_time.astimezone().replace(tzinfo=None)
    return log_time


class LogFile:
    """
    Writes lines into files named by a pattern, one file per property set and day

    Usage:
        log = LogFile(RotationConfig(
            pattern="logs/{APP}/YYYYMMDD/{APP}_YYYYMMDD_{IP}.log",
            archive_days=7,
            delete_days=90,
        ))
        log.start()
        log.write({"APP": "ids", "IP": "10.0.0.1"}, datetime.now(), "hello")
        log.close()

    start() opens the cache and launches the rotation scheduler; close()
    stops the scheduler and blocks until every accepted line is on disk.
    Calling start() on a started instance closes it and starts afresh.
    """

    def __init__(
        self,
        config: Optional[RotationConfig] = None,
        clock: Optional[Clock] = None,
        archiver: Optional[Archiver] = None,
    ):
        self.config = config or get_default_config()
        self.clock = clock
        self.archiver = archiver
        self.stats = Stats()

        self._lock = threading.Lock()
        self._started = False
        self._cache: Optional[FileCache] = None
        self._scheduler: Optional[RotationScheduler] = None
        self.logger = get_logger("logfile")

    @property
    def started(self) -> bool:
        return self._started

    def start(self) -> None:
        """Allocate the cache and launch the rotation scheduler"""
        with self._lock:
            if self._started:
                self._shutdown()

            if self.clock is None:
                self.clock = SystemClock()

            cache = FileCache(
                queue_size=self.config.queue_size,
                encoding=self.config.encoding,
                sync=self.config.flush,
                file_mode=self.config.file_mode,
                stats=self.stats,
            )
            scheduler = RotationScheduler(
                cache, self.config, self.clock, self.stats, self.archiver
            )
            scheduler.start()

            self._cache = cache
            self._scheduler = scheduler
            self._started = True

    def close(self) -> None:
        """Stop the scheduler, then flush and close every open file"""
        with self._lock:
            if self._started:
                self._shutdown()

    def _shutdown(self) -> None:
        # Flip the flag first so concurrent writers see NotStartedError
        self._started = False
        scheduler, cache = self._scheduler, self._cache

        if scheduler:
            scheduler.stop()
        if cache:
            cache.close_all()

    def __enter__(self) -> "LogFile":
        self.start()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    def resolve(self, properties: Mapping[str, str], log_time: LogTime) -> str:
        """The file a line with these properties and log time goes to"""
        return resolve_path(self.config.pattern, properties, _as_local(log_time))

    def check_log_time(self, log_time: datetime, now: datetime) -> None:
        """
        Reject log times outside the retention windows

        Raises:
            OverArchiveDaysError: older than ``archive_days`` with archiving on
            OverMaxDelayError: older than ``max_delay_days`` with the bound on
        """
        period = self.config.period

        if self.config.archive_days > 0:
            horizon = now - period * self.config.archive_days
            if log_time < horizon:
                raise OverArchiveDaysError(log_time, horizon)

        if self.config.max_delay_days > 0:
            horizon = now - period * self.config.max_delay_days
            if log_time < horizon:
                raise OverMaxDelayError(log_time, horizon)

    def write(
        self, properties: Mapping[str, str], log_time: LogTime, line: str
    ) -> None:
        """
        Queue one line for the file resolved from ``properties`` and ``log_time``

        Returns once the line is queued; the write to disk happens on the
        file's writer thread. Blocks while that file's queue is full.

        Raises:
            NotStartedError: before start() or after close()
            OverArchiveDaysError, OverMaxDelayError: log time rejected
            OSError: the directory or file could not be created
        """
        cache = self._cache
        if not self._started or cache is None:
            raise NotStartedError()

        now = self.clock.now()
        log_time = _as_local(log_time)
        self.check_log_time(log_time, now)

        path = resolve_path(self.config.pattern, properties, log_time)
        for _ in range(_MAX_QUEUE_ATTEMPTS):
            try:
                entry = cache.get_or_create(path, properties, now)
            except NotStartedError:
                # Closed underneath us; wait out a restart and use its cache
                with self._lock:
                    fresh = self._cache if self._started else None
                if fresh is None or fresh is cache:
                    raise
                cache = fresh
                continue
            if entry.write(line):
                return
            # Evicted or failed between lookup and enqueue; reopen
            self.logger.debug(f"entry for {path} closed, reopening")

        raise DatelogError(f"could not queue line for {path}")

    def run_rotation(self) -> None:
        """Run one rotation now, on the calling thread"""
        scheduler = self._scheduler
        if not self._started or scheduler is None:
            raise NotStartedError()
        scheduler.run_once()

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """Wait for scheduled rotations that are queued or running to finish"""
        scheduler = self._scheduler
        if scheduler is None:
            return True
        return scheduler.wait_idle(timeout)

    def open_files(self) -> int:
        cache = self._cache
        return len(cache) if cache is not None and self._started else 0

    def get_stats(self) -> Dict[str, Any]:
        """Counters plus current cache state"""
        return {
            **self.stats.snapshot(),
            "open_entries": self.open_files(),
            "running": self._started,
        }
