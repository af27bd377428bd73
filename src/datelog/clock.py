"""
Clock abstraction used by the writer and the rotation scheduler

Core code never calls datetime.now() directly. Production code uses
SystemClock; tests use MockClock and move time forward with advance().
"""

import threading
import time
from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Callable, List, Optional

TickCallback = Callable[[datetime], None]


class Ticker(ABC):
    """Handle for a repeating tick registered on a clock"""

    @abstractmethod
    def stop(self) -> None:
        """Stop delivering ticks"""


class Clock(ABC):
    """Source of the current time and of repeating ticks"""

    @abstractmethod
    def now(self) -> datetime:
        """Return the current local time as a naive datetime"""

    @abstractmethod
    def ticker(self, period: timedelta, callback: TickCallback) -> Ticker:
        """Call ``callback(now)`` once per ``period`` until the ticker is stopped"""


class _ThreadTicker(Ticker):
    """Ticker backed by a daemon thread waiting on an event"""

    def __init__(self, clock: Clock, period: timedelta, callback: TickCallback):
        self._clock = clock
        self._interval = period.total_seconds()
        self._callback = callback
        self._stopped = threading.Event()
        self._thread = threading.Thread(
            target=self._run, daemon=True, name="datelog-ticker"
        )
        self._thread.start()

    def _run(self) -> None:
        next_at = time.monotonic() + self._interval
        while not self._stopped.wait(max(0.0, next_at - time.monotonic())):
            next_at += self._interval
            self._callback(self._clock.now())

    def stop(self) -> None:
        self._stopped.set()


class SystemClock(Clock):
    """Wall clock"""

    def now(self) -> datetime:
        return datetime.now()

    def ticker(self, period: timedelta, callback: TickCallback) -> Ticker:
        if period <= timedelta(0):
            raise ValueError("ticker period must be positive")
        return _ThreadTicker(self, period, callback)


class _MockTicker(Ticker):
    def __init__(
        self,
        clock: "MockClock",
        period: timedelta,
        callback: TickCallback,
        next_at: datetime,
    ):
        self.clock = clock
        self.period = period
        self.callback = callback
        self.next_at = next_at

    def stop(self) -> None:
        self.clock._remove_ticker(self)


class MockClock(Clock):
    """
    Manually driven clock for tests

    Time only moves through set() or advance(). Ticks that fall due while
    advancing are delivered synchronously, in order, from the advancing thread,
    with now() reporting the tick's own time while its callback runs.
    """

    def __init__(self, start: Optional[datetime] = None):
        self._now = start or datetime(1970, 1, 1)
        self._lock = threading.Lock()
        self._tickers: List[_MockTicker] = []

    def now(self) -> datetime:
        with self._lock:
            return self._now

    def ticker(self, period: timedelta, callback: TickCallback) -> Ticker:
        if period <= timedelta(0):
            raise ValueError("ticker period must be positive")
        with self._lock:
            ticker = _MockTicker(self, period, callback, self._now + period)
            self._tickers.append(ticker)
        return ticker

    def _remove_ticker(self, ticker: _MockTicker) -> None:
        with self._lock:
            if ticker in self._tickers:
                self._tickers.remove(ticker)

    def advance(self, delta: timedelta) -> None:
        """Move time forward by ``delta``, firing every tick that falls due"""
        if delta < timedelta(0):
            raise ValueError("cannot move a mock clock backwards")

        with self._lock:
            target = self._now + delta

        while True:
            with self._lock:
                due = [t for t in self._tickers if t.next_at <= target]
                if not due:
                    self._now = target
                    return
                ticker = min(due, key=lambda t: t.next_at)
                self._now = ticker.next_at
                ticker.next_at += ticker.period
                fired_at = self._now
            ticker.callback(fired_at)

    def set(self, when: datetime) -> None:
        """Move time forward to ``when``"""
        self.advance(when - self.now())
