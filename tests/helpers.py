"""
Constants and helpers shared by the test modules
"""

import time
from datetime import datetime, timedelta

DAY = timedelta(days=1)
T0 = datetime(2020, 10, 21, 18, 0, 54)
PATTERN = "logs/{APP}/YYYYMMDD/{APP}_YYYYMMDD_{IP}.log"
PROPS = {"APP": "ids", "IP": "192.168.0.1"}


def wait_until(predicate, timeout: float = 5.0, interval: float = 0.01) -> bool:
    """Poll ``predicate`` until it is true or ``timeout`` expires"""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


def read(path) -> str:
    with open(path, "r", encoding="utf-8") as f:
        return f.read()


def advance_days(log_file, clock, days: int) -> None:
    """Advance one day at a time, letting each scheduled rotation finish"""
    for _ in range(days):
        clock.advance(DAY)
        assert log_file.wait_idle(timeout=5.0)
