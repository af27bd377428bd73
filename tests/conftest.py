"""
Shared fixtures for datelog tests
"""

import pytest

from datelog import LogFile, MockClock, RotationConfig

from .helpers import PATTERN, T0


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    """Run the test inside an empty directory so relative patterns land there"""
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def clock():
    return MockClock(T0)


@pytest.fixture
def make_log_file(workdir, clock):
    """Build started LogFiles on the mock clock and close them after the test"""
    created = []

    def factory(**overrides):
        overrides.setdefault("pattern", PATTERN)
        log_file = LogFile(RotationConfig(**overrides), clock=clock)
        log_file.start()
        created.append(log_file)
        return log_file

    yield factory

    for log_file in created:
        log_file.close()
