"""
Tests for the file handle cache and its writer threads
"""

import os
import stat
import threading
from datetime import datetime, timedelta
from unittest.mock import MagicMock

import pytest

from datelog.cache import FileCache, normalize_line, property_key
from datelog.exceptions import DatelogError, NotStartedError

from .helpers import read, wait_until

NOW = datetime(2020, 10, 21, 18, 0, 54)


@pytest.fixture
def cache():
    cache = FileCache(queue_size=10)
    yield cache
    cache.close_all()


class TestNormalizeLine:
    @pytest.mark.parametrize(
        "line, expected",
        [("abc", "abc\n"), ("abc\n", "abc\n"), ("abc\n\n", "abc\n"), ("", "\n")],
    )
    def test_exactly_one_trailing_newline(self, line, expected):
        assert normalize_line(line) == expected


class TestFileCache:
    def test_creates_parent_directories(self, cache, tmp_path):
        path = str(tmp_path / "a" / "b" / "c.log")
        cache.get_or_create(path, {"APP": "x"}, NOW)

        assert os.path.isfile(path)

    def test_file_is_private(self, cache, tmp_path):
        path = str(tmp_path / "private.log")
        cache.get_or_create(path, {}, NOW)

        assert stat.S_IMODE(os.stat(path).st_mode) == 0o600

    def test_same_path_returns_same_entry(self, cache, tmp_path):
        path = str(tmp_path / "same.log")
        first = cache.get_or_create(path, {"APP": "x"}, NOW)
        second = cache.get_or_create(path, {"APP": "x"}, NOW + timedelta(hours=1))

        assert first is second
        assert first.created_at == NOW
        assert len(cache) == 1

    def test_concurrent_creation_yields_one_entry(self, cache, tmp_path):
        path = str(tmp_path / "race.log")
        barrier = threading.Barrier(8)
        entries = []

        def worker():
            barrier.wait()
            entries.append(cache.get_or_create(path, {"APP": "x"}, NOW))

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len({id(e) for e in entries}) == 1
        assert cache.stats.get("entries_opened") == 1

    def test_close_flushes_queued_lines_in_order(self, cache, tmp_path):
        path = str(tmp_path / "order.log")
        entry = cache.get_or_create(path, {}, NOW)
        for i in range(100):
            assert entry.write(f"line {i}")

        entry.close()

        assert read(path) == "".join(f"line {i}\n" for i in range(100))
        assert path not in cache

    def test_write_after_close_is_refused(self, cache, tmp_path):
        entry = cache.get_or_create(str(tmp_path / "closed.log"), {}, NOW)
        entry.close()

        assert entry.closed
        assert entry.write("late") is False

    def test_closed_cache_raises_not_started(self, cache, tmp_path):
        cache.close_all()

        with pytest.raises(NotStartedError):
            cache.get_or_create(str(tmp_path / "x.log"), {}, NOW)

    def test_open_failure_propagates(self, cache, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("not a directory")

        with pytest.raises(OSError):
            cache.get_or_create(str(blocker / "x.log"), {}, NOW)

    def test_write_error_removes_entry(self, cache, tmp_path):
        path = str(tmp_path / "broken.log")
        entry = cache.get_or_create(path, {}, NOW)
        real_stream = entry._stream
        real_stream.close()
        entry._stream = MagicMock()
        entry._stream.write.side_effect = OSError("disk full")

        entry.write("lost")

        assert wait_until(lambda: path not in cache)
        assert entry.closed
        assert cache.stats.get("write_errors") == 1

        replacement = cache.get_or_create(path, {}, NOW)
        assert replacement is not entry

    def test_evict_older_than(self, cache, tmp_path):
        old = cache.get_or_create(str(tmp_path / "old.log"), {"K": "old"}, NOW)
        old.write("kept on disk")
        young = cache.get_or_create(
            str(tmp_path / "young.log"), {"K": "young"}, NOW + timedelta(days=2)
        )

        evicted = cache.evict_older_than(NOW + timedelta(days=1))

        assert evicted == [old.path]
        assert old.closed and not young.closed
        assert read(old.path) == "kept on disk\n"
        assert cache.stats.get("entries_evicted") == 1

    def test_rotating_closes_matching_entries(self, cache, tmp_path):
        a = cache.get_or_create(str(tmp_path / "a.log"), {"K": "a"}, NOW)
        b = cache.get_or_create(str(tmp_path / "b.log"), {"K": "b"}, NOW)

        with cache.rotating([a.path, str(tmp_path / "other.log")]) as closed:
            assert closed == [a.path]
            assert a.closed and not b.closed
            assert a.path not in cache

    def test_rotating_path_is_not_reopened_until_released(self, cache, tmp_path):
        path = str(tmp_path / "rotated.log")
        entry = cache.get_or_create(path, {"K": "v"}, NOW)
        entry.write("archived")
        reopened = []

        def late_writer():
            late = cache.get_or_create(path, {"K": "v"}, NOW)
            late.write("late")
            reopened.append(late)

        with cache.rotating([path]):
            assert read(path) == "archived\n"
            writer = threading.Thread(target=late_writer)
            writer.start()
            writer.join(0.2)
            assert writer.is_alive()
            os.remove(path)

        writer.join(5.0)
        assert not writer.is_alive()
        reopened[0].close()
        assert reopened[0] is not entry
        assert read(path) == "late\n"

    def test_rotating_thread_cannot_reopen_its_own_paths(self, cache, tmp_path):
        path = str(tmp_path / "self.log")

        with cache.rotating([path]):
            with pytest.raises(DatelogError):
                cache.get_or_create(path, {}, NOW)

        assert cache.get_or_create(path, {}, NOW).path == path

    def test_property_sets_survive_eviction(self, cache, tmp_path):
        cache.get_or_create(str(tmp_path / "1.log"), {"APP": "a"}, NOW)
        cache.get_or_create(str(tmp_path / "2.log"), {"APP": "a"}, NOW)
        cache.get_or_create(str(tmp_path / "3.log"), {"APP": "b"}, NOW)
        cache.evict_older_than(NOW + timedelta(days=1))

        sets = cache.property_sets()
        assert sorted(s["APP"] for s in sets) == ["a", "b"]

    def test_forget_property_sets(self, cache, tmp_path):
        entry = cache.get_or_create(str(tmp_path / "1.log"), {"APP": "open"}, NOW)
        cache.get_or_create(str(tmp_path / "2.log"), {"APP": "gone"}, NOW)
        with cache.rotating([str(tmp_path / "2.log")]):
            pass

        assert cache.forget_property_sets(NOW + timedelta(days=10)) == 1
        assert cache.property_sets() == [entry.properties]

    def test_property_key_ignores_order(self):
        assert property_key({"a": "1", "b": "2"}) == property_key({"b": "2", "a": "1"})
