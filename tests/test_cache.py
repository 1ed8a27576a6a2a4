"""Tests for loom.cache."""
from __future__ import annotations

import pytest

from loom.cache import TimelineCache, logs_fingerprint
from loom.timeline import RawLog, build_timeline

from conftest import jsonl, record


def _builder(calls):
    def build(raw_logs):
        calls.append(len(raw_logs))
        return build_timeline("sess-1", None, raw_logs)
    return build


class TestFingerprint:
    def test_stable(self):
        logs = [jsonl([record("m1", "user", "a", 0)])]
        assert logs_fingerprint(logs) == logs_fingerprint(list(logs))

    def test_changes_with_content(self):
        a = [jsonl([record("m1", "user", "a", 0)])]
        b = [jsonl([record("m1", "user", "b", 0)])]
        assert logs_fingerprint(a) != logs_fingerprint(b)

    def test_agent_id_counts(self):
        text = jsonl([record("m1", "user", "a", 0)])
        assert logs_fingerprint([RawLog(text)]) != logs_fingerprint([RawLog(text, "agent-1")])

    def test_lines_and_text_agree(self):
        text = jsonl([record("m1", "user", "a", 0)]).rstrip("\n")
        assert logs_fingerprint([text]) == logs_fingerprint([text.splitlines()])


class TestTimelineCache:
    def test_hit_reuses_timeline(self):
        cache, calls = TimelineCache(), []
        logs = [jsonl([record("m1", "user", "a", 0)])]
        first = cache.get_or_build("sess-1", logs, _builder(calls))
        second = cache.get_or_build("sess-1", logs, _builder(calls))
        assert first is second
        assert calls == [1]
        assert (cache.hits, cache.misses) == (1, 1)

    def test_rebuild_when_logs_change(self):
        cache, calls = TimelineCache(), []
        cache.get_or_build("sess-1", [jsonl([record("m1", "user", "a", 0)])], _builder(calls))
        grown = [jsonl([record("m1", "user", "a", 0), record("m2", "user", "b", 1)])]
        tl = cache.get_or_build("sess-1", grown, _builder(calls))
        assert len(tl) == 2
        assert len(calls) == 2

    def test_invalidate(self):
        cache, calls = TimelineCache(), []
        logs = [jsonl([record("m1", "user", "a", 0)])]
        cache.get_or_build("sess-1", logs, _builder(calls))
        cache.invalidate("sess-1")
        assert "sess-1" not in cache
        cache.get_or_build("sess-1", logs, _builder(calls))
        assert len(calls) == 2
        cache.invalidate("missing")

    def test_lru_eviction(self):
        cache, calls = TimelineCache(maxsize=2), []
        logs = [jsonl([record("m1", "user", "a", 0)])]
        cache.get_or_build("a", logs, _builder(calls))
        cache.get_or_build("b", logs, _builder(calls))
        cache.get_or_build("a", logs, _builder(calls))
        cache.get_or_build("c", logs, _builder(calls))
        assert "a" in cache
        assert "b" not in cache
        assert len(cache) == 2

    def test_clear(self):
        cache = TimelineCache()
        cache.get_or_build("a", [], _builder([]))
        cache.clear()
        assert len(cache) == 0

    def test_bad_maxsize(self):
        with pytest.raises(ValueError):
            TimelineCache(maxsize=0)
