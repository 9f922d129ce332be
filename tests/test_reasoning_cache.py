"""Tests for the reasoning correlation cache."""

from __future__ import annotations

import re

from deepseek_bridge.reasoning_cache import DEFAULT_MAX_ENTRIES, ReasoningCache


class TestRecord:
    def test_keyed_by_first_tool_call(self):
        cache = ReasoningCache()
        key = cache.record("because", ["call_1", "call_2"])
        assert key == "call_1"
        assert cache.get("call_1") == "because"
        assert "call_2" not in cache

    def test_synthetic_id_without_tool_calls(self):
        cache = ReasoningCache()
        key = cache.record("because")
        assert key is not None
        assert re.fullmatch(r"response_\d+_[0-9a-z]{9}", key)
        assert cache.get(key) == "because"

    def test_empty_reasoning_not_stored(self):
        cache = ReasoningCache()
        assert cache.record("", ["call_1"]) is None
        assert len(cache) == 0

    def test_synthetic_ids_unique(self):
        ids = {ReasoningCache.new_response_id() for _ in range(100)}
        assert len(ids) == 100


class TestEviction:
    def test_default_capacity(self):
        assert DEFAULT_MAX_ENTRIES == 50

    def test_sixty_inserts_keep_last_fifty(self):
        cache = ReasoningCache()
        for i in range(60):
            cache.put(f"k{i}", f"r{i}")
        removed = cache.evict_over_capacity()
        assert removed == 10
        assert len(cache) == 50
        assert cache.keys() == [f"k{i}" for i in range(10, 60)]

    def test_under_capacity_untouched(self):
        cache = ReasoningCache()
        cache.put("a", "1")
        assert cache.evict_over_capacity() == 0
        assert cache.keys() == ["a"]

    def test_explicit_max(self):
        cache = ReasoningCache()
        for k in "abcde":
            cache.put(k, k)
        cache.evict_over_capacity(max_entries=2)
        assert cache.keys() == ["d", "e"]

    def test_overwrite_keeps_insertion_position(self):
        cache = ReasoningCache(max_entries=2)
        cache.put("a", "1")
        cache.put("b", "2")
        cache.put("a", "3")  # reading or rewriting does not refresh age
        cache.put("c", "4")
        cache.evict_over_capacity()
        assert cache.keys() == ["b", "c"]
        assert cache.get("a") is None


class TestClear:
    def test_clear(self):
        cache = ReasoningCache()
        cache.put("a", "1")
        cache.clear()
        assert len(cache) == 0
        assert cache.get("a") is None
