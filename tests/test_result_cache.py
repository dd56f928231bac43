"""
Tests for result_cache.py.

Covers:
  - empty cache returns None
  - put/get returns an equal but independent ComparisonResult
  - last write wins
  - clear()
"""
from __future__ import annotations

import json

from comparison import synthesize
from models import ProductDescriptor
from result_cache import SLOT_KEY, ResultCache


def make_result(name="Dish Soap", score=45):
    original = ProductDescriptor(name=name, brand="Acme", price="", image="", sustainability_score=score)
    alternative = ProductDescriptor(name="Refill", brand="Leaf", price="$4.50", image="", sustainability_score=85)
    return synthesize(original, alternative)


class TestResultCache:
    def test_empty(self):
        cache = ResultCache()
        assert cache.get() is None
        assert cache.get_text() is None
        assert cache.key == SLOT_KEY == "comparisonData"

    def test_put_get(self):
        cache = ResultCache()
        result = make_result()
        cache.put(result)
        assert cache.get() == result
        assert json.loads(cache.get_text())["original"]["name"] == "Dish Soap"

    def test_get_returns_fresh_object(self):
        cache = ResultCache()
        cache.put(make_result())
        first = cache.get()
        first.alternatives.clear()
        assert len(cache.get().alternatives) == 1

    def test_last_write_wins(self):
        cache = ResultCache()
        cache.put(make_result("First"))
        cache.put(make_result("Second"))
        assert cache.get().original.name == "Second"

    def test_clear(self):
        cache = ResultCache()
        cache.put(make_result())
        cache.clear()
        assert cache.get() is None
