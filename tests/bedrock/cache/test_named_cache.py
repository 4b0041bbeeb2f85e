from __future__ import annotations

import threading
from collections.abc import Iterator

import pytest

from bedrock.cache import CacheEntry, MapEvent, NamedCache, cache_names, get_cache, release_cache


@pytest.fixture
def cache() -> Iterator[NamedCache]:
    yield NamedCache("orders")


def test_basic_map_operations(cache: NamedCache) -> None:
    assert cache.put("a", 1) is None
    assert cache.put("a", 2) == 1
    assert cache.put_if_absent("a", 3) == 2
    assert cache.put_if_absent("b", 3) is None
    assert cache.replace("missing", 1) is None
    assert "missing" not in cache
    assert cache.replace("b", 4) == 3
    assert cache.get_all(["a", "b", "c"]) == {"a": 2, "b": 4}
    assert cache.get("c", "fallback") == "fallback"
    assert cache.contains_value(4) is True
    assert cache.remove("a") == 2
    assert cache.remove("a") is None
    assert len(cache) == 1


def test_listeners_see_inserts_updates_and_deletes(cache: NamedCache) -> None:
    events: list[MapEvent] = []
    cache.add_map_listener(events.append)
    cache.put("a", 1)
    cache.put("a", 2)
    cache.put_all({"b": 1})
    cache.clear()
    assert [(event.kind, event.key) for event in events] == [
        ("inserted", "a"),
        ("updated", "a"),
        ("inserted", "b"),
        ("deleted", "a"),
        ("deleted", "b"),
    ]
    assert events[1].old_value == 1 and events[1].new_value == 2

    cache.put("c", 1)
    events.clear()
    cache.truncate()
    assert events == []
    assert cache.is_empty()

    cache.remove_map_listener(events.append)
    cache.put("d", 1)
    assert events == []


def test_views_are_live(cache: NamedCache) -> None:
    keys = cache.keys()
    cache.put("a", 1)
    assert list(keys) == ["a"]
    assert list(cache.items()) == [("a", 1)]
    assert list(cache.values()) == [1]


def test_entry_processors_run_under_the_cache_lock(cache: NamedCache) -> None:
    def increment(entry: CacheEntry) -> int:
        entry.set_value((entry.value or 0) + 1)
        return entry.value

    def drop(entry: CacheEntry) -> bool:
        present = entry.is_present()
        entry.remove()
        return present

    assert cache.invoke("hits", increment) == 1
    assert cache.invoke("hits", increment) == 2
    cache.put("misses", 5)
    assert cache.invoke_all(None, increment) == {"hits": 3, "misses": 6}
    assert cache.aggregate(None, lambda entries: sum(entry.value for entry in entries)) == 9
    assert cache.aggregate(["hits", "unknown"], len) == 1
    assert cache.invoke_all(["misses", "unknown"], drop) == {"misses": True, "unknown": False}
    assert cache.keys() == {"hits"}


def test_key_locks_exclude_other_holders(cache: NamedCache) -> None:
    assert cache.lock("k") is True
    assert cache.lock("k") is False
    released = threading.Timer(0.05, cache.unlock, args=("k",))
    released.start()
    assert cache.lock("k", wait_seconds=5.0) is True
    released.join()
    assert cache.unlock("k") is True
    assert cache.unlock("k") is False


def test_get_cache_is_a_per_process_singleton() -> None:
    try:
        first = get_cache("named-cache-singleton")
        assert get_cache("named-cache-singleton") is first
        assert "named-cache-singleton" in cache_names()
        assert first.get_cache_service() == "LocalCacheService"
    finally:
        assert release_cache("named-cache-singleton") is True
    assert release_cache("named-cache-singleton") is False


def test_cache_name_is_required() -> None:
    with pytest.raises(ValueError):
        NamedCache("")
