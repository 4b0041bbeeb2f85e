from __future__ import annotations

import time
from collections.abc import Callable, ItemsView, Iterable, KeysView, Mapping, ValuesView
from dataclasses import dataclass
from threading import Condition, RLock
from typing import Any

_MISSING = object()


@dataclass(frozen=True, slots=True)
class MapEvent:
    # kind: "inserted" | "updated" | "deleted"
    cache_name: str
    kind: str
    key: Any
    old_value: Any = None
    new_value: Any = None


class CacheEntry:
    # Mutable view of one entry handed to entry processors while the cache lock is held.
    __slots__ = ("_cache", "_key", "_value", "_present")

    def __init__(self, cache: NamedCache, key: Any, value: Any, present: bool) -> None:
        self._cache = cache
        self._key = key
        self._value = value
        self._present = present

    @property
    def key(self) -> Any:
        return self._key

    @property
    def value(self) -> Any:
        return self._value if self._present else None

    def is_present(self) -> bool:
        return self._present

    def set_value(self, value: Any) -> None:
        self._cache._store(self._key, value)
        self._value = value
        self._present = True

    def remove(self) -> None:
        if self._present:
            self._cache._delete(self._key)
        self._value = None
        self._present = False


EntryProcessor = Callable[[CacheEntry], Any]
Aggregator = Callable[[list[CacheEntry]], Any]
MapListener = Callable[[MapEvent], None]


class NamedCache:
    # In-process cache hosted by a launched application; reached remotely via RemoteNamedCache.
    def __init__(self, name: str) -> None:
        if not isinstance(name, str) or not name:
            raise ValueError("NamedCache.name must be a non-empty string")
        self._name = name
        self._data: dict[Any, Any] = {}
        self._lock = RLock()
        self._locks_changed = Condition(self._lock)
        self._locked: set[Any] = set()
        self._listeners: list[MapListener] = []
        self._service = "LocalCacheService"

    @property
    def name(self) -> str:
        return self._name

    def get(self, key: Any, default: Any = None) -> Any:
        with self._lock:
            return self._data.get(key, default)

    def get_all(self, keys: Iterable[Any]) -> dict[Any, Any]:
        with self._lock:
            return {key: self._data[key] for key in keys if key in self._data}

    def put(self, key: Any, value: Any) -> Any:
        with self._lock:
            previous = self._data.get(key)
            self._store(key, value)
            return previous

    def put_all(self, entries: Mapping[Any, Any]) -> None:
        with self._lock:
            for key, value in entries.items():
                self._store(key, value)

    def put_if_absent(self, key: Any, value: Any) -> Any:
        with self._lock:
            if key in self._data:
                return self._data[key]
            self._store(key, value)
            return None

    def replace(self, key: Any, value: Any) -> Any:
        with self._lock:
            if key not in self._data:
                return None
            previous = self._data[key]
            self._store(key, value)
            return previous

    def remove(self, key: Any) -> Any:
        with self._lock:
            if key not in self._data:
                return None
            previous = self._data[key]
            self._delete(key)
            return previous

    def contains_key(self, key: Any) -> bool:
        with self._lock:
            return key in self._data

    def contains_value(self, value: Any) -> bool:
        with self._lock:
            return any(existing == value for existing in self._data.values())

    def size(self) -> int:
        with self._lock:
            return len(self._data)

    def is_empty(self) -> bool:
        return self.size() == 0

    def clear(self) -> None:
        # Removes entries one by one; listeners see a delete per entry.
        with self._lock:
            for key in list(self._data):
                self._delete(key)

    def truncate(self) -> None:
        # Removes all entries without raising events.
        with self._lock:
            self._data.clear()

    def keys(self) -> KeysView[Any]:
        # Live view; not picklable.
        return self._data.keys()

    def items(self) -> ItemsView[Any, Any]:
        return self._data.items()

    def values(self) -> ValuesView[Any]:
        return self._data.values()

    def invoke(self, key: Any, processor: EntryProcessor) -> Any:
        with self._lock:
            return processor(self._entry(key))

    def invoke_all(self, keys: Iterable[Any] | None, processor: EntryProcessor) -> dict[Any, Any]:
        with self._lock:
            selected = list(self._data) if keys is None else list(keys)
            return {key: processor(self._entry(key)) for key in selected}

    def aggregate(self, keys: Iterable[Any] | None, aggregator: Aggregator) -> Any:
        with self._lock:
            selected = list(self._data) if keys is None else [key for key in keys if key in self._data]
            return aggregator([self._entry(key) for key in selected])

    def lock(self, key: Any, wait_seconds: float = 0.0) -> bool:
        deadline = time.monotonic() + max(0.0, wait_seconds)
        with self._locks_changed:
            while key in self._locked:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return False
                self._locks_changed.wait(remaining)
            self._locked.add(key)
            return True

    def unlock(self, key: Any) -> bool:
        with self._locks_changed:
            if key not in self._locked:
                return False
            self._locked.remove(key)
            self._locks_changed.notify_all()
            return True

    def add_map_listener(self, listener: MapListener) -> None:
        with self._lock:
            self._listeners.append(listener)

    def remove_map_listener(self, listener: MapListener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def get_cache_service(self) -> str:
        return self._service

    def __len__(self) -> int:
        return self.size()

    def __contains__(self, key: object) -> bool:
        return self.contains_key(key)

    def __repr__(self) -> str:
        return f"NamedCache({self._name!r}, size={self.size()})"

    def _entry(self, key: Any) -> CacheEntry:
        present = key in self._data
        return CacheEntry(self, key, self._data.get(key), present)

    def _store(self, key: Any, value: Any) -> None:
        previous = self._data.get(key, _MISSING)
        self._data[key] = value
        if previous is _MISSING:
            self._notify(MapEvent(self._name, "inserted", key, None, value))
        else:
            self._notify(MapEvent(self._name, "updated", key, previous, value))

    def _delete(self, key: Any) -> None:
        previous = self._data.pop(key)
        self._notify(MapEvent(self._name, "deleted", key, previous, None))

    def _notify(self, event: MapEvent) -> None:
        for listener in list(self._listeners):
            listener(event)


_CACHES: dict[str, NamedCache] = {}
_CACHES_LOCK = RLock()


def get_cache(name: str) -> NamedCache:
    # Per-process singleton per cache name.
    with _CACHES_LOCK:
        cache = _CACHES.get(name)
        if cache is None:
            cache = NamedCache(name)
            _CACHES[name] = cache
        return cache


def cache_names() -> list[str]:
    with _CACHES_LOCK:
        return sorted(_CACHES)


def release_cache(name: str) -> bool:
    with _CACHES_LOCK:
        return _CACHES.pop(name, None) is not None
