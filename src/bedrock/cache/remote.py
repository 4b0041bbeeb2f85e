from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from typing import Any

from bedrock.concurrent.callable import RemoteCallableStaticMethod, RemoteMethodInvocation
from bedrock.concurrent.interceptor import (
    CallSiteInterceptor,
    ExecutionSiteInterceptor,
    MethodCall,
    raise_intercepted,
)
from bedrock.concurrent.serialization import is_picklable
from bedrock.errors import UnsupportedRemoteOperationError
from bedrock.options.option import Option
from bedrock.runtime.application import Application

CACHE_FACTORY_MODULE = "bedrock.cache.named_cache"
CACHE_FACTORY = "get_cache"

_ITERABLE_ARGUMENT_METHODS = frozenset({"get_all", "invoke_all", "aggregate"})
_DICT_RESULT_METHODS = frozenset({"get_all", "invoke_all"})


@dataclass(frozen=True, slots=True)
class RemoteMethod:
    name: str
    supported: bool = True


NAMED_CACHE_METHODS: tuple[RemoteMethod, ...] = (
    RemoteMethod("get"),
    RemoteMethod("get_all"),
    RemoteMethod("put"),
    RemoteMethod("put_all"),
    RemoteMethod("put_if_absent"),
    RemoteMethod("replace"),
    RemoteMethod("remove"),
    RemoteMethod("contains_key"),
    RemoteMethod("contains_value"),
    RemoteMethod("size"),
    RemoteMethod("is_empty"),
    RemoteMethod("clear"),
    RemoteMethod("truncate"),
    RemoteMethod("keys"),
    RemoteMethod("items"),
    RemoteMethod("values"),
    RemoteMethod("invoke"),
    RemoteMethod("invoke_all"),
    RemoteMethod("aggregate"),
    RemoteMethod("lock"),
    RemoteMethod("unlock"),
    RemoteMethod("add_map_listener", supported=False),
    RemoteMethod("remove_map_listener", supported=False),
    RemoteMethod("get_cache_service", supported=False),
)


class NamedCacheInterceptor(CallSiteInterceptor, ExecutionSiteInterceptor):
    # Call side: non-picklable iterables and mappings become plain lists and dicts.
    # Execution side: live views and lazy results become snapshots before they are pickled.
    def before_remote_invocation(self, call: MethodCall) -> MethodCall:
        if call.name in _ITERABLE_ARGUMENT_METHODS and call.args:
            keys = call.args[0]
            if keys is not None and not isinstance(keys, (str, bytes)) and not is_picklable(keys):
                return call.with_argument(0, list(keys))
        if call.name == "put_all" and call.args:
            entries = call.args[0]
            if isinstance(entries, Mapping) and type(entries) is not dict:
                return call.with_argument(0, dict(entries))
        return call

    def after_invocation(self, instance: object, call: MethodCall, result: Any) -> Any:
        if result is None:
            return None
        if call.name == "keys":
            return set(result)
        if call.name == "items":
            return dict(result)
        if call.name == "values":
            return list(result)
        if call.name in _DICT_RESULT_METHODS:
            return dict(result)
        return result


class RemoteNamedCache:
    # Proxy for a NamedCache living in a launched application.
    def __init__(
        self,
        application: Application,
        cache_name: str,
        *,
        interceptor: NamedCacheInterceptor | None = None,
    ) -> None:
        if not isinstance(cache_name, str) or not cache_name:
            raise ValueError("RemoteNamedCache.cache_name must be a non-empty string")
        self._application = application
        self._cache_name = cache_name
        self._interceptor = interceptor if interceptor is not None else NamedCacheInterceptor()
        self._producer = RemoteCallableStaticMethod(CACHE_FACTORY_MODULE, CACHE_FACTORY, (cache_name,), cacheable=True)
        self._dispatch = {method.name: method for method in NAMED_CACHE_METHODS}

    @property
    def name(self) -> str:
        return self._cache_name

    @property
    def application(self) -> Application:
        return self._application

    def is_supported(self, name: str) -> bool:
        method = self._dispatch.get(name)
        return method is not None and method.supported

    def get(self, key: Any, default: Any = None) -> Any:
        return self._invoke("get", key, default)

    def get_all(self, keys: Iterable[Any]) -> dict[Any, Any]:
        return self._invoke("get_all", keys)

    def put(self, key: Any, value: Any) -> Any:
        return self._invoke("put", key, value)

    def put_all(self, entries: Mapping[Any, Any]) -> None:
        self._invoke("put_all", entries)

    def put_if_absent(self, key: Any, value: Any) -> Any:
        return self._invoke("put_if_absent", key, value)

    def replace(self, key: Any, value: Any) -> Any:
        return self._invoke("replace", key, value)

    def remove(self, key: Any) -> Any:
        return self._invoke("remove", key)

    def contains_key(self, key: Any) -> bool:
        return self._invoke("contains_key", key)

    def contains_value(self, value: Any) -> bool:
        return self._invoke("contains_value", value)

    def size(self) -> int:
        return self._invoke("size")

    def is_empty(self) -> bool:
        return self._invoke("is_empty")

    def clear(self) -> None:
        self._invoke("clear")

    def truncate(self) -> None:
        self._invoke("truncate")

    def keys(self) -> set[Any]:
        return self._invoke("keys")

    def items(self) -> dict[Any, Any]:
        return self._invoke("items")

    def values(self) -> list[Any]:
        return self._invoke("values")

    def invoke(self, key: Any, processor: Any) -> Any:
        return self._invoke("invoke", key, processor)

    def invoke_all(self, keys: Iterable[Any] | None, processor: Any) -> dict[Any, Any]:
        return self._invoke("invoke_all", keys, processor)

    def aggregate(self, keys: Iterable[Any] | None, aggregator: Any) -> Any:
        return self._invoke("aggregate", keys, aggregator)

    def lock(self, key: Any, wait_seconds: float = 0.0) -> bool:
        return self._invoke("lock", key, wait_seconds)

    def unlock(self, key: Any) -> bool:
        return self._invoke("unlock", key)

    def add_map_listener(self, listener: Any) -> None:
        self._invoke("add_map_listener", listener)

    def remove_map_listener(self, listener: Any) -> None:
        self._invoke("remove_map_listener", listener)

    def get_cache_service(self) -> Any:
        return self._invoke("get_cache_service")

    def with_options(self, *options: Option) -> _BoundRemoteNamedCache:
        # Same cache, invoked with extra options (for example a shorter Timeout).
        return _BoundRemoteNamedCache(self, options)

    def __len__(self) -> int:
        return self.size()

    def __contains__(self, key: object) -> bool:
        return self.contains_key(key)

    def __iter__(self) -> Iterator[Any]:
        return iter(self.keys())

    def __repr__(self) -> str:
        return f"RemoteNamedCache({self._cache_name!r}, application={self._application.display_name!r})"

    def _invoke(self, name: str, *args: Any, options: tuple[Option, ...] = (), **kwargs: Any) -> Any:
        method = self._dispatch.get(name)
        if method is None or not method.supported:
            raise UnsupportedRemoteOperationError(f"NamedCache.{name}")
        call = self._interceptor.before_remote_invocation(MethodCall(name, args, kwargs))
        invocation = RemoteMethodInvocation(
            self._producer,
            call.name,
            call.args,
            call.kwargs,
            self._interceptor,
        )
        try:
            result = self._application.invoke(invocation, *options)
        except Exception as exc:
            raise_intercepted(exc, self._interceptor.on_remote_invocation_exception(call, exc))
        return self._interceptor.after_remote_invocation(call, result)


class _BoundRemoteNamedCache:
    def __init__(self, cache: RemoteNamedCache, options: tuple[Option, ...]) -> None:
        self._cache = cache
        self._options = options

    def __getattr__(self, name: str) -> Any:
        if not self._cache.is_supported(name):
            raise UnsupportedRemoteOperationError(f"NamedCache.{name}")

        def _call(*args: Any, **kwargs: Any) -> Any:
            return self._cache._invoke(name, *args, options=self._options, **kwargs)

        return _call
