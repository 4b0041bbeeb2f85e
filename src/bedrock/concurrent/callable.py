from __future__ import annotations

import importlib
import inspect
from collections.abc import Mapping
from dataclasses import dataclass, field
from threading import Lock
from typing import Any, Generic, TypeVar

from bedrock.concurrent.interceptor import ExecutionSiteInterceptor, MethodCall, raise_intercepted
from bedrock.concurrent.serialization import dumps
from bedrock.errors import TargetResolutionError

T = TypeVar("T")


class RemoteCallable(Generic[T]):
    # Picklable unit of work executed by the receiving side of a channel.
    __slots__ = ()

    def call(self) -> T:
        raise NotImplementedError("RemoteCallable.call must be implemented")

    def describe(self) -> str:
        return type(self).__name__


@dataclass(frozen=True, slots=True)
class RemoteCallableStaticMethod(RemoteCallable[T]):
    # Imports `module` where it executes and calls `name(*args)`; `name` may be dotted ("Class.factory").
    module: str
    name: str
    args: tuple[Any, ...] = ()
    cacheable: bool = False

    def __post_init__(self) -> None:
        if not isinstance(self.module, str) or not self.module:
            raise ValueError("RemoteCallableStaticMethod.module must be a non-empty string")
        if not isinstance(self.name, str) or not self.name:
            raise ValueError("RemoteCallableStaticMethod.name must be a non-empty string")
        if not isinstance(self.args, tuple):
            object.__setattr__(self, "args", tuple(self.args))

    @classmethod
    def of(cls, module: str, name: str, *args: Any, cacheable: bool = False) -> RemoteCallableStaticMethod[Any]:
        return cls(module, name, tuple(args), cacheable)

    @classmethod
    def from_target(cls, target: str, *args: Any, cacheable: bool = False) -> RemoteCallableStaticMethod[Any]:
        # "package.module:attribute" form used in configuration.
        module, _, name = target.partition(":")
        if not module or not name:
            raise ValueError(f"target '{target}' must use module.path:attribute format")
        return cls(module, name, tuple(args), cacheable)

    def call(self) -> T:
        target: Any = importlib.import_module(self.module)
        for part in self.name.split("."):
            target = getattr(target, part)
        return target(*self.args)

    def describe(self) -> str:
        return f"{self.module}:{self.name}"

    def signature(self) -> bytes:
        # Producer cache key; arguments participate through their pickled form.
        return dumps((self.module, self.name, self.args))


_PRODUCER_CACHE: dict[bytes, object] = {}
_PRODUCER_LOCK = Lock()


def produce(producer: RemoteCallable[Any]) -> object:
    # Evaluates a producer, reusing the per-process cached target when the producer is cacheable.
    signature = getattr(producer, "signature", None)
    if not getattr(producer, "cacheable", False) or not callable(signature):
        return producer.call()
    key = signature()
    with _PRODUCER_LOCK:
        if key in _PRODUCER_CACHE:
            return _PRODUCER_CACHE[key]
    target = producer.call()
    with _PRODUCER_LOCK:
        return _PRODUCER_CACHE.setdefault(key, target)


def clear_producer_cache() -> None:
    with _PRODUCER_LOCK:
        _PRODUCER_CACHE.clear()


@dataclass(frozen=True, slots=True)
class RemoteMethodInvocation(RemoteCallable[Any]):
    # Produces a target where it executes and invokes `method` on it through the interceptor.
    producer: RemoteCallable[Any]
    method: str
    args: tuple[Any, ...] = ()
    kwargs: Mapping[str, Any] = field(default_factory=dict)
    interceptor: ExecutionSiteInterceptor | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.producer, RemoteCallable):
            raise ValueError("RemoteMethodInvocation.producer must be a RemoteCallable")
        if not isinstance(self.method, str) or not self.method:
            raise ValueError("RemoteMethodInvocation.method must be a non-empty string")
        if not isinstance(self.args, tuple):
            object.__setattr__(self, "args", tuple(self.args))
        if not isinstance(self.kwargs, dict):
            object.__setattr__(self, "kwargs", dict(self.kwargs))

    def describe(self) -> str:
        return f"{self.producer.describe()}.{self.method}"

    def call(self) -> Any:
        try:
            target = produce(self.producer)
        except Exception as exc:
            raise TargetResolutionError(
                f"Failed to produce the target of {self.describe()}: {type(exc).__name__}: {exc}"
            ) from exc
        if target is None:
            raise TargetResolutionError(f"The producer of {self.describe()} returned None")

        method_call = MethodCall(self.method, self.args, self.kwargs)
        if self.interceptor is not None:
            method_call = self.interceptor.before_invocation(target, method_call)
        bound = resolve_method(target, method_call)
        try:
            result = bound(*method_call.args, **method_call.kwargs)
        except Exception as exc:
            if self.interceptor is None:
                raise
            raise_intercepted(exc, self.interceptor.on_invocation_exception(target, method_call, exc))
        if self.interceptor is not None:
            result = self.interceptor.after_invocation(target, method_call, result)
        return result


def resolve_method(target: object, call: MethodCall) -> Any:
    # Exact-name lookup; the arguments must bind to the method signature.
    method = getattr(target, call.name, None)
    if method is None or not callable(method):
        raise TargetResolutionError(
            f"Failed to find a method {call.name} on {type(target).__name__}"
        )
    try:
        signature = inspect.signature(method)
    except (TypeError, ValueError):
        return method
    try:
        signature.bind(*call.args, **call.kwargs)
    except TypeError as exc:
        raise TargetResolutionError(
            f"Failed to find a compatible method {type(target).__name__}.{call.name} "
            f"for {len(call.args)} positional argument(s): {exc}"
        ) from exc
    return method
