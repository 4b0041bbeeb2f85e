from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from typing import Any


@dataclass(frozen=True, slots=True)
class MethodCall:
    # Immutable description of one method call; interceptors return replacements.
    name: str
    args: tuple[Any, ...] = ()
    kwargs: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name:
            raise ValueError("MethodCall.name must be a non-empty string")
        if not isinstance(self.args, tuple):
            object.__setattr__(self, "args", tuple(self.args))
        if not isinstance(self.kwargs, dict):
            object.__setattr__(self, "kwargs", dict(self.kwargs))

    def with_args(self, *args: Any, **kwargs: Any) -> MethodCall:
        return replace(self, args=tuple(args), kwargs=dict(kwargs))

    def with_argument(self, index: int, value: Any) -> MethodCall:
        args = list(self.args)
        args[index] = value
        return replace(self, args=tuple(args))

    def describe(self) -> str:
        return f"{self.name}/{len(self.args)}"


class CallSiteInterceptor:
    # Caller-side hooks around a remote invocation; defaults pass values through.
    def before_remote_invocation(self, call: MethodCall) -> MethodCall:
        return call

    def after_remote_invocation(self, call: MethodCall, result: Any) -> Any:
        return result

    def on_remote_invocation_exception(self, call: MethodCall, exception: BaseException) -> BaseException:
        return exception


class ExecutionSiteInterceptor:
    # Hooks run where the method executes. Implementations must be picklable.
    def before_invocation(self, instance: object, call: MethodCall) -> MethodCall:
        return call

    def after_invocation(self, instance: object, call: MethodCall, result: Any) -> Any:
        return result

    def on_invocation_exception(
        self,
        instance: object,
        call: MethodCall,
        exception: BaseException,
    ) -> BaseException:
        return exception


def raise_intercepted(original: BaseException, replacement: BaseException | None) -> None:
    # Exception hooks may replace or annotate an exception, never swallow it.
    if replacement is None or replacement is original:
        raise original
    raise replacement from original
