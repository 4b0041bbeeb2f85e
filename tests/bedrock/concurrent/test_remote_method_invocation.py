from __future__ import annotations

from collections.abc import Iterator
from typing import Any

import pytest

from bedrock.concurrent import (
    ExecutionSiteInterceptor,
    MethodCall,
    RemoteCallableStaticMethod,
    RemoteMethodInvocation,
    channel_pair,
    clear_producer_cache,
    produce,
    resolve_method,
)
from bedrock.errors import TargetResolutionError

_CREATED: list[_Counter] = []


class _Counter:
    def __init__(self) -> None:
        self.value = 0
        _CREATED.append(self)

    def increment(self, by: int = 1) -> int:
        self.value += by
        return self.value

    def fail(self) -> None:
        raise ValueError("counter failure")


def _nothing() -> None:
    return None


def _broken_factory() -> _Counter:
    raise OSError("factory offline")


class _Doubling(ExecutionSiteInterceptor):
    def before_invocation(self, instance: object, call: MethodCall) -> MethodCall:
        if not call.args:
            return call
        return call.with_argument(0, call.args[0] * 2)

    def after_invocation(self, instance: object, call: MethodCall, result: Any) -> Any:
        return f"value={result}"

    def on_invocation_exception(self, instance: object, call: MethodCall, exception: BaseException) -> BaseException:
        return LookupError(f"{call.describe()} failed")


@pytest.fixture(autouse=True)
def _fresh_producers() -> Iterator[None]:
    clear_producer_cache()
    _CREATED.clear()
    yield
    clear_producer_cache()


def _producer(cacheable: bool) -> RemoteCallableStaticMethod[_Counter]:
    return RemoteCallableStaticMethod(__name__, "_Counter", cacheable=cacheable)


def test_cacheable_producer_reuses_target() -> None:
    # Repeated invocations see the same produced instance.
    first = RemoteMethodInvocation(_producer(True), "increment", (2,))
    second = RemoteMethodInvocation(_producer(True), "increment", kwargs={"by": 3})
    assert first.call() == 2
    assert second.call() == 5
    assert len(_CREATED) == 1
    assert produce(_producer(True)) is _CREATED[0]


def test_non_cacheable_producer_builds_a_new_target_each_time() -> None:
    invocation = RemoteMethodInvocation(_producer(False), "increment")
    assert invocation.call() == 1
    assert invocation.call() == 1
    assert len(_CREATED) == 2


def test_describe_names_producer_and_method() -> None:
    invocation = RemoteMethodInvocation(_producer(False), "increment")
    assert invocation.describe() == f"{__name__}:_Counter.increment"


def test_missing_method_is_a_resolution_error() -> None:
    with pytest.raises(TargetResolutionError, match="Failed to find a method decrement"):
        RemoteMethodInvocation(_producer(False), "decrement").call()


def test_incompatible_arguments_are_a_resolution_error() -> None:
    with pytest.raises(TargetResolutionError, match="compatible method _Counter.increment"):
        RemoteMethodInvocation(_producer(False), "increment", (1, 2, 3)).call()


def test_producer_failures_are_resolution_errors() -> None:
    with pytest.raises(TargetResolutionError, match="factory offline") as raised:
        RemoteMethodInvocation(RemoteCallableStaticMethod(__name__, "_broken_factory"), "increment").call()
    assert isinstance(raised.value.__cause__, OSError)
    with pytest.raises(TargetResolutionError, match="returned None"):
        RemoteMethodInvocation(RemoteCallableStaticMethod(__name__, "_nothing"), "increment").call()


def test_producer_failure_keeps_its_cause_across_a_channel() -> None:
    # The resolution error comes back with the producer's own exception chained.
    local, remote = channel_pair(name="invocation-test")
    try:
        invocation = RemoteMethodInvocation(RemoteCallableStaticMethod(__name__, "_broken_factory"), "increment")
        with pytest.raises(TargetResolutionError, match="factory offline") as raised:
            local.submit(invocation).result(5)
        assert isinstance(raised.value.__cause__, OSError)
        assert str(raised.value.__cause__) == "factory offline"
    finally:
        local.close()
        remote.close()


def test_method_exceptions_propagate_unchanged_without_interceptor() -> None:
    with pytest.raises(ValueError, match="counter failure"):
        RemoteMethodInvocation(_producer(False), "fail").call()


def test_execution_interceptor_rewrites_arguments_results_and_errors() -> None:
    interceptor = _Doubling()
    assert RemoteMethodInvocation(_producer(True), "increment", (4,), interceptor=interceptor).call() == "value=8"

    failing = RemoteMethodInvocation(_producer(True), "fail", interceptor=interceptor)
    with pytest.raises(LookupError, match="fail/0 failed") as raised:
        failing.call()
    assert isinstance(raised.value.__cause__, ValueError)


def test_resolve_method_rejects_non_callables() -> None:
    target = _Counter()
    with pytest.raises(TargetResolutionError):
        resolve_method(target, MethodCall("value"))
    assert resolve_method(target, MethodCall("increment", (1,)))() == 1


def test_invocation_validates_its_fields() -> None:
    with pytest.raises(ValueError):
        RemoteMethodInvocation(_producer(False), "")
    with pytest.raises(ValueError):
        RemoteMethodInvocation(object(), "increment")  # type: ignore[arg-type]
