from __future__ import annotations

import pickle
import threading

import pytest

from bedrock.concurrent import MethodCall
from bedrock.concurrent.interceptor import raise_intercepted
from bedrock.concurrent.serialization import (
    describe_failure,
    dumps_result,
    failure_to_exception,
    is_picklable,
    locate_unpicklable,
)
from bedrock.errors import (
    DeferredTimeoutError,
    RemoteInvocationError,
    SerializationError,
    TargetResolutionError,
    UnsupportedRemoteOperationError,
)


class _Unpicklable(Exception):
    def __init__(self, lock: object) -> None:
        super().__init__("holds a lock")
        self.lock = lock


def test_locate_unpicklable_reports_first_bad_position() -> None:
    lock = threading.Lock()
    assert locate_unpicklable("put", ("k", 1)) is None
    positional = locate_unpicklable("put", ("k", lock))
    assert positional is not None and positional.position == 1
    keyword = locate_unpicklable("put", ("k",), {"value": lock})
    assert keyword is not None and keyword.position == "value"
    assert "keyword argument 'value' of put" in str(keyword)


def test_dumps_result_names_the_result_position() -> None:
    with pytest.raises(SerializationError, match="the result of keys"):
        dumps_result("keys", threading.Lock())
    assert is_picklable({"a": 1}) is True
    assert is_picklable(threading.Lock()) is False


def test_dispatch_errors_survive_pickling() -> None:
    # Errors raised where a call executes are reconstructed with their fields.
    errors = [
        UnsupportedRemoteOperationError("NamedCache.add_map_listener"),
        SerializationError("put", 1, "TypeError: nope"),
        RemoteInvocationError("builtins.ValueError", "bad", "trace", operation="op"),
        DeferredTimeoutError("not yet", last_value=3),
    ]
    for error in errors:
        restored = pickle.loads(pickle.dumps(error))
        assert type(restored) is type(error)
        assert str(restored) == str(error)
    assert pickle.loads(pickle.dumps(errors[3])).last_value == 3


def test_failure_to_exception_reraises_dispatch_errors() -> None:
    original = TargetResolutionError("no such method")
    failure = describe_failure(original, category="resolution")
    assert failure["category"] == "resolution"
    assert failure["type"] == "bedrock.errors.TargetResolutionError"
    restored = failure_to_exception(failure, operation="cache.get")
    assert isinstance(restored, TargetResolutionError)


def test_failure_to_exception_restores_the_cause_of_dispatch_errors() -> None:
    # An unpicklable cause still comes back, described by type and message.
    try:
        raise TargetResolutionError("factory failed") from _Unpicklable(threading.Lock())
    except TargetResolutionError as exc:
        failure = describe_failure(exc, category="resolution")
    restored = failure_to_exception(failure)
    assert isinstance(restored, TargetResolutionError)
    assert isinstance(restored.__cause__, RemoteInvocationError)
    assert restored.__cause__.remote_type_name.endswith("_Unpicklable")


def test_failure_to_exception_wraps_other_errors() -> None:
    failure = describe_failure(ValueError("bad value"))
    wrapped = failure_to_exception(failure, operation="cache.put")
    assert isinstance(wrapped, RemoteInvocationError)
    assert wrapped.remote_message == "bad value"
    assert isinstance(wrapped.__cause__, ValueError)
    assert str(wrapped).startswith("Failed to execute cache.put: builtins.ValueError: bad value")


def test_unpicklable_exceptions_still_describe_the_failure() -> None:
    failure = describe_failure(_Unpicklable(threading.Lock()))
    assert failure["exception"] is None
    wrapped = failure_to_exception(failure)
    assert isinstance(wrapped, RemoteInvocationError)
    assert wrapped.__cause__ is None
    assert wrapped.remote_type_name.endswith("_Unpicklable")


def test_method_call_helpers() -> None:
    call = MethodCall("put", ["k", 1], {})
    assert call.args == ("k", 1)
    assert call.with_argument(1, 2).args == ("k", 2)
    assert call.with_args("x", flag=True).kwargs == {"flag": True}
    assert call.describe() == "put/2"
    with pytest.raises(ValueError):
        MethodCall("")


def test_raise_intercepted_never_swallows() -> None:
    original = KeyError("k")
    with pytest.raises(KeyError):
        raise_intercepted(original, None)
    with pytest.raises(LookupError) as raised:
        raise_intercepted(original, LookupError("replaced"))
    assert raised.value.__cause__ is original
