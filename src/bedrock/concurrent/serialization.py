from __future__ import annotations

import pickle
import traceback
from collections.abc import Mapping
from typing import Any

from bedrock.errors import RemoteDispatchError, RemoteInvocationError, SerializationError

_PICKLE_ERRORS = (pickle.PicklingError, TypeError, AttributeError)


def dumps(value: object) -> bytes:
    return pickle.dumps(value, protocol=pickle.HIGHEST_PROTOCOL)


def loads(payload: bytes) -> Any:
    return pickle.loads(payload)


def is_picklable(value: object) -> bool:
    try:
        dumps(value)
    except _PICKLE_ERRORS:
        return False
    return True


def pickling_problem(value: object) -> str | None:
    try:
        dumps(value)
    except _PICKLE_ERRORS as exc:
        return f"{type(exc).__name__}: {exc}"
    return None


def locate_unpicklable(
    method: str,
    args: tuple[Any, ...],
    kwargs: Mapping[str, Any] | None = None,
) -> SerializationError | None:
    # First argument (positional, then keyword) that cannot be pickled.
    for index, value in enumerate(args):
        problem = pickling_problem(value)
        if problem is not None:
            return SerializationError(method, index, problem)
    for name, value in (kwargs or {}).items():
        problem = pickling_problem(value)
        if problem is not None:
            return SerializationError(method, name, problem)
    return None


def dumps_callable(remote_callable: object) -> bytes:
    try:
        return dumps(remote_callable)
    except _PICKLE_ERRORS as exc:
        method = getattr(remote_callable, "method", None)
        args = getattr(remote_callable, "args", None)
        if isinstance(method, str) and isinstance(args, tuple):
            located = locate_unpicklable(method, args, getattr(remote_callable, "kwargs", None))
            if located is not None:
                raise located from exc
        name = method if isinstance(method, str) else type(remote_callable).__name__
        raise SerializationError(name, "callable", f"{type(exc).__name__}: {exc}") from exc


def dumps_result(method: str, value: object) -> bytes:
    try:
        return dumps(value)
    except _PICKLE_ERRORS as exc:
        raise SerializationError(method, "result", f"{type(exc).__name__}: {exc}") from exc


def describe_failure(exc: BaseException, *, category: str = "execution") -> dict[str, object]:
    # Structured failure payload; the pickled exception travels only when it survives pickling.
    failure = _describe(exc)
    failure["category"] = category
    if exc.__cause__ is not None:
        # __cause__ does not survive pickling.
        failure["cause"] = _describe(exc.__cause__)
    return failure


def _describe(exc: BaseException) -> dict[str, object]:
    error_type = type(exc)
    try:
        exception_bytes: bytes | None = dumps(exc)
    except Exception:
        exception_bytes = None
    return {
        "type": f"{error_type.__module__}.{error_type.__qualname__}",
        "message": str(exc),
        "traceback": "".join(traceback.format_exception(exc)),
        "exception": exception_bytes,
    }


def _load_exception(failure: Mapping[str, object]) -> BaseException | None:
    payload = failure.get("exception")
    if not isinstance(payload, bytes):
        return None
    try:
        candidate = loads(payload)
    except Exception:
        return None
    return candidate if isinstance(candidate, BaseException) else None


def _rebuild_cause(failure: Mapping[str, object]) -> BaseException | None:
    cause = failure.get("cause")
    if not isinstance(cause, Mapping):
        return None
    restored = _load_exception(cause)
    if restored is not None:
        return restored
    return RemoteInvocationError(
        str(cause.get("type", "builtins.Exception")),
        str(cause.get("message", "")),
        str(cause.get("traceback", "")),
    )


def failure_to_exception(failure: Mapping[str, object], *, operation: str | None = None) -> BaseException:
    # Bedrock dispatch errors are re-raised as-is; anything else is wrapped in RemoteInvocationError.
    original = _load_exception(failure)
    if original is not None and original.__cause__ is None:
        original.__cause__ = _rebuild_cause(failure)
    if isinstance(original, RemoteDispatchError):
        return original

    error = RemoteInvocationError(
        str(failure.get("type", "builtins.Exception")),
        str(failure.get("message", "")),
        str(failure.get("traceback", "")),
        operation=operation,
    )
    error.__cause__ = original
    return error
