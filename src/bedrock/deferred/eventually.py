from __future__ import annotations

import time
from collections.abc import Callable
from typing import TYPE_CHECKING, Any, TypeVar

from bedrock.errors import ConfigurationError, DeferredTimeoutError, SerializationError, UnsupportedRemoteOperationError
from bedrock.options.container import OptionsByType
from bedrock.options.option import Option
from bedrock.options.timeout import RetryFrequency, Timeout

if TYPE_CHECKING:
    from bedrock.concurrent.callable import RemoteCallable
    from bedrock.runtime.application import Application

T = TypeVar("T")

# Failures that retrying cannot fix.
_PERMANENT_FAILURES = (ConfigurationError, SerializationError, UnsupportedRemoteOperationError)

_UNSET = object()


class Eventually:
    # Retries a supplier until its value satisfies a predicate or the Timeout expires.
    @staticmethod
    def assert_that(
        supplier: Callable[[], T],
        predicate: Callable[[T], bool] | object = _UNSET,
        *options: Option,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> T:
        if isinstance(predicate, Option):
            # Options passed without a predicate.
            options = (predicate, *options)
            predicate = _UNSET
        resolved = OptionsByType.of(*options)
        timeout = resolved.get(Timeout).seconds
        frequency = resolved.get(RetryFrequency).seconds
        matches = _as_predicate(predicate)

        deadline = clock() + timeout
        last_value: Any = None
        last_error: Exception | None = None
        attempts = 0
        while True:
            attempts += 1
            try:
                value = supplier()
            except _PERMANENT_FAILURES:
                raise
            except Exception as exc:
                last_error = exc
            else:
                last_error = None
                last_value = value
                if matches(value):
                    return value
            remaining = deadline - clock()
            if remaining <= 0:
                break
            sleep(min(frequency, remaining))

        detail = (
            f"last error {type(last_error).__name__}: {last_error}"
            if last_error is not None
            else f"last value {last_value!r}"
        )
        raise DeferredTimeoutError(
            f"Condition not satisfied within {timeout}s after {attempts} attempt(s); {detail}",
            last_value=last_value,
        ) from last_error

    @staticmethod
    def assert_remote(
        application: Application,
        remote_callable: RemoteCallable[T],
        predicate: Callable[[T], bool] | object = _UNSET,
        *options: Option,
    ) -> T:
        # Each attempt is a remote invocation on `application`, bounded by the same Timeout.
        return Eventually.assert_that(
            lambda: application.invoke(remote_callable, *options),
            predicate,
            *options,
        )


def eventually(
    supplier: Callable[[], T],
    predicate: Callable[[T], bool] | object = _UNSET,
    *options: Option,
) -> T:
    return Eventually.assert_that(supplier, predicate, *options)


def _as_predicate(predicate: Callable[[Any], bool] | object) -> Callable[[Any], bool]:
    # No predicate means truthy; a non-callable means equality.
    if predicate is _UNSET:
        return bool
    if callable(predicate):
        return predicate
    return lambda value: value == predicate
