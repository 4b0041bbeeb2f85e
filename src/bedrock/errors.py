from __future__ import annotations


class BedrockError(Exception):
    # Base error for option resolution, launching and remote dispatch.
    pass


class ConfigurationError(BedrockError, ValueError):
    # Option or settings resolution failed before anything was launched.
    pass


class LaunchError(BedrockError, RuntimeError):
    # A profile rejected the launch configuration or the process could not be spawned.
    pass


class RemoteDispatchError(BedrockError, RuntimeError):
    # Base error for failures reported by (or about) a remote invocation.
    pass


class UnsupportedRemoteOperationError(RemoteDispatchError, NotImplementedError):
    # Raised locally, before any round trip, for operations that cannot cross the channel.
    def __init__(self, operation: str) -> None:
        self.operation = operation
        super().__init__(f"The method {operation} is not supported for remote execution")

    def __reduce__(self) -> tuple[object, ...]:
        return (type(self), (self.operation,))


class TargetResolutionError(RemoteDispatchError):
    # The producer failed or the requested method does not exist on the produced target.
    pass


class RemoteInvocationError(RemoteDispatchError):
    # The remote callable raised; __cause__ holds the original exception when it was picklable.
    remote_type_name: str
    remote_message: str
    remote_traceback: str

    def __init__(
        self,
        remote_type_name: str,
        remote_message: str,
        remote_traceback: str = "",
        *,
        operation: str | None = None,
    ) -> None:
        self.remote_type_name = remote_type_name
        self.remote_message = remote_message
        self.remote_traceback = remote_traceback
        self.operation = operation
        subject = f"Failed to execute {operation}" if operation else "Remote execution failed"
        formatted = f"{subject}: {remote_type_name}: {remote_message}"
        if remote_traceback:
            formatted += f"\nRemote traceback:\n{remote_traceback}"
        super().__init__(formatted)

    def __reduce__(self) -> tuple[object, ...]:
        return (
            _rebuild_invocation_error,
            (type(self), self.remote_type_name, self.remote_message, self.remote_traceback, self.operation),
        )


class SerializationError(RemoteDispatchError):
    # A value could not be pickled; position is an argument index, keyword name, "callable" or "result".
    def __init__(self, method: str, position: int | str, detail: str) -> None:
        self.method = method
        self.position = position
        self.detail = detail
        super().__init__(
            f"Failed to serialize {_describe_position(position)} of {method}: {detail}"
        )

    def __reduce__(self) -> tuple[object, ...]:
        return (type(self), (self.method, self.position, self.detail))


class RemoteTransportError(BedrockError, ConnectionError):
    # The channel is closed or broken; the remote side may never have seen the request.
    pass


class RemoteTimeoutError(BedrockError, TimeoutError):
    # A remote result did not arrive within the configured timeout.
    pass


class DeferredTimeoutError(BedrockError, TimeoutError):
    # An eventually-true condition was not satisfied within the configured timeout.
    def __init__(self, message: str, *, last_value: object | None = None) -> None:
        self.last_value = last_value
        super().__init__(message)

    def __reduce__(self) -> tuple[object, ...]:
        return (_rebuild_deferred_timeout, (type(self), self.args[0], self.last_value))


def _describe_position(position: int | str) -> str:
    if isinstance(position, int):
        return f"argument {position}"
    if position in ("callable", "result"):
        return f"the {position}"
    return f"keyword argument '{position}'"


def _rebuild_invocation_error(
    error_type: type[RemoteInvocationError],
    remote_type_name: str,
    remote_message: str,
    remote_traceback: str,
    operation: str | None,
) -> RemoteInvocationError:
    return error_type(remote_type_name, remote_message, remote_traceback, operation=operation)


def _rebuild_deferred_timeout(
    error_type: type[DeferredTimeoutError],
    message: str,
    last_value: object | None,
) -> DeferredTimeoutError:
    return error_type(message, last_value=last_value)
