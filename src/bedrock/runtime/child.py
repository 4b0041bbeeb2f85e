from __future__ import annotations

import importlib
import os
import sys
from threading import Lock, Thread

from bedrock.concurrent.channel import Connection, RemoteChannel
from bedrock.errors import LaunchError
from bedrock.runtime.capabilities import LaunchRequest

LIFECYCLE_STREAM = "bedrock.lifecycle"

_STATE_LOCK = Lock()
_CHANNEL: RemoteChannel | None = None
_REQUEST: LaunchRequest | None = None
_EXECUTABLE_FAILED = False


def serve_child(request: LaunchRequest, connection: Connection) -> None:
    # Process target of local launches: apply the request, report readiness, serve until closed.
    channel = RemoteChannel(connection, name=f"{request.display_name}:child", diagnostics=request.diagnostics)
    channel.open()
    try:
        apply_launch_request(request)
    except Exception as exc:
        _report(channel, {"state": "failed", "error_type": type(exc).__name__, "message": str(exc)})
        channel.close()
        raise SystemExit(1) from exc

    _install(channel, request)
    _report(channel, {"state": "ready", "pid": os.getpid()})
    if request.executable is not None:
        Thread(
            target=_run_executable,
            args=(channel, request.executable),
            name=f"{request.display_name}:main",
            daemon=True,
        ).start()
    channel.wait_closed()
    with _STATE_LOCK:
        failed = _EXECUTABLE_FAILED
    if failed:
        raise SystemExit(1)


def apply_launch_request(request: LaunchRequest) -> None:
    if request.clear_environment:
        os.environ.clear()
    for name, value in request.environment.items():
        if value is None:
            os.environ.pop(name, None)
        else:
            os.environ[name] = value
    if request.working_directory:
        os.chdir(request.working_directory)
    sys.argv = [request.display_name, *request.arguments]
    _apply_resource_limits(request)
    if os.environ.get("COVERAGE_PROCESS_START"):
        import coverage

        coverage.process_startup()


def channel() -> RemoteChannel:
    # Channel back to the launcher, for raising events from application code.
    with _STATE_LOCK:
        current = _CHANNEL
    if current is None:
        raise LaunchError("This process was not launched by bedrock")
    return current


def is_launched() -> bool:
    with _STATE_LOCK:
        return _CHANNEL is not None


def system_property(name: str, default: str | None = None) -> str | None:
    with _STATE_LOCK:
        request = _REQUEST
    if request is None:
        return default
    return request.system_properties.get(name, default)


def system_properties() -> dict[str, str]:
    with _STATE_LOCK:
        request = _REQUEST
    return {} if request is None else dict(request.system_properties)


def _install(current: RemoteChannel, request: LaunchRequest) -> None:
    global _CHANNEL, _REQUEST
    with _STATE_LOCK:
        _CHANNEL = current
        _REQUEST = request


def _apply_resource_limits(request: LaunchRequest) -> None:
    if request.max_memory_bytes is None and request.max_cpu_seconds is None:
        return
    import resource

    if request.max_memory_bytes is not None:
        _, hard = resource.getrlimit(resource.RLIMIT_AS)
        resource.setrlimit(resource.RLIMIT_AS, (request.max_memory_bytes, hard))
    if request.max_cpu_seconds is not None:
        _, hard = resource.getrlimit(resource.RLIMIT_CPU)
        resource.setrlimit(resource.RLIMIT_CPU, (request.max_cpu_seconds, hard))


def _run_executable(current: RemoteChannel, target: str) -> None:
    global _EXECUTABLE_FAILED
    module_name, _, attr = target.partition(":")
    try:
        entry = getattr(importlib.import_module(module_name), attr)
        entry()
    except Exception as exc:
        with _STATE_LOCK:
            _EXECUTABLE_FAILED = True
        _report(current, {"state": "executable_failed", "error_type": type(exc).__name__, "message": str(exc)})
        return
    _report(current, {"state": "executable_completed"})


def _report(current: RemoteChannel, event: dict[str, object]) -> None:
    current.raise_event(LIFECYCLE_STREAM, event)
