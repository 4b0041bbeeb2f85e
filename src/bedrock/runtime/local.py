from __future__ import annotations

import multiprocessing as mp
import time
from threading import Event, Lock

from bedrock.concurrent.channel import RemoteChannel
from bedrock.errors import LaunchError, RemoteTransportError
from bedrock.observability.logging import emit_log
from bedrock.runtime.capabilities import LaunchRequest
from bedrock.runtime.child import LIFECYCLE_STREAM, serve_child

DEFAULT_CLOSE_TIMEOUT_SECONDS = 10.0


class LocalProcess:
    # ApplicationProcess backed by a multiprocessing.Process and its pipe channel.
    def __init__(self, process: mp.process.BaseProcess, channel: RemoteChannel, *, log_sink: object | None = None) -> None:
        self._process = process
        self._channel = channel
        self._log_sink = log_sink

    @property
    def pid(self) -> int | None:
        return self._process.pid

    @property
    def channel(self) -> RemoteChannel:
        return self._channel

    @property
    def exit_code(self) -> int | None:
        return self._process.exitcode

    def is_alive(self) -> bool:
        return self._process.is_alive()

    def wait_for(self, timeout: float | None = None) -> int | None:
        self._process.join(timeout)
        return self._process.exitcode

    def close(self, timeout: float | None = None) -> None:
        # Closing the channel lets the child leave its serve loop; stragglers are terminated.
        self._channel.close()
        self._process.join(DEFAULT_CLOSE_TIMEOUT_SECONDS if timeout is None else timeout)
        if self._process.is_alive():
            emit_log(self._log_sink, level="warning", message="launch.terminating", fields={"pid": self.pid})
            self._process.terminate()
            self._process.join(1.0)
        if self._process.is_alive():
            self.kill()

    def kill(self) -> None:
        if self._process.is_alive():
            self._process.kill()
            self._process.join(1.0)
        self._channel.close()


class _Readiness:
    # Collects the child's lifecycle events until it reports ready or failed.
    def __init__(self) -> None:
        self._event = Event()
        self._lock = Lock()
        self.state: dict[str, object] | None = None

    def on_event(self, event: object) -> None:
        if not isinstance(event, dict) or event.get("state") not in ("ready", "failed"):
            return
        with self._lock:
            if self.state is None:
                self.state = event
        self._event.set()

    def wait(self, timeout: float) -> bool:
        return self._event.wait(timeout)


class MultiprocessLauncher:
    # ProcessLauncher that spawns a child interpreter serving a RemoteChannel over a Pipe.
    def __init__(self, *, log_sink: object | None = None, poll_interval_seconds: float = 0.05) -> None:
        self._log_sink = log_sink
        self._poll_interval = poll_interval_seconds

    def launch(self, request: LaunchRequest) -> LocalProcess:
        ctx = mp.get_context(request.start_method)
        parent_connection, child_connection = ctx.Pipe(duplex=True)
        process = ctx.Process(
            target=serve_child,
            args=(request, child_connection),
            name=request.display_name,
            daemon=True,
        )
        channel = RemoteChannel(
            parent_connection,
            name=request.display_name,
            log_sink=self._log_sink,
            diagnostics=request.diagnostics,
        )
        readiness = _Readiness()
        channel.add_listener(readiness.on_event, LIFECYCLE_STREAM)
        try:
            process.start()
        except OSError as exc:
            child_connection.close()
            parent_connection.close()
            raise LaunchError(f"Failed to start {request.display_name}: {exc}") from exc
        child_connection.close()
        channel.open()
        emit_log(
            self._log_sink,
            level="debug",
            message="launch.process_started",
            fields={"application": request.display_name, "pid": process.pid, "start_method": request.start_method},
        )

        local = LocalProcess(process, channel, log_sink=self._log_sink)
        self._await_ready(local, readiness, request)
        channel.remove_listener(readiness.on_event, LIFECYCLE_STREAM)
        return local

    def _await_ready(self, local: LocalProcess, readiness: _Readiness, request: LaunchRequest) -> None:
        deadline = time.monotonic() + request.ready_timeout_seconds
        while not readiness.wait(self._poll_interval):
            if not local.is_alive():
                local.kill()
                raise LaunchError(
                    f"{request.display_name} exited with code {local.exit_code} before becoming ready"
                )
            if time.monotonic() >= deadline:
                local.kill()
                raise LaunchError(
                    f"{request.display_name} did not become ready within {request.ready_timeout_seconds}s"
                )
        state = readiness.state or {}
        if state.get("state") == "failed":
            local.close(1.0)
            raise LaunchError(
                f"{request.display_name} failed to start: {state.get('error_type')}: {state.get('message')}"
            )
        if not local.channel.is_open:
            raise RemoteTransportError(f"channel to {request.display_name} closed during startup")
