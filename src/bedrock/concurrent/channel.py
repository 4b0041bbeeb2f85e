from __future__ import annotations

import itertools
import multiprocessing as mp
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from threading import Event, Lock, Thread
from typing import Any, Protocol

from bedrock.concurrent.callable import RemoteCallable
from bedrock.concurrent.serialization import (
    describe_failure,
    dumps,
    dumps_callable,
    dumps_result,
    failure_to_exception,
    loads,
    pickling_problem,
)
from bedrock.errors import (
    RemoteTransportError,
    SerializationError,
    TargetResolutionError,
)
from bedrock.observability.logging import emit_log

DEFAULT_STREAM = "default"


class Connection(Protocol):
    # Message-oriented duplex endpoint (multiprocessing.connection.Connection).
    def send_bytes(self, buf: bytes) -> None: ...

    def recv_bytes(self) -> bytes: ...

    def poll(self, timeout: float | None = ...) -> bool: ...

    def close(self) -> None: ...


class RemoteChannel:
    # Bidirectional channel: submits callables to the peer, executes callables from the peer,
    # and carries one-way events. Frames are pickled dicts keyed by "kind".
    def __init__(
        self,
        connection: Connection,
        *,
        name: str = "bedrock-channel",
        max_workers: int = 4,
        log_sink: object | None = None,
        diagnostics: bool = False,
        poll_interval_seconds: float = 0.05,
    ) -> None:
        if max_workers <= 0:
            raise ValueError("RemoteChannel.max_workers must be > 0")
        self._connection = connection
        self._name = name
        self._log_sink = log_sink
        self._diagnostics = diagnostics
        self._poll_interval = poll_interval_seconds
        self._send_lock = Lock()
        self._state_lock = Lock()
        self._sequence = itertools.count(1)
        self._pending: dict[int, tuple[Future[Any], str]] = {}
        self._listeners: dict[str, list[Callable[[object], None]]] = {}
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix=f"{name}-exec")
        # Listeners run here one event at a time, off the reader thread.
        self._events = ThreadPoolExecutor(max_workers=1, thread_name_prefix=f"{name}-events")
        self._reader: Thread | None = None
        self._closed = Event()

    @property
    def name(self) -> str:
        return self._name

    @property
    def is_open(self) -> bool:
        return self._reader is not None and not self._closed.is_set()

    def open(self) -> RemoteChannel:
        with self._state_lock:
            if self._closed.is_set():
                raise RemoteTransportError(f"channel '{self._name}' is closed")
            if self._reader is not None:
                return self
            self._reader = Thread(target=self._read_loop, name=f"{self._name}-reader", daemon=True)
            self._reader.start()
        self._log("info", "channel.opened")
        return self

    def submit(self, remote_callable: RemoteCallable[Any]) -> Future[Any]:
        # The future completes with the remote result or fails with the remote/transport error.
        if not isinstance(remote_callable, RemoteCallable):
            raise ValueError(f"{type(remote_callable).__name__} is not a RemoteCallable")
        operation = remote_callable.describe()
        payload = dumps_callable(remote_callable)
        future: Future[Any] = Future()
        future.set_running_or_notify_cancel()
        with self._state_lock:
            if self._closed.is_set():
                raise RemoteTransportError(f"channel '{self._name}' is closed; {operation} was not submitted")
            sequence = next(self._sequence)
            self._pending[sequence] = (future, operation)
        try:
            self._send({"kind": "callable", "sequence": sequence, "payload": payload})
        except RemoteTransportError:
            with self._state_lock:
                self._pending.pop(sequence, None)
            raise
        if self._diagnostics:
            self._log("debug", "channel.submitted", sequence=sequence, operation=operation)
        return future

    def raise_event(self, stream: str, event: object) -> None:
        problem = pickling_problem(event)
        if problem is not None:
            raise SerializationError(f"raise_event({stream})", 1, problem)
        self._send({"kind": "event", "stream": stream, "payload": dumps(event)})

    def add_listener(self, listener: Callable[[object], None], stream: str = DEFAULT_STREAM) -> None:
        if not callable(listener):
            raise ValueError("channel listener must be callable")
        with self._state_lock:
            self._listeners.setdefault(stream, []).append(listener)

    def remove_listener(self, listener: Callable[[object], None], stream: str = DEFAULT_STREAM) -> bool:
        with self._state_lock:
            listeners = self._listeners.get(stream, [])
            if listener not in listeners:
                return False
            listeners.remove(listener)
            return True

    def abandon(self, future: Future[Any], error: BaseException) -> bool:
        # Stops tracking a call nobody waits for; a late response is then logged and dropped.
        with self._state_lock:
            sequence = next((key for key, (pending, _) in self._pending.items() if pending is future), None)
            if sequence is None:
                return False
            del self._pending[sequence]
        if not future.done():
            future.set_exception(error)
        self._log("debug", "channel.abandoned", sequence=sequence)
        return True

    def pending_count(self) -> int:
        with self._state_lock:
            return len(self._pending)

    def wait_closed(self, timeout: float | None = None) -> bool:
        return self._closed.wait(timeout)

    def close(self) -> None:
        if self._closed.is_set():
            return
        try:
            self._send({"kind": "close"})
        except RemoteTransportError:
            self._log("debug", "channel.close_notification_failed")
        self._shutdown("channel closed")

    def _send(self, frame: dict[str, object]) -> None:
        data = dumps(frame)
        with self._send_lock:
            try:
                self._connection.send_bytes(data)
            except (EOFError, OSError) as exc:
                raise RemoteTransportError(f"channel '{self._name}' transport failed: {exc}") from exc

    def _read_loop(self) -> None:
        reason = "channel closed"
        while not self._closed.is_set():
            try:
                if not self._connection.poll(self._poll_interval):
                    continue
                data = self._connection.recv_bytes()
            except (EOFError, OSError):
                reason = "channel connection lost"
                break
            try:
                frame = loads(data)
            except Exception as exc:
                self._log("warning", "channel.frame_rejected", error_type=type(exc).__name__)
                continue
            if not isinstance(frame, dict):
                self._log("warning", "channel.frame_rejected", error_type=type(frame).__name__)
                continue

            kind = frame.get("kind")
            if kind == "callable":
                self._dispatch_callable(frame)
            elif kind == "response":
                self._complete(frame)
            elif kind == "event":
                self._dispatch_event(frame)
            elif kind == "close":
                reason = "channel closed by remote"
                break
            else:
                self._log("debug", "channel.unsupported_frame", kind=kind)
        self._shutdown(reason)

    def _dispatch_callable(self, frame: dict[str, object]) -> None:
        try:
            self._executor.submit(self._execute, frame)
        except RuntimeError:
            # Executor already shut down by a concurrent close.
            self._log("debug", "channel.callable_dropped", sequence=frame.get("sequence"))

    def _execute(self, frame: dict[str, object]) -> None:
        sequence = frame.get("sequence")
        operation = "callable"
        try:
            payload = frame.get("payload")
            if not isinstance(payload, bytes):
                raise TargetResolutionError("callable frame carries no payload")
            try:
                remote_callable = loads(payload)
            except Exception as exc:
                raise TargetResolutionError(
                    f"Failed to deserialize the submitted callable: {type(exc).__name__}: {exc}"
                ) from exc
            if not isinstance(remote_callable, RemoteCallable):
                raise TargetResolutionError(f"{type(remote_callable).__name__} is not a RemoteCallable")
            operation = remote_callable.describe()
            result = remote_callable.call()
            response: dict[str, object] = {
                "kind": "response",
                "sequence": sequence,
                "status": "ok",
                "payload": dumps_result(operation, result),
            }
        except Exception as exc:
            self._log("debug", "channel.execution_failed", operation=operation, error_type=type(exc).__name__)
            response = {
                "kind": "response",
                "sequence": sequence,
                "status": "error",
                "failure": describe_failure(exc, category=_failure_category(exc)),
            }
        try:
            self._send(response)
        except RemoteTransportError:
            self._log("debug", "channel.response_dropped", sequence=sequence, operation=operation)

    def _complete(self, frame: dict[str, object]) -> None:
        sequence = frame.get("sequence")
        with self._state_lock:
            pending = self._pending.pop(sequence, None) if isinstance(sequence, int) else None
        if pending is None:
            self._log("debug", "channel.unexpected_response", sequence=sequence)
            return
        future, operation = pending
        if frame.get("status") == "ok":
            try:
                value = loads(frame.get("payload"))
            except Exception as exc:
                future.set_exception(SerializationError(operation, "result", f"{type(exc).__name__}: {exc}"))
                return
            future.set_result(value)
            return
        failure = frame.get("failure")
        if not isinstance(failure, dict):
            failure = {"type": "builtins.RuntimeError", "message": "malformed failure response"}
        future.set_exception(failure_to_exception(failure, operation=operation))

    def _dispatch_event(self, frame: dict[str, object]) -> None:
        stream = str(frame.get("stream", DEFAULT_STREAM))
        try:
            event = loads(frame.get("payload"))
        except Exception as exc:
            self._log("warning", "channel.event_rejected", stream=stream, error_type=type(exc).__name__)
            return
        try:
            self._events.submit(self._deliver, stream, event)
        except RuntimeError:
            self._log("debug", "channel.event_dropped", stream=stream)

    def _deliver(self, stream: str, event: object) -> None:
        with self._state_lock:
            listeners = list(self._listeners.get(stream, []))
        for listener in listeners:
            try:
                listener(event)
            except Exception as exc:
                self._log("warning", "channel.listener_failed", stream=stream, error_type=type(exc).__name__)

    def _shutdown(self, reason: str) -> None:
        with self._state_lock:
            if self._closed.is_set():
                return
            self._closed.set()
            pending = list(self._pending.values())
            self._pending.clear()
        for future, operation in pending:
            future.set_exception(RemoteTransportError(f"{reason} before {operation} completed"))
        self._executor.shutdown(wait=False, cancel_futures=True)
        self._events.shutdown(wait=False)
        try:
            self._connection.close()
        except OSError:
            self._log("debug", "channel.connection_close_failed")
        self._log("info", "channel.closed", reason=reason, failed_pending=len(pending))

    def _log(self, level: str, message: str, **fields: object) -> None:
        emit_log(self._log_sink, level=level, message=message, fields={"channel": self._name, **fields})


def channel_pair(
    *,
    name: str = "bedrock-channel",
    log_sink: object | None = None,
) -> tuple[RemoteChannel, RemoteChannel]:
    # Two opened channels joined by an in-process pipe.
    left, right = mp.Pipe(duplex=True)
    return (
        RemoteChannel(left, name=f"{name}-a", log_sink=log_sink).open(),
        RemoteChannel(right, name=f"{name}-b", log_sink=log_sink).open(),
    )


def _failure_category(exc: BaseException) -> str:
    if isinstance(exc, SerializationError):
        return "serialization"
    if isinstance(exc, TargetResolutionError):
        return "resolution"
    return "execution"
