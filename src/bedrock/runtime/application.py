from __future__ import annotations

from collections.abc import Callable
from concurrent.futures import Future, wait
from threading import Lock
from typing import TYPE_CHECKING, Any, TypeVar

from bedrock.concurrent.callable import RemoteCallable
from bedrock.concurrent.channel import DEFAULT_STREAM
from bedrock.errors import RemoteTimeoutError
from bedrock.observability.logging import emit_log
from bedrock.options.container import OptionsByType
from bedrock.options.option import Option
from bedrock.options.timeout import Timeout
from bedrock.runtime.capabilities import ApplicationProcess, DeployedArtifact
from bedrock.runtime.options import Ports
from bedrock.runtime.profile import Profile, Profiles

if TYPE_CHECKING:
    from bedrock.runtime.platform import Platform

T = TypeVar("T")


class ApplicationListener:
    # Lifecycle callbacks registered through Decoration options.
    def on_launched(self, application: Application) -> None:
        return None

    def on_closing(self, application: Application) -> None:
        return None

    def on_closed(self, application: Application) -> None:
        return None


class Application:
    # Handle to a launched application: remote execution, events and teardown.
    def __init__(
        self,
        *,
        platform: Platform,
        process: ApplicationProcess,
        options: OptionsByType,
        display_name: str,
        profiles: list[Profile] | None = None,
        deployed: list[DeployedArtifact] | None = None,
        log_sink: object | None = None,
    ) -> None:
        self._platform = platform
        self._process = process
        self._options = options
        self._display_name = display_name
        self._profiles = list(profiles or [])
        self._deployed = list(deployed or [])
        self._log_sink = log_sink
        self._lock = Lock()
        self._closed = False

    @property
    def display_name(self) -> str:
        return self._display_name

    @property
    def platform(self) -> Platform:
        return self._platform

    @property
    def pid(self) -> int | None:
        return self._process.pid

    @property
    def exit_code(self) -> int | None:
        return self._process.exit_code

    @property
    def is_closed(self) -> bool:
        with self._lock:
            return self._closed

    @property
    def deployed_artifacts(self) -> list[DeployedArtifact]:
        return list(self._deployed)

    def get_options(self) -> OptionsByType:
        return self._options.copy()

    def ports(self) -> Ports:
        return self._options.get_or_default(Ports, Ports()) or Ports()

    def submit(self, remote_callable: RemoteCallable[T]) -> Future[T]:
        return self._process.channel.submit(remote_callable)

    def invoke(self, remote_callable: RemoteCallable[T], *options: Option) -> T:
        # Blocks for the result; waits longer than Timeout raise RemoteTimeoutError.
        timeout = self._timeout(options)
        future = self.submit(remote_callable)
        done, _ = wait([future], timeout=timeout.seconds)
        if not done:
            error = RemoteTimeoutError(
                f"{remote_callable.describe()} did not complete within {timeout.seconds}s on {self._display_name}"
            )
            self._process.channel.abandon(future, error)
            raise error
        return future.result()

    def add_listener(self, listener: Callable[[object], None], stream: str = DEFAULT_STREAM) -> None:
        self._process.channel.add_listener(listener, stream)

    def remove_listener(self, listener: Callable[[object], None], stream: str = DEFAULT_STREAM) -> bool:
        return self._process.channel.remove_listener(listener, stream)

    def raise_event(self, stream: str, event: object) -> None:
        self._process.channel.raise_event(stream, event)

    def wait_for(self, *options: Option) -> int | None:
        return self._process.wait_for(self._timeout(options).seconds)

    def close(self, *options: Option) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
        closing_options = OptionsByType.from_options(self._options).add_all(*options)
        emit_log(self._log_sink, level="info", message="launch.closing", fields=self._log_fields())
        for listener in self._listeners():
            _notify(listener.on_closing, self, self._log_sink)
        Profiles.closing(self._profiles, self._platform, self, closing_options, log_sink=self._log_sink)
        self._process.close(closing_options.get(Timeout).seconds)
        deployer = getattr(self._platform, "deployer", None)
        if self._deployed and deployer is not None:
            deployer.undeploy(self._deployed, self._platform)
        emit_log(
            self._log_sink,
            level="info",
            message="launch.closed",
            fields={**self._log_fields(), "exit_code": self._process.exit_code},
        )
        for listener in self._listeners():
            _notify(listener.on_closed, self, self._log_sink)

    def notify_launched(self) -> None:
        for listener in self._listeners():
            listener.on_launched(self)

    def __enter__(self) -> Application:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"Application({self._display_name!r}, pid={self.pid})"

    def _timeout(self, options: tuple[Option, ...]) -> Timeout:
        return OptionsByType.from_options(self._options).add_all(*options).get(Timeout)

    def _listeners(self) -> list[ApplicationListener]:
        return self._options.get_instances_of(ApplicationListener)

    def _log_fields(self) -> dict[str, object]:
        return {"application": self._display_name, "platform": self._platform.name, "pid": self.pid}


def _notify(callback: Callable[[Application], None], application: Application, log_sink: object | None) -> None:
    try:
        callback(application)
    except Exception as exc:
        emit_log(
            log_sink,
            level="warning",
            message="launch.listener_failed",
            fields={"application": application.display_name, "error_type": type(exc).__name__},
        )
