from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from bedrock.concurrent.channel import RemoteChannel
    from bedrock.runtime.platform import Platform


@dataclass(frozen=True, slots=True)
class LaunchRequest:
    # Picklable launch description handed to a process launcher and re-hydrated by the child.
    display_name: str
    executable: str | None = None
    arguments: tuple[str, ...] = ()
    environment: dict[str, str | None] = field(default_factory=dict)
    clear_environment: bool = False
    system_properties: dict[str, str] = field(default_factory=dict)
    working_directory: str | None = None
    max_memory_bytes: int | None = None
    max_cpu_seconds: int | None = None
    start_method: str = "spawn"
    ready_timeout_seconds: float = 60.0
    diagnostics: bool = False

    def __post_init__(self) -> None:
        if not isinstance(self.display_name, str) or not self.display_name:
            raise ValueError("LaunchRequest.display_name must be a non-empty string")
        if self.ready_timeout_seconds <= 0:
            raise ValueError("LaunchRequest.ready_timeout_seconds must be > 0")


@runtime_checkable
class ApplicationProcess(Protocol):
    # Running process plus the channel connected to it.
    @property
    def pid(self) -> int | None: ...

    @property
    def channel(self) -> RemoteChannel: ...

    @property
    def exit_code(self) -> int | None: ...

    def wait_for(self, timeout: float | None = None) -> int | None: ...

    def close(self, timeout: float | None = None) -> None: ...

    def kill(self) -> None: ...


class ProcessLauncher(Protocol):
    def launch(self, request: LaunchRequest) -> ApplicationProcess: ...


class RemoteShell(Protocol):
    # Runs a command on another host (ssh and similar); implementations live outside bedrock.
    def execute(
        self,
        host: str,
        command: list[str],
        working_directory: str | None = None,
        environment: dict[str, str] | None = None,
    ) -> ApplicationProcess: ...


@dataclass(frozen=True, slots=True)
class DeploymentArtifact:
    source: Path
    destination_name: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.source, Path):
            object.__setattr__(self, "source", Path(self.source))

    @property
    def name(self) -> str:
        return self.destination_name or self.source.name


@dataclass(frozen=True, slots=True)
class DeployedArtifact:
    source: Path
    destination: Path


class ArtifactDeployer(Protocol):
    def deploy(
        self,
        artifacts: Iterable[DeploymentArtifact],
        destination: Path,
        platform: Platform,
    ) -> list[DeployedArtifact]: ...

    def undeploy(self, deployed: Iterable[DeployedArtifact], platform: Platform) -> None: ...
