from __future__ import annotations

import shutil
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from bedrock.errors import ConfigurationError, LaunchError
from bedrock.observability.logging import emit_log
from bedrock.options.option import Option
from bedrock.runtime.capabilities import DeployedArtifact, DeploymentArtifact

if TYPE_CHECKING:
    from bedrock.runtime.platform import Platform


@dataclass(frozen=True, slots=True)
class Deployment(Option):
    # Artifacts copied to `destination` before the application is launched.
    artifacts: tuple[DeploymentArtifact, ...]
    destination: Path

    def __post_init__(self) -> None:
        object.__setattr__(
            self,
            "artifacts",
            tuple(item if isinstance(item, DeploymentArtifact) else DeploymentArtifact(Path(item)) for item in self.artifacts),
        )
        if not isinstance(self.destination, Path):
            object.__setattr__(self, "destination", Path(self.destination))

    @classmethod
    def of(cls, destination: str | Path, *artifacts: str | Path | DeploymentArtifact) -> Deployment:
        return cls(tuple(artifacts), Path(destination))


class LocalFileDeployer:
    # Copies local files into a destination directory reachable by the target platform.
    def __init__(self, *, log_sink: object | None = None) -> None:
        self._log_sink = log_sink

    def deploy(
        self,
        artifacts: Iterable[DeploymentArtifact],
        destination: Path,
        platform: Platform,
    ) -> list[DeployedArtifact]:
        destination.mkdir(parents=True, exist_ok=True)
        deployed: list[DeployedArtifact] = []
        try:
            for artifact in artifacts:
                deployed.append(self._copy(artifact, destination, platform))
        except Exception:
            # A partial deployment is removed before the failure propagates.
            self.undeploy(deployed, platform)
            raise
        return deployed

    def _copy(self, artifact: DeploymentArtifact, destination: Path, platform: Platform) -> DeployedArtifact:
        if not artifact.source.is_file():
            raise ConfigurationError(f"Deployment artifact '{artifact.source}' does not exist")
        target = destination / artifact.name
        try:
            shutil.copy2(artifact.source, target)
        except OSError as exc:
            raise LaunchError(f"Failed to deploy '{artifact.source}' to '{target}': {exc}") from exc
        emit_log(
            self._log_sink,
            level="debug",
            message="deploy.artifact_copied",
            fields={"platform": platform.name, "source": str(artifact.source), "destination": str(target)},
        )
        return DeployedArtifact(source=artifact.source, destination=target)

    def undeploy(self, deployed: Iterable[DeployedArtifact], platform: Platform) -> None:
        for artifact in deployed:
            artifact.destination.unlink(missing_ok=True)
            emit_log(
                self._log_sink,
                level="debug",
                message="deploy.artifact_removed",
                fields={"platform": platform.name, "destination": str(artifact.destination)},
            )
