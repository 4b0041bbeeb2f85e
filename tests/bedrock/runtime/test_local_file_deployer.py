from __future__ import annotations

from pathlib import Path

import pytest

from bedrock.errors import ConfigurationError
from bedrock.observability.logging import MemoryLogSink
from bedrock.runtime import Deployment, DeploymentArtifact, LocalFileDeployer, LocalPlatform


def test_deploy_copies_artifacts_and_undeploy_removes_them(tmp_path: Path) -> None:
    # Artifacts land in the destination under their own or a chosen name.
    source = tmp_path / "src"
    source.mkdir()
    (source / "app.cfg").write_text("mode=test", encoding="utf-8")
    (source / "data.bin").write_bytes(b"\x00\x01")
    destination = tmp_path / "deployed"
    sink = MemoryLogSink()
    deployer = LocalFileDeployer(log_sink=sink)
    platform = LocalPlatform(deployer=deployer)

    deployed = deployer.deploy(
        [DeploymentArtifact(source / "app.cfg"), DeploymentArtifact(source / "data.bin", "payload.bin")],
        destination,
        platform,
    )

    assert [item.destination.name for item in deployed] == ["app.cfg", "payload.bin"]
    assert (destination / "app.cfg").read_text(encoding="utf-8") == "mode=test"
    assert (destination / "payload.bin").read_bytes() == b"\x00\x01"

    deployer.undeploy(deployed, platform)
    assert list(destination.iterdir()) == []
    assert sink.messages() == [
        "deploy.artifact_copied",
        "deploy.artifact_copied",
        "deploy.artifact_removed",
        "deploy.artifact_removed",
    ]


def test_deploy_rejects_missing_artifact(tmp_path: Path) -> None:
    # Missing sources fail before anything is copied.
    deployer = LocalFileDeployer()
    with pytest.raises(ConfigurationError, match="does not exist"):
        deployer.deploy(
            [DeploymentArtifact(tmp_path / "missing.txt")],
            tmp_path / "out",
            LocalPlatform(deployer=deployer),
        )


def test_failed_deploy_removes_artifacts_already_copied(tmp_path: Path) -> None:
    # A later missing artifact rolls back the earlier copies.
    (tmp_path / "a.txt").write_text("first", encoding="utf-8")
    destination = tmp_path / "out"
    sink = MemoryLogSink()
    deployer = LocalFileDeployer(log_sink=sink)
    with pytest.raises(ConfigurationError, match="missing.txt"):
        deployer.deploy(
            [DeploymentArtifact(tmp_path / "a.txt"), DeploymentArtifact(tmp_path / "missing.txt")],
            destination,
            LocalPlatform(deployer=deployer),
        )
    assert list(destination.iterdir()) == []
    assert sink.messages() == ["deploy.artifact_copied", "deploy.artifact_removed"]

def test_deployment_option_normalizes_artifacts(tmp_path: Path) -> None:
    deployment = Deployment.of(
        str(tmp_path / "out"),
        str(tmp_path / "a.txt"),
        DeploymentArtifact(tmp_path / "b.txt", "c.txt"),
    )
    assert deployment.destination == tmp_path / "out"
    assert [artifact.name for artifact in deployment.artifacts] == ["a.txt", "c.txt"]
