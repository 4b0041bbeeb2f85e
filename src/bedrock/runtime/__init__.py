from bedrock.runtime.application import Application, ApplicationListener
from bedrock.runtime.capabilities import (
    ApplicationProcess,
    ArtifactDeployer,
    DeployedArtifact,
    DeploymentArtifact,
    LaunchRequest,
    ProcessLauncher,
    RemoteShell,
)
from bedrock.runtime.deploy import Deployment, LocalFileDeployer
from bedrock.runtime.environment import RuntimeEnvironment
from bedrock.runtime.launcher import ApplicationLauncher, build_launch_request
from bedrock.runtime.local import LocalProcess, MultiprocessLauncher
from bedrock.runtime.options import (
    Argument,
    Arguments,
    DisplayName,
    EnvironmentSource,
    EnvironmentVariable,
    EnvironmentVariables,
    Executable,
    Port,
    Ports,
    ResourceLimits,
    StartMethod,
    SystemProperties,
    SystemProperty,
    WorkingDirectory,
)
from bedrock.runtime.platform import LocalPlatform, Platform
from bedrock.runtime.ports import AvailablePortIterator
from bedrock.runtime.profile import Profile, Profiles
from bedrock.runtime.profiles import CoverageProfile, RemoteDebugging, TransportAddress

__all__ = [
    "Application",
    "ApplicationLauncher",
    "ApplicationListener",
    "ApplicationProcess",
    "Argument",
    "Arguments",
    "ArtifactDeployer",
    "AvailablePortIterator",
    "CoverageProfile",
    "DeployedArtifact",
    "Deployment",
    "DeploymentArtifact",
    "DisplayName",
    "EnvironmentSource",
    "EnvironmentVariable",
    "EnvironmentVariables",
    "Executable",
    "LaunchRequest",
    "LocalFileDeployer",
    "LocalPlatform",
    "LocalProcess",
    "MultiprocessLauncher",
    "Platform",
    "Port",
    "Ports",
    "ProcessLauncher",
    "Profile",
    "Profiles",
    "RemoteDebugging",
    "RemoteShell",
    "ResourceLimits",
    "RuntimeEnvironment",
    "StartMethod",
    "SystemProperties",
    "SystemProperty",
    "TransportAddress",
    "WorkingDirectory",
    "build_launch_request",
]
