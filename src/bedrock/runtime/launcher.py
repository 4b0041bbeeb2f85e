from __future__ import annotations

from typing import TYPE_CHECKING

from bedrock.errors import BedrockError, LaunchError
from bedrock.observability.logging import emit_log
from bedrock.options.container import OptionsByType
from bedrock.options.diagnostics import Diagnostics, LaunchLogging
from bedrock.options.option import Option
from bedrock.options.timeout import Timeout
from bedrock.runtime.application import Application
from bedrock.runtime.capabilities import DeployedArtifact, LaunchRequest, ProcessLauncher
from bedrock.runtime.deploy import Deployment
from bedrock.runtime.options import (
    Arguments,
    DisplayName,
    EnvironmentVariables,
    Executable,
    ResourceLimits,
    StartMethod,
    SystemProperties,
    WorkingDirectory,
)
from bedrock.runtime.profile import Profiles

if TYPE_CHECKING:
    from bedrock.runtime.platform import Platform

DEFAULT_DISPLAY_NAME = "bedrock-application"


class ApplicationLauncher:
    # Launch flow: platform options, then caller options, then configured profiles (if absent);
    # on_launching in registration order; spawn; on_launched; listeners.
    def __init__(
        self,
        platform: Platform,
        process_launcher: ProcessLauncher,
        *,
        application_class: type[Application] = Application,
        log_sink: object | None = None,
    ) -> None:
        self._platform = platform
        self._process_launcher = process_launcher
        self._application_class = application_class
        self._log_sink = log_sink

    def launch(self, *options: Option) -> Application:
        launch_options = OptionsByType.from_options(self._platform.get_options())
        launch_options.add_all(*options)
        for profile in self._platform.profiles:
            launch_options.add_if_absent(profile)
        launch_options.add_if_absent(DisplayName(default_display_name(launch_options)))

        log_sink = self._log_sink if launch_options.get(LaunchLogging).is_enabled() else None
        display_name = launch_options.get(DisplayName).name
        profiles = Profiles.in_options(launch_options)
        emit_log(
            log_sink,
            level="info",
            message="launch.starting",
            fields={
                "application": display_name,
                "platform": self._platform.name,
                "profiles": [type(profile).__name__ for profile in profiles],
            },
        )

        Profiles.launching(profiles, self._platform, self._application_class, launch_options, log_sink=log_sink)
        # Profiles may rename the application.
        display_name = launch_options.get(DisplayName).name

        deployed = self._deploy(launch_options)
        try:
            request = build_launch_request(display_name, launch_options)
            if launch_options.get(Diagnostics).is_enabled():
                emit_log(log_sink, level="info", message="launch.request", fields=_describe_request(request))
            process = self._process_launcher.launch(request)
        except Exception as exc:
            # Nothing is left deployed for a process that never started.
            self._undeploy(deployed)
            if isinstance(exc, BedrockError):
                raise
            raise LaunchError(f"Failed to launch {display_name} on {self._platform.name}: {exc}") from exc

        application = self._application_class(
            platform=self._platform,
            process=process,
            options=launch_options,
            display_name=display_name,
            profiles=profiles,
            deployed=deployed,
            log_sink=log_sink,
        )
        try:
            Profiles.launched(profiles, self._platform, application, launch_options, log_sink=log_sink)
            application.notify_launched()
        except Exception:
            application.close()
            raise
        emit_log(
            log_sink,
            level="info",
            message="launch.launched",
            fields={"application": display_name, "platform": self._platform.name, "pid": application.pid},
        )
        return application

    def _deploy(self, options: OptionsByType) -> list[DeployedArtifact]:
        deployment = options.get_or_default(Deployment, None)
        deployer = getattr(self._platform, "deployer", None)
        if deployment is None:
            return []
        if deployer is None:
            raise LaunchError(f"Platform {self._platform.name} cannot deploy artifacts")
        return deployer.deploy(deployment.artifacts, deployment.destination, self._platform)

    def _undeploy(self, deployed: list[DeployedArtifact]) -> None:
        deployer = getattr(self._platform, "deployer", None)
        if deployed and deployer is not None:
            deployer.undeploy(deployed, self._platform)


def default_display_name(options: OptionsByType) -> str:
    executable = options.get_or_default(Executable, None)
    if executable is None:
        return DEFAULT_DISPLAY_NAME
    return executable.module.rsplit(".", 1)[-1]


def build_launch_request(display_name: str, options: OptionsByType) -> LaunchRequest:
    environment = options.get(EnvironmentVariables)
    limits = options.get_or_default(ResourceLimits, ResourceLimits())
    executable = options.get_or_default(Executable, None)
    return LaunchRequest(
        display_name=display_name,
        executable=executable.target if executable is not None else None,
        arguments=tuple(options.get(Arguments).resolve()),
        environment=environment.resolve(),
        clear_environment=environment.replaces_environment,
        system_properties=options.get(SystemProperties).resolve(),
        working_directory=str(options.get(WorkingDirectory).path),
        max_memory_bytes=limits.max_memory_bytes,
        max_cpu_seconds=limits.max_cpu_seconds,
        start_method=options.get(StartMethod).name,
        ready_timeout_seconds=options.get(Timeout).seconds,
        diagnostics=options.get(Diagnostics).is_enabled(),
    )


def _describe_request(request: LaunchRequest) -> dict[str, object]:
    # Environment is reported by variable name only.
    return {
        "application": request.display_name,
        "executable": request.executable,
        "arguments": list(request.arguments),
        "environment_names": sorted(request.environment),
        "system_properties": dict(request.system_properties),
        "working_directory": request.working_directory,
        "start_method": request.start_method,
    }
