from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING

from bedrock.config.settings import BedrockSettings
from bedrock.options.container import OptionsByType
from bedrock.options.diagnostics import Diagnostics, LaunchLogging
from bedrock.options.option import Option
from bedrock.options.timeout import RetryFrequency, Timeout
from bedrock.runtime.capabilities import ArtifactDeployer, ProcessLauncher
from bedrock.runtime.deploy import LocalFileDeployer
from bedrock.runtime.launcher import ApplicationLauncher
from bedrock.runtime.local import MultiprocessLauncher
from bedrock.runtime.options import StartMethod
from bedrock.runtime.profile import Profile, Profiles

if TYPE_CHECKING:
    from bedrock.runtime.application import Application


class Platform:
    # A place applications are launched on; its options apply to every launch before the caller's.
    def __init__(
        self,
        name: str,
        *,
        options: Iterable[Option] = (),
        profiles: Iterable[Profile] = (),
        deployer: ArtifactDeployer | None = None,
    ) -> None:
        if not isinstance(name, str) or not name:
            raise ValueError("Platform.name must be a non-empty string")
        self._name = name
        self._options = OptionsByType(options)
        self._profiles = tuple(profiles)
        self._deployer = deployer

    @property
    def name(self) -> str:
        return self._name

    @property
    def profiles(self) -> tuple[Profile, ...]:
        return self._profiles

    @property
    def deployer(self) -> ArtifactDeployer | None:
        return self._deployer

    def get_options(self) -> OptionsByType:
        return self._options.copy()

    def launch(self, *options: Option) -> Application:
        raise NotImplementedError("Platform.launch must be implemented")

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._name!r})"


class LocalPlatform(Platform):
    # Launches applications as child interpreters of this process.
    def __init__(
        self,
        name: str = "local",
        *,
        options: Iterable[Option] = (),
        profiles: Iterable[Profile] = (),
        deployer: ArtifactDeployer | None = None,
        process_launcher: ProcessLauncher | None = None,
        log_sink: object | None = None,
    ) -> None:
        super().__init__(
            name,
            options=options,
            profiles=profiles,
            deployer=deployer if deployer is not None else LocalFileDeployer(log_sink=log_sink),
        )
        self._process_launcher = process_launcher if process_launcher is not None else MultiprocessLauncher(
            log_sink=log_sink
        )
        self._log_sink = log_sink

    @classmethod
    def from_settings(
        cls,
        settings: BedrockSettings,
        *,
        name: str = "local",
        log_sink: object | None = None,
        process_launcher: ProcessLauncher | None = None,
    ) -> LocalPlatform:
        return cls(
            name,
            options=platform_options(settings),
            profiles=Profiles.from_settings(settings),
            process_launcher=process_launcher,
            log_sink=log_sink,
        )

    @property
    def process_launcher(self) -> ProcessLauncher:
        return self._process_launcher

    def launch(self, *options: Option) -> Application:
        return ApplicationLauncher(self, self._process_launcher, log_sink=self._log_sink).launch(*options)


def platform_options(settings: BedrockSettings) -> list[Option]:
    return [
        Timeout(settings.default_timeout_seconds),
        RetryFrequency(settings.retry_frequency_ms / 1000.0),
        LaunchLogging(settings.launch_logging),
        Diagnostics(settings.diagnostics),
        StartMethod(settings.start_method),
    ]
