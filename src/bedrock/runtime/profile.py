from __future__ import annotations

import importlib
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

from bedrock.config.loader import ConfigError
from bedrock.config.settings import BedrockSettings, ProfileDecl
from bedrock.errors import LaunchError
from bedrock.observability.logging import emit_log
from bedrock.options.container import OptionsByType
from bedrock.options.option import Option

if TYPE_CHECKING:
    from bedrock.runtime.application import Application
    from bedrock.runtime.platform import Platform


class Profile:
    # Mixin for options that take part in the launch lifecycle.
    # Concrete profiles are also Options so they travel in (and are found through) OptionsByType.
    # Profiles hold no launch state; all changes go through the options they are handed.
    __slots__ = ()

    def on_launching(self, platform: Platform, meta: type[Application], options: OptionsByType) -> None:
        return None

    def on_launched(self, platform: Platform, application: Application, options: OptionsByType) -> None:
        return None

    def on_closing(self, platform: Platform, application: Application, options: OptionsByType) -> None:
        return None


class Profiles:
    # Profile registry: profiles declared in settings and lifecycle dispatch in registration order.
    @staticmethod
    def in_options(options: OptionsByType) -> list[Profile]:
        return options.get_instances_of(Profile)

    @staticmethod
    def from_settings(settings: BedrockSettings) -> list[Profile]:
        profiles: list[Profile] = []
        for name, decl in settings.profiles.items():
            if not decl.enabled:
                continue
            profiles.append(instantiate_profile(name, decl))
        return profiles

    @staticmethod
    def launching(
        profiles: Iterable[Profile],
        platform: Platform,
        meta: type[Application],
        options: OptionsByType,
        *,
        log_sink: object | None = None,
    ) -> None:
        # Any failure aborts the launch before a process exists.
        for profile in profiles:
            try:
                profile.on_launching(platform, meta, options)
            except Exception as exc:
                emit_log(
                    log_sink,
                    level="error",
                    message="launch.profile_failed",
                    fields={"profile": type(profile).__name__, "phase": "launching", "error_type": type(exc).__name__},
                )
                raise LaunchError(
                    f"Profile {type(profile).__name__} rejected the launch on {platform.name}: {exc}"
                ) from exc

    @staticmethod
    def launched(
        profiles: Iterable[Profile],
        platform: Platform,
        application: Application,
        options: OptionsByType,
        *,
        log_sink: object | None = None,
    ) -> None:
        for profile in profiles:
            try:
                profile.on_launched(platform, application, options)
            except Exception as exc:
                emit_log(
                    log_sink,
                    level="error",
                    message="launch.profile_failed",
                    fields={"profile": type(profile).__name__, "phase": "launched", "error_type": type(exc).__name__},
                )
                raise LaunchError(
                    f"Profile {type(profile).__name__} failed after launching {application.display_name}: {exc}"
                ) from exc

    @staticmethod
    def closing(
        profiles: Iterable[Profile],
        platform: Platform,
        application: Application,
        options: OptionsByType,
        *,
        log_sink: object | None = None,
    ) -> None:
        # Best effort: teardown continues whatever a profile raises.
        for profile in profiles:
            try:
                profile.on_closing(platform, application, options)
            except Exception as exc:
                emit_log(
                    log_sink,
                    level="warning",
                    message="launch.profile_closing_failed",
                    fields={
                        "profile": type(profile).__name__,
                        "application": application.display_name,
                        "error_type": type(exc).__name__,
                        "error": str(exc),
                    },
                )


def instantiate_profile(name: str, decl: ProfileDecl) -> Profile:
    module_name, _, attr = decl.target.partition(":")
    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise ConfigError(f"profiles.{name}: unable to import '{module_name}': {exc}") from exc
    factory: Any = getattr(module, attr, None)
    if factory is None:
        raise ConfigError(f"profiles.{name}: '{decl.target}' does not exist")
    try:
        profile = factory(**decl.settings)
    except TypeError as exc:
        raise ConfigError(f"profiles.{name}: invalid settings for '{decl.target}': {exc}") from exc
    if not isinstance(profile, Profile) or not isinstance(profile, Option):
        raise ConfigError(f"profiles.{name}: '{decl.target}' must build a Profile option")
    return profile
