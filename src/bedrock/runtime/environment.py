from __future__ import annotations

from pathlib import Path
from threading import Lock
from typing import cast

from bedrock.config.settings import BedrockSettings, load_settings
from bedrock.observability.logging import close_log_sink, resolve_log_sink
from bedrock.runtime.platform import LocalPlatform, Platform


class RuntimeEnvironment:
    # Explicit handle to settings, log sink and platforms; pass it to test fixtures instead of using globals.
    def __init__(self, settings: BedrockSettings, *, log_sink: object | None = None) -> None:
        self._settings = settings
        self._log_sink = log_sink
        self._platforms: dict[str, Platform] = {}
        self._lock = Lock()

    @classmethod
    def from_settings(cls, settings: BedrockSettings | None = None) -> RuntimeEnvironment:
        resolved = settings if settings is not None else BedrockSettings()
        return cls(resolved, log_sink=resolve_log_sink(resolved.logging))

    @classmethod
    def load(cls, path: Path | None = None) -> RuntimeEnvironment:
        return cls.from_settings(load_settings(path))

    @property
    def settings(self) -> BedrockSettings:
        return self._settings

    @property
    def log_sink(self) -> object | None:
        return self._log_sink

    def local_platform(self) -> LocalPlatform:
        return cast(LocalPlatform, self.platform("local"))

    def platform(self, name: str) -> Platform:
        with self._lock:
            platform = self._platforms.get(name)
            if platform is None and name == "local":
                platform = LocalPlatform.from_settings(self._settings, log_sink=self._log_sink)
                self._platforms[name] = platform
        if platform is None:
            raise KeyError(f"Unknown platform '{name}'")
        return platform

    def register_platform(self, platform: Platform) -> None:
        with self._lock:
            if platform.name in self._platforms:
                raise ValueError(f"Platform '{platform.name}' is already registered")
            self._platforms[platform.name] = platform

    def platforms(self) -> list[Platform]:
        with self._lock:
            return list(self._platforms.values())

    def close(self) -> None:
        close_log_sink(self._log_sink)

    def __enter__(self) -> RuntimeEnvironment:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
