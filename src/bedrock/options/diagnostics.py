from __future__ import annotations

from dataclasses import dataclass

from bedrock.options.option import Option, default


@dataclass(frozen=True, slots=True)
class Diagnostics(Option):
    # Enables diagnostic output (launch tables, channel traffic records).
    enabled: bool = False

    @classmethod
    @default
    def disabled(cls) -> Diagnostics:
        return cls(False)

    @classmethod
    def on(cls) -> Diagnostics:
        return cls(True)

    def is_enabled(self) -> bool:
        return self.enabled


@dataclass(frozen=True, slots=True)
class LaunchLogging(Option):
    # Controls whether launchers emit launch.* lifecycle log records.
    enabled: bool = True

    @classmethod
    @default
    def enabled_by_default(cls) -> LaunchLogging:
        return cls(True)

    @classmethod
    def disabled(cls) -> LaunchLogging:
        return cls(False)

    def is_enabled(self) -> bool:
        return self.enabled
