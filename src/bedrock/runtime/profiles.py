from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal

from bedrock.errors import ConfigurationError
from bedrock.options.container import OptionsByType
from bedrock.options.option import Option, default
from bedrock.runtime.options import Argument, EnvironmentVariable, SystemProperty
from bedrock.runtime.ports import DEFAULT_BIND_ADDRESS, AvailablePortIterator
from bedrock.runtime.profile import Profile

if TYPE_CHECKING:
    from bedrock.runtime.application import Application
    from bedrock.runtime.platform import Platform

DEBUG_ADDRESS_PROPERTY = "bedrock.debug.address"
DEBUG_MODE_PROPERTY = "bedrock.debug.mode"
DEBUG_SUSPEND_PROPERTY = "bedrock.debug.suspend"
COVERAGE_CONFIG_ENV = "COVERAGE_PROCESS_START"
COVERAGE_DATA_ENV = "COVERAGE_FILE"


@dataclass(frozen=True, slots=True)
class TransportAddress(Option):
    host: str
    port: int

    def __post_init__(self) -> None:
        if not self.host:
            raise ConfigurationError("TransportAddress.host must be a non-empty string")
        if not isinstance(self.port, int) or isinstance(self.port, bool) or not 0 < self.port < 65536:
            raise ConfigurationError("TransportAddress.port must be within 1..65535")

    @classmethod
    def parse(cls, value: str) -> TransportAddress:
        host, _, port = value.rpartition(":")
        if not host or not port.isdigit():
            raise ConfigurationError(f"Transport address '{value}' must use host:port format")
        return cls(host, int(port))

    def __str__(self) -> str:
        return f"{self.host}:{self.port}"


@dataclass(frozen=True, slots=True)
class RemoteDebugging(Profile, Option):
    # Publishes a debugger address to the launched process.
    # "listen": the child listens (an available local port is allocated when no address is given).
    # "attach": the child connects out to a debugger that must already be listening at `address`.
    enabled: bool = False
    mode: Literal["listen", "attach"] = "listen"
    start_suspended: bool = False
    address: str | None = None

    def __post_init__(self) -> None:
        if self.mode not in ("listen", "attach"):
            raise ConfigurationError(f"RemoteDebugging.mode must be 'listen' or 'attach', got '{self.mode}'")

    @classmethod
    @default
    def disabled(cls) -> RemoteDebugging:
        return cls(False)

    @classmethod
    def listening(cls, address: str | None = None, *, start_suspended: bool = False) -> RemoteDebugging:
        return cls(True, "listen", start_suspended, address)

    @classmethod
    def attaching_to(cls, address: str | None, *, start_suspended: bool = False) -> RemoteDebugging:
        return cls(True, "attach", start_suspended, address)

    def resolve_address(self, options: OptionsByType) -> TransportAddress:
        if self.address is not None:
            return TransportAddress.parse(self.address)
        configured = options.get(TransportAddress)
        if configured is not None:
            return configured
        if self.mode == "attach":
            raise ConfigurationError("RemoteDebugging in attach mode requires a debugger address")
        port = next(AvailablePortIterator(), None)
        if port is None:
            raise ConfigurationError("No available port for remote debugging")
        return TransportAddress(DEFAULT_BIND_ADDRESS, port)

    def on_launching(self, platform: Platform, meta: type[Application], options: OptionsByType) -> None:
        if not self.enabled:
            return
        address = self.resolve_address(options)
        options.add(address)
        options.add(Argument.named("--debug-address", str(address)))
        options.add(SystemProperty(DEBUG_ADDRESS_PROPERTY, str(address)))
        options.add(SystemProperty(DEBUG_MODE_PROPERTY, self.mode))
        options.add(SystemProperty(DEBUG_SUSPEND_PROPERTY, "true" if self.start_suspended else "false"))


@dataclass(frozen=True, slots=True)
class CoverageProfile(Profile, Option):
    # Asks the launched interpreter to start coverage measurement.
    enabled: bool = True
    config_file: str = ".coveragerc"
    data_file: str | None = None

    @classmethod
    def disabled(cls) -> CoverageProfile:
        return cls(False)

    def on_launching(self, platform: Platform, meta: type[Application], options: OptionsByType) -> None:
        if not self.enabled:
            return
        options.add(EnvironmentVariable(COVERAGE_CONFIG_ENV, self.config_file))
        if self.data_file is not None:
            options.add(EnvironmentVariable(COVERAGE_DATA_ENV, self.data_file))
