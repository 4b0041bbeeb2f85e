from __future__ import annotations

import enum
import os
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

from bedrock.errors import ConfigurationError
from bedrock.options.option import Collectable, Collector, ComposableOption, Option, default

# Launch-time options consumed by launchers and child processes.


@dataclass(frozen=True, slots=True)
class Argument(Collectable):
    # One command-line argument; the value may be a callable resolved at launch time.
    value: Any
    name: str | None = None
    separator: str = "="

    @classmethod
    def of(cls, value: object) -> Argument:
        return value if isinstance(value, Argument) else cls(value)

    @classmethod
    def named(cls, name: str, value: object, separator: str = "=") -> Argument:
        if not name:
            raise ConfigurationError("Argument name must be a non-empty string")
        return cls(value, name, separator)

    def resolve(self) -> str:
        value = self.value() if callable(self.value) else self.value
        rendered = "" if value is None else str(value)
        if self.name is None:
            return rendered
        return f"{self.name}{self.separator}{rendered}"


@dataclass(frozen=True, slots=True)
class Arguments(Collector[Argument]):
    # Ordered arguments; duplicates are allowed, removal drops the first match.
    values: tuple[Argument, ...] = ()

    @classmethod
    @default
    def empty(cls) -> Arguments:
        return cls()

    @classmethod
    def of(cls, *values: object) -> Arguments:
        return cls(tuple(Argument.of(value) for value in values))

    def with_(self, item: object) -> Arguments:
        if item is None:
            return self
        return Arguments(self.values + (Argument.of(item),))

    def without(self, item: object) -> Arguments:
        argument = Argument.of(item)
        if argument not in self.values:
            return self
        index = self.values.index(argument)
        return Arguments(self.values[:index] + self.values[index + 1 :])

    def __iter__(self) -> Iterator[Argument]:
        return iter(self.values)

    def __len__(self) -> int:
        return len(self.values)

    def resolve(self) -> list[str]:
        return [argument.resolve() for argument in self.values]


Argument.collector_class = Arguments


@dataclass(frozen=True, slots=True)
class EnvironmentVariable(Collectable):
    # A None value unsets the variable in the launched process.
    # Callable values are called at launch; iterator values yield one value per launch.
    name: str
    value: Any = None

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name:
            raise ConfigurationError("EnvironmentVariable.name must be a non-empty string")

    @classmethod
    def of(cls, name: str, value: object = None) -> EnvironmentVariable:
        return cls(name, value)

    def resolve(self) -> str | None:
        value = self.value
        if isinstance(value, Iterator):
            try:
                value = next(value)
            except StopIteration as exc:
                raise ConfigurationError(
                    f"No more values available for the environment variable {self.name}"
                ) from exc
        elif callable(value):
            value = value()
        return None if value is None else str(value)


class EnvironmentSource(enum.Enum):
    # Where the launched process takes its base environment from.
    THIS_APPLICATION = "this_application"
    TARGET_PLATFORM = "target_platform"
    CUSTOM = "custom"


@dataclass(frozen=True, slots=True)
class EnvironmentVariables(Collector[EnvironmentVariable]):
    source: EnvironmentSource = EnvironmentSource.THIS_APPLICATION
    variables: tuple[EnvironmentVariable, ...] = ()

    @classmethod
    @default
    def inherited(cls) -> EnvironmentVariables:
        return cls(EnvironmentSource.THIS_APPLICATION)

    @classmethod
    def of_platform(cls) -> EnvironmentVariables:
        return cls(EnvironmentSource.TARGET_PLATFORM)

    @classmethod
    def custom(cls, **values: object) -> EnvironmentVariables:
        result = cls(EnvironmentSource.CUSTOM)
        for name, value in values.items():
            result = result.with_(EnvironmentVariable(name, value))
        return result

    def with_(self, item: EnvironmentVariable) -> EnvironmentVariables:
        # A variable with the same name is replaced in place.
        if item is None:
            return self
        kept = tuple(variable for variable in self.variables if variable.name != item.name)
        if len(kept) == len(self.variables):
            return replace(self, variables=self.variables + (item,))
        return replace(
            self,
            variables=tuple(item if variable.name == item.name else variable for variable in self.variables),
        )

    def without(self, item: EnvironmentVariable) -> EnvironmentVariables:
        if item not in self.variables:
            return self
        return replace(self, variables=tuple(variable for variable in self.variables if variable != item))

    def __iter__(self) -> Iterator[EnvironmentVariable]:
        return iter(self.variables)

    def __len__(self) -> int:
        return len(self.variables)

    def get(self, name: str) -> EnvironmentVariable | None:
        for variable in self.variables:
            if variable.name == name:
                return variable
        return None

    def holds(self, item: EnvironmentVariable) -> bool:
        return self.get(item.name) is not None

    @property
    def replaces_environment(self) -> bool:
        # True when the launched process must not keep its own environment.
        return self.source is not EnvironmentSource.TARGET_PLATFORM

    def resolve(self, current: Mapping[str, str] | None = None) -> dict[str, str | None]:
        values: dict[str, str | None] = {}
        if self.source is EnvironmentSource.THIS_APPLICATION:
            values.update(os.environ if current is None else current)
        for variable in self.variables:
            values[variable.name] = variable.resolve()
        if self.replaces_environment:
            return {name: value for name, value in values.items() if value is not None}
        return values


EnvironmentVariable.collector_class = EnvironmentVariables


@dataclass(frozen=True, slots=True)
class SystemProperty(Collectable):
    # Key/value readable inside the launched process via bedrock.runtime.child.system_property.
    name: str
    value: Any = ""

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name:
            raise ConfigurationError("SystemProperty.name must be a non-empty string")

    @classmethod
    def of(cls, name: str, value: object = "") -> SystemProperty:
        return cls(name, value)

    def resolve(self) -> str:
        value = self.value() if callable(self.value) else self.value
        return "" if value is None else str(value)


@dataclass(frozen=True, slots=True)
class SystemProperties(Collector[SystemProperty]):
    properties: tuple[SystemProperty, ...] = ()

    @classmethod
    @default
    def empty(cls) -> SystemProperties:
        return cls()

    @classmethod
    def of(cls, **values: object) -> SystemProperties:
        result = cls()
        for name, value in values.items():
            result = result.with_(SystemProperty(name, value))
        return result

    def with_(self, item: SystemProperty) -> SystemProperties:
        if item is None:
            return self
        kept = tuple(prop for prop in self.properties if prop.name != item.name)
        return SystemProperties(kept + (item,))

    def without(self, item: SystemProperty) -> SystemProperties:
        if item not in self.properties:
            return self
        return SystemProperties(tuple(prop for prop in self.properties if prop != item))

    def __iter__(self) -> Iterator[SystemProperty]:
        return iter(self.properties)

    def __len__(self) -> int:
        return len(self.properties)

    def get(self, name: str) -> SystemProperty | None:
        for prop in self.properties:
            if prop.name == name:
                return prop
        return None

    def holds(self, item: SystemProperty) -> bool:
        return self.get(item.name) is not None

    def resolve(self) -> dict[str, str]:
        return {prop.name: prop.resolve() for prop in self.properties}


SystemProperty.collector_class = SystemProperties


@dataclass(frozen=True, slots=True)
class WorkingDirectory(Option):
    path: Path

    def __post_init__(self) -> None:
        if not isinstance(self.path, Path):
            object.__setattr__(self, "path", Path(self.path))

    @classmethod
    @default
    def current_directory(cls) -> WorkingDirectory:
        return cls(Path.cwd())

    @classmethod
    def at(cls, path: str | os.PathLike[str]) -> WorkingDirectory:
        return cls(Path(path))


@dataclass(frozen=True, slots=True)
class DisplayName(Option):
    # Human-readable application name; also the launched process name.
    name: str

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name:
            raise ConfigurationError("DisplayName must be a non-empty string")

    @classmethod
    def of(cls, name: str) -> DisplayName:
        return cls(name)


@dataclass(frozen=True, slots=True)
class Executable(Option):
    # Entry point run inside the launched process, "package.module:function".
    target: str

    def __post_init__(self) -> None:
        module_name, _, attr = self.target.partition(":") if isinstance(self.target, str) else ("", "", "")
        if not module_name or not attr:
            raise ConfigurationError(f"Executable target '{self.target}' must use module.path:function format")

    @classmethod
    def named(cls, target: str) -> Executable:
        return cls(target)

    @property
    def module(self) -> str:
        return self.target.partition(":")[0]

    @property
    def function(self) -> str:
        return self.target.partition(":")[2]


@dataclass(frozen=True, slots=True)
class StartMethod(Option):
    # multiprocessing start method used by local launchers.
    name: str = "spawn"

    def __post_init__(self) -> None:
        if self.name not in ("spawn", "fork", "forkserver"):
            raise ConfigurationError(f"Unsupported start method '{self.name}'")

    @classmethod
    @default
    def spawn(cls) -> StartMethod:
        return cls("spawn")


@dataclass(frozen=True, slots=True)
class Port:
    name: str
    value: int

    def __post_init__(self) -> None:
        if not isinstance(self.value, int) or isinstance(self.value, bool) or not 0 < self.value < 65536:
            raise ConfigurationError(f"Port '{self.name}' must be within 1..65535")


@dataclass(frozen=True, slots=True)
class Ports(ComposableOption):
    # Named ports exposed by an application; composing keeps the union with self's entries first.
    ports: tuple[Port, ...] = ()

    @classmethod
    @default
    def empty(cls) -> Ports:
        return cls()

    @classmethod
    def of(cls, *ports: Port, **named: int) -> Ports:
        entries = list(ports) + [Port(name, value) for name, value in named.items()]
        return cls(tuple(entries))

    def compose(self, other: Ports) -> Ports:
        names = {port.name for port in self.ports}
        return Ports(self.ports + tuple(port for port in other.ports if port.name not in names))

    def get(self, name: str) -> Port | None:
        for port in self.ports:
            if port.name == name:
                return port
        return None

    def __iter__(self) -> Iterator[Port]:
        return iter(self.ports)


@dataclass(frozen=True, slots=True)
class ResourceLimits(ComposableOption):
    # Soft limits applied in the launched process (RLIMIT_AS / RLIMIT_CPU).
    max_memory_bytes: int | None = None
    max_cpu_seconds: int | None = None

    def __post_init__(self) -> None:
        for label, value in (("max_memory_bytes", self.max_memory_bytes), ("max_cpu_seconds", self.max_cpu_seconds)):
            if value is not None and (not isinstance(value, int) or value <= 0):
                raise ConfigurationError(f"ResourceLimits.{label} must be a positive integer")

    @classmethod
    def memory(cls, max_memory_bytes: int) -> ResourceLimits:
        return cls(max_memory_bytes=max_memory_bytes)

    @classmethod
    def cpu(cls, max_cpu_seconds: int) -> ResourceLimits:
        return cls(max_cpu_seconds=max_cpu_seconds)

    def compose(self, other: ResourceLimits) -> ResourceLimits:
        return ResourceLimits(
            self.max_memory_bytes if self.max_memory_bytes is not None else other.max_memory_bytes,
            self.max_cpu_seconds if self.max_cpu_seconds is not None else other.max_cpu_seconds,
        )
