from __future__ import annotations

from pathlib import Path

import pytest

from bedrock.errors import ConfigurationError
from bedrock.options import OptionsByType
from bedrock.runtime.options import (
    Argument,
    Arguments,
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


def test_resource_limits_compose_keeps_self_fields_first() -> None:
    assert ResourceLimits(512, None).compose(ResourceLimits(None, 30)) == ResourceLimits(512, 30)
    assert ResourceLimits(512, 10).compose(ResourceLimits(1024, 30)) == ResourceLimits(512, 10)


def test_resource_limits_reject_non_positive_values() -> None:
    with pytest.raises(ConfigurationError):
        ResourceLimits(max_memory_bytes=0)


def test_arguments_without_removes_matching_value() -> None:
    arguments = Arguments.of("1", "2", "3")
    assert arguments.without("2").resolve() == ["1", "3"]
    assert arguments.without("9") is arguments


def test_named_and_computed_arguments_resolve_at_launch() -> None:
    arguments = Arguments.of(Argument.named("--port", 8080), Argument(lambda: "late"))
    assert arguments.resolve() == ["--port=8080", "late"]


def test_environment_variables_replace_by_name() -> None:
    options = OptionsByType.of(EnvironmentVariable("A", "1"), EnvironmentVariable("B", "2"))
    options.add(EnvironmentVariable("A", "3"))
    variables = options.get(EnvironmentVariables)
    assert [(variable.name, variable.value) for variable in variables] == [("A", "3"), ("B", "2")]


def test_environment_inherits_this_application_by_default() -> None:
    variables = EnvironmentVariables.inherited().with_(EnvironmentVariable("EXTRA", "x"))
    resolved = variables.resolve({"PATH": "/bin", "DROP": "me"})
    assert resolved == {"PATH": "/bin", "DROP": "me", "EXTRA": "x"}
    assert variables.replaces_environment


def test_environment_none_value_unsets_inherited_variable() -> None:
    variables = EnvironmentVariables.inherited().with_(EnvironmentVariable("DROP"))
    assert variables.resolve({"PATH": "/bin", "DROP": "me"}) == {"PATH": "/bin"}


def test_custom_environment_starts_empty() -> None:
    variables = EnvironmentVariables.custom(ONLY="1")
    assert variables.source is EnvironmentSource.CUSTOM
    assert variables.resolve({"PATH": "/bin"}) == {"ONLY": "1"}


def test_target_platform_environment_keeps_overrides_only() -> None:
    variables = EnvironmentVariables.of_platform().with_(EnvironmentVariable("DROP"))
    assert variables.resolve({"PATH": "/bin"}) == {"DROP": None}
    assert not variables.replaces_environment


def test_environment_iterator_values_fail_when_exhausted() -> None:
    variable = EnvironmentVariable("NODE_ID", iter(["n1"]))
    assert variable.resolve() == "n1"
    with pytest.raises(ConfigurationError, match="NODE_ID"):
        variable.resolve()


def test_system_properties_keep_last_value_per_name() -> None:
    options = OptionsByType.of(SystemProperty("a", 1), SystemProperty("b", "x"), SystemProperty("a", 2))
    assert options.get(SystemProperties).resolve() == {"b": "x", "a": "2"}


def test_ports_compose_as_union() -> None:
    options = OptionsByType.of(Ports.of(http=8080))
    options.add(Ports.of(http=9090, admin=9091))
    ports = options.get(Ports)
    assert ports.get("http") == Port("http", 8080)
    assert ports.get("admin") == Port("admin", 9091)


def test_executable_requires_module_and_function() -> None:
    executable = Executable("package.app:main")
    assert (executable.module, executable.function) == ("package.app", "main")
    with pytest.raises(ConfigurationError):
        Executable("package.app")


def test_working_directory_and_start_method_defaults() -> None:
    options = OptionsByType.empty()
    assert options.get(WorkingDirectory).path == Path.cwd()
    assert options.get(StartMethod).name == "spawn"
    with pytest.raises(ConfigurationError):
        StartMethod("thread")
