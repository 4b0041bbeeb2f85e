from __future__ import annotations

import pytest

from bedrock.config import BedrockSettings, ConfigError, ProfileDecl
from bedrock.errors import ConfigurationError
from bedrock.options import OptionsByType
from bedrock.runtime import (
    Arguments,
    CoverageProfile,
    EnvironmentVariables,
    Profiles,
    RemoteDebugging,
    SystemProperties,
    TransportAddress,
)
from bedrock.runtime.profile import instantiate_profile


def _settings(**profiles: ProfileDecl) -> BedrockSettings:
    return BedrockSettings(profiles=profiles)


def test_from_settings_builds_enabled_profiles_only() -> None:
    settings = _settings(
        debug=ProfileDecl(
            target="bedrock.runtime.profiles:RemoteDebugging",
            settings={"enabled": True, "address": "127.0.0.1:5005"},
        ),
        coverage=ProfileDecl(target="bedrock.runtime.profiles:CoverageProfile", enabled=False),
    )
    profiles = Profiles.from_settings(settings)
    assert profiles == [RemoteDebugging(enabled=True, address="127.0.0.1:5005")]


def test_instantiate_profile_reports_missing_module() -> None:
    with pytest.raises(ConfigError, match="profiles.bad: unable to import"):
        instantiate_profile("bad", ProfileDecl(target="bedrock.no_such_module:Thing"))


def test_instantiate_profile_reports_missing_attribute() -> None:
    with pytest.raises(ConfigError, match="does not exist"):
        instantiate_profile("bad", ProfileDecl(target="bedrock.runtime.profiles:NoSuchProfile"))


def test_instantiate_profile_reports_invalid_settings() -> None:
    decl = ProfileDecl(target="bedrock.runtime.profiles:CoverageProfile", settings={"unknown": 1})
    with pytest.raises(ConfigError, match="invalid settings"):
        instantiate_profile("coverage", decl)


def test_instantiate_profile_requires_profile_option() -> None:
    decl = ProfileDecl(target="bedrock.runtime.profiles:TransportAddress", settings={"host": "h", "port": 1})
    with pytest.raises(ConfigError, match="must build a Profile option"):
        instantiate_profile("address", decl)


def test_remote_debugging_disabled_by_default_changes_nothing() -> None:
    options = OptionsByType.empty()
    debugging = options.get(RemoteDebugging)
    debugging.on_launching(None, None, options)  # type: ignore[arg-type]
    assert debugging.enabled is False
    assert options.get_or_default(TransportAddress, None) is None
    assert options.get(Arguments).resolve() == []


def test_remote_debugging_listen_publishes_address() -> None:
    options = OptionsByType.empty()
    RemoteDebugging.listening("127.0.0.1:5005", start_suspended=True).on_launching(None, None, options)  # type: ignore[arg-type]

    assert options.get(TransportAddress) == TransportAddress("127.0.0.1", 5005)
    assert options.get(Arguments).resolve() == ["--debug-address=127.0.0.1:5005"]
    assert options.get(SystemProperties).resolve() == {
        "bedrock.debug.address": "127.0.0.1:5005",
        "bedrock.debug.mode": "listen",
        "bedrock.debug.suspend": "true",
    }


def test_remote_debugging_listen_allocates_port_when_unset() -> None:
    options = OptionsByType.empty()
    RemoteDebugging.listening().on_launching(None, None, options)  # type: ignore[arg-type]
    address = options.get(TransportAddress)
    assert address.host == "127.0.0.1"
    assert 30000 <= address.port <= 65535


def test_remote_debugging_uses_configured_transport_address() -> None:
    options = OptionsByType.of(TransportAddress("10.0.0.5", 8000))
    RemoteDebugging.attaching_to(None).on_launching(None, None, options)  # type: ignore[arg-type]
    assert options.get(SystemProperties).get("bedrock.debug.mode").value == "attach"
    assert options.get(SystemProperties).get("bedrock.debug.address").value == "10.0.0.5:8000"


def test_remote_debugging_attach_requires_address() -> None:
    with pytest.raises(ConfigurationError, match="attach mode requires"):
        RemoteDebugging.attaching_to(None).on_launching(None, None, OptionsByType.empty())  # type: ignore[arg-type]


def test_remote_debugging_rejects_unknown_mode() -> None:
    with pytest.raises(ConfigurationError):
        RemoteDebugging(True, "broadcast")  # type: ignore[arg-type]


def test_transport_address_parse_and_validation() -> None:
    assert str(TransportAddress.parse("localhost:9000")) == "localhost:9000"
    with pytest.raises(ConfigurationError):
        TransportAddress.parse("localhost")
    with pytest.raises(ConfigurationError):
        TransportAddress("localhost", 70000)


def test_coverage_profile_sets_environment() -> None:
    options = OptionsByType.empty()
    CoverageProfile(data_file="/tmp/.coverage.child").on_launching(None, None, options)  # type: ignore[arg-type]
    environment = options.get(EnvironmentVariables)
    assert environment.get("COVERAGE_PROCESS_START").value == ".coveragerc"
    assert environment.get("COVERAGE_FILE").value == "/tmp/.coverage.child"

    untouched = OptionsByType.empty()
    CoverageProfile.disabled().on_launching(None, None, untouched)  # type: ignore[arg-type]
    assert untouched.get(EnvironmentVariables).get("COVERAGE_PROCESS_START") is None
