from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from bedrock.config.loader import ConfigError, load_yaml_config

CONFIG_PATH_ENV = "BEDROCK_CONFIG"
TIMEOUT_ENV = "BEDROCK_TIMEOUT_SECONDS"

# Settings models map the bedrock YAML sections to typed structures.


class LogExporterDecl(BaseModel):
    # One structured-log exporter; jsonl exporters need a target path.
    model_config = ConfigDict(extra="forbid")
    kind: Literal["stdout", "jsonl", "memory"]
    path: str | None = None

    @field_validator("path")
    @classmethod
    def _non_empty_path(cls, value: str | None) -> str | None:
        if value is not None and not value.strip():
            raise ValueError("path must be a non-empty string")
        return value


class LoggingSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")
    level: str = "info"
    exporters: list[LogExporterDecl] = Field(default_factory=list)


class ProfileDecl(BaseModel):
    # Profile declared in configuration: "module.path:ClassName" plus constructor keywords.
    model_config = ConfigDict(extra="forbid")
    target: str
    enabled: bool = True
    settings: dict[str, Any] = Field(default_factory=dict)

    @field_validator("target")
    @classmethod
    def _target_format(cls, value: str) -> str:
        module_name, _, attr = value.partition(":")
        if not module_name.strip() or not attr.strip():
            raise ValueError("target must use module.path:ClassName format")
        return value


class BedrockSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")
    default_timeout_seconds: float = Field(default=60.0, gt=0)
    retry_frequency_ms: int = Field(default=250, gt=0)
    launch_logging: bool = True
    diagnostics: bool = False
    start_method: Literal["spawn", "fork", "forkserver"] = "spawn"
    profiles: dict[str, ProfileDecl] = Field(default_factory=dict)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


def settings_from_mapping(raw: Mapping[str, object]) -> BedrockSettings:
    # Accepts either the bare settings mapping or one nested under a "bedrock" key.
    section = raw.get("bedrock", raw) if isinstance(raw, Mapping) else raw
    if not isinstance(section, Mapping):
        raise ConfigError("bedrock config section must be a mapping")
    try:
        return BedrockSettings.model_validate(dict(section))
    except ValidationError as exc:
        raise ConfigError(f"Invalid bedrock configuration: {exc}") from exc


def load_settings(
    path: Path | None = None,
    *,
    environ: Mapping[str, str] | None = None,
) -> BedrockSettings:
    # File settings (explicit path or BEDROCK_CONFIG) with environment overrides applied last.
    env = os.environ if environ is None else environ
    if path is None:
        configured = env.get(CONFIG_PATH_ENV)
        path = Path(configured) if configured else None
    raw: dict[str, object] = load_yaml_config(path) if path is not None else {}
    settings = settings_from_mapping(raw)

    timeout_override = env.get(TIMEOUT_ENV)
    if timeout_override:
        try:
            timeout_seconds = float(timeout_override)
        except ValueError as exc:
            raise ConfigError(f"{TIMEOUT_ENV} must be a number of seconds") from exc
        if timeout_seconds <= 0:
            raise ConfigError(f"{TIMEOUT_ENV} must be > 0")
        settings = settings.model_copy(update={"default_timeout_seconds": timeout_seconds})
    return settings
