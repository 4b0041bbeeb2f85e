from __future__ import annotations

from pathlib import Path

import yaml

from bedrock.errors import ConfigurationError


class ConfigError(ConfigurationError):
    # Raised for invalid bedrock configuration (fail fast).
    pass


def load_yaml_config(path: Path) -> dict[str, object]:
    # Framework-level YAML loader; returns a raw mapping for validation.
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Unable to read config file '{path}': {exc}") from exc
    try:
        raw = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Config file '{path}' is not valid YAML: {exc}") from exc
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigError("Config root must be a mapping")
    return raw
