from .loader import ConfigError, load_yaml_config
from .settings import (
    BedrockSettings,
    LogExporterDecl,
    LoggingSettings,
    ProfileDecl,
    load_settings,
    settings_from_mapping,
)

__all__ = [
    "BedrockSettings",
    "ConfigError",
    "LogExporterDecl",
    "LoggingSettings",
    "ProfileDecl",
    "load_settings",
    "load_yaml_config",
    "settings_from_mapping",
]
