from bedrock.options.container import OptionsByType
from bedrock.options.decorations import Decoration, Decorations
from bedrock.options.diagnostics import Diagnostics, LaunchLogging
from bedrock.options.option import (
    Collectable,
    Collector,
    ComposableOption,
    Option,
    default,
    default_for,
    resolution_key,
)
from bedrock.options.timeout import RetryFrequency, Timeout, to_seconds

__all__ = [
    "Collectable",
    "Collector",
    "ComposableOption",
    "Decoration",
    "Decorations",
    "Diagnostics",
    "LaunchLogging",
    "Option",
    "OptionsByType",
    "RetryFrequency",
    "Timeout",
    "default",
    "default_for",
    "resolution_key",
    "to_seconds",
]
