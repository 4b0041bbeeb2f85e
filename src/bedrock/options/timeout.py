from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import timedelta

from bedrock.errors import ConfigurationError
from bedrock.options.option import Option, default

DEFAULT_TIMEOUT_SECONDS = 60.0
DEFAULT_RETRY_FREQUENCY_SECONDS = 0.25

_DURATION_PATTERN = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*(ms|s|m|h)?\s*$", re.IGNORECASE)
_UNIT_SECONDS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0}

DurationLike = float | int | str | timedelta


def to_seconds(duration: DurationLike) -> float:
    # Accepts seconds, timedelta, or "<number><ms|s|m|h>" strings (bare numbers are seconds).
    if isinstance(duration, bool):
        raise ConfigurationError("duration must not be a boolean")
    if isinstance(duration, timedelta):
        seconds = duration.total_seconds()
    elif isinstance(duration, (int, float)):
        seconds = float(duration)
    elif isinstance(duration, str):
        match = _DURATION_PATTERN.match(duration)
        if match is None:
            raise ConfigurationError(f"Invalid duration '{duration}'")
        unit = (match.group(2) or "s").lower()
        seconds = float(match.group(1)) * _UNIT_SECONDS[unit]
    else:
        raise ConfigurationError(f"Unsupported duration type {type(duration).__name__}")
    if seconds < 0:
        raise ConfigurationError("duration must be >= 0")
    return seconds


@dataclass(frozen=True, slots=True)
class Timeout(Option):
    # Upper bound for blocking waits on remote results and deferred conditions.
    seconds: float

    @classmethod
    @default
    def auto_detect(cls) -> Timeout:
        return cls(DEFAULT_TIMEOUT_SECONDS)

    @classmethod
    def after(cls, duration: DurationLike) -> Timeout:
        return cls(to_seconds(duration))

    @classmethod
    def of(cls, duration: DurationLike) -> Timeout:
        return cls.after(duration)

    def as_timedelta(self) -> timedelta:
        return timedelta(seconds=self.seconds)


@dataclass(frozen=True, slots=True)
class RetryFrequency(Option):
    # Delay between attempts while waiting for a deferred condition.
    seconds: float

    @classmethod
    @default
    def auto_detect(cls) -> RetryFrequency:
        return cls(DEFAULT_RETRY_FREQUENCY_SECONDS)

    @classmethod
    def every(cls, duration: DurationLike) -> RetryFrequency:
        seconds = to_seconds(duration)
        if seconds <= 0:
            raise ConfigurationError("retry frequency must be > 0")
        return cls(seconds)
