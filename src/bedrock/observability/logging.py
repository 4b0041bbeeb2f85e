from __future__ import annotations

import json
import sys
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from threading import Lock
from typing import Protocol

from bedrock.config.settings import LoggingSettings

_LEVELS = {"debug": 10, "info": 20, "warning": 30, "error": 40}


@dataclass(frozen=True, slots=True)
class LogMessage:
    # Structured log payload emitted by launchers, channels and profiles.
    level: str
    message: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(tz=UTC))
    fields: dict[str, object] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.level or not self.message:
            raise ValueError("LogMessage requires non-empty level/message")


class LogSink(Protocol):
    def emit(self, message: LogMessage) -> None: ...


class StdoutLogSink:
    # One JSON object per line on stdout.
    def emit(self, message: LogMessage) -> None:
        print(json.dumps(_log_to_dict(message), separators=(",", ":"), ensure_ascii=False, default=str))

    def close(self) -> None:
        sys.stdout.flush()


class JsonlLogSink:
    # File-backed structured log sink for launch and channel diagnostics.
    def __init__(self, path: Path) -> None:
        self._path = path
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._file = self._path.open("a", encoding="utf-8")
        self._lock = Lock()

    @property
    def path(self) -> Path:
        return self._path

    def emit(self, message: LogMessage) -> None:
        payload = json.dumps(_log_to_dict(message), separators=(",", ":"), ensure_ascii=False, default=str)
        with self._lock:
            self._file.write(payload + "\n")
            self._file.flush()

    def close(self) -> None:
        with self._lock:
            self._file.close()


class MemoryLogSink:
    # Keeps records in memory; used by tests and by diagnostics snapshots.
    def __init__(self) -> None:
        self._lock = Lock()
        self.records: list[LogMessage] = []

    def emit(self, message: LogMessage) -> None:
        with self._lock:
            self.records.append(message)

    def messages(self) -> list[str]:
        with self._lock:
            return [record.message for record in self.records]

    def close(self) -> None:
        return None


@dataclass(slots=True)
class FanoutLogSink:
    sinks: list[object]

    def emit(self, message: LogMessage) -> None:
        for sink in list(self.sinks):
            emit = getattr(sink, "emit", None)
            if not callable(emit):
                continue
            try:
                emit(message)
            except Exception:
                continue

    def close(self) -> None:
        for sink in list(self.sinks):
            close = getattr(sink, "close", None)
            if not callable(close):
                continue
            try:
                close()
            except Exception:
                continue


@dataclass(slots=True)
class LevelFilterSink:
    # Drops records below the configured level before delegating.
    sink: object
    level: str = "info"

    def emit(self, message: LogMessage) -> None:
        if _LEVELS.get(message.level, 20) < _LEVELS.get(self.level, 20):
            return
        emit_log(self.sink, level=message.level, message=message.message, fields=message.fields)

    def close(self) -> None:
        close_log_sink(self.sink)


def resolve_log_sink(settings: LoggingSettings | None) -> object | None:
    # Builds the sink described by logging settings; None when no exporter is configured.
    if settings is None:
        return None
    sinks: list[object] = []
    for exporter in settings.exporters:
        if exporter.kind == "stdout":
            sinks.append(StdoutLogSink())
        elif exporter.kind == "memory":
            sinks.append(MemoryLogSink())
        elif exporter.kind == "jsonl":
            if not exporter.path:
                raise ValueError("logging.exporters[jsonl].path must be a non-empty string")
            sinks.append(JsonlLogSink(Path(exporter.path)))
    if not sinks:
        return None
    sink: object = sinks[0] if len(sinks) == 1 else FanoutLogSink(sinks=sinks)
    if settings.level != "debug":
        sink = LevelFilterSink(sink=sink, level=settings.level)
    return sink


def emit_log(
    sink: object | None,
    *,
    level: str,
    message: str,
    fields: dict[str, object] | None = None,
) -> None:
    # Best-effort emission: a broken sink never fails the caller.
    emit = getattr(sink, "emit", None)
    if not callable(emit):
        return
    try:
        emit(
            LogMessage(
                level=level,
                message=message,
                timestamp=datetime.now(tz=UTC),
                fields=dict(fields or {}),
            )
        )
    except Exception:
        return


def close_log_sink(sink: object | None) -> None:
    close = getattr(sink, "close", None)
    if callable(close):
        try:
            close()
        except Exception:
            return


def _log_to_dict(message: LogMessage) -> dict[str, object]:
    return {
        "level": message.level,
        "message": message.message,
        "timestamp": message.timestamp.isoformat().replace("+00:00", "Z"),
        "fields": message.fields,
    }
