from bedrock.observability.logging import (
    FanoutLogSink,
    JsonlLogSink,
    LevelFilterSink,
    LogMessage,
    LogSink,
    MemoryLogSink,
    StdoutLogSink,
    close_log_sink,
    emit_log,
    resolve_log_sink,
)

__all__ = [
    "FanoutLogSink",
    "JsonlLogSink",
    "LevelFilterSink",
    "LogMessage",
    "LogSink",
    "MemoryLogSink",
    "StdoutLogSink",
    "close_log_sink",
    "emit_log",
    "resolve_log_sink",
]
