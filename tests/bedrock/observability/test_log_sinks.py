from __future__ import annotations

import json
from pathlib import Path

import pytest

from bedrock.config import LogExporterDecl, LoggingSettings
from bedrock.observability import (
    FanoutLogSink,
    JsonlLogSink,
    LevelFilterSink,
    LogMessage,
    MemoryLogSink,
    StdoutLogSink,
    emit_log,
    resolve_log_sink,
)


class _BrokenSink:
    def emit(self, message: LogMessage) -> None:
        raise RuntimeError("sink down")


def test_log_message_requires_level_and_message() -> None:
    with pytest.raises(ValueError):
        LogMessage(level="", message="launch.starting")
    with pytest.raises(ValueError):
        LogMessage(level="info", message="")


def test_emit_log_is_best_effort() -> None:
    # Broken or missing sinks never fail the caller.
    emit_log(None, level="info", message="launch.starting")
    emit_log(object(), level="info", message="launch.starting")
    emit_log(_BrokenSink(), level="info", message="launch.starting")


def test_jsonl_sink_writes_one_record_per_line(tmp_path: Path) -> None:
    path = tmp_path / "logs" / "bedrock.jsonl"
    sink = JsonlLogSink(path)
    emit_log(sink, level="info", message="launch.launched", fields={"pid": 42, "path": tmp_path})
    emit_log(sink, level="debug", message="channel.opened")
    sink.close()

    records = [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]
    assert [record["message"] for record in records] == ["launch.launched", "channel.opened"]
    assert records[0]["fields"] == {"pid": 42, "path": str(tmp_path)}
    assert records[0]["timestamp"].endswith("Z")


def test_stdout_sink_prints_json(capsys: pytest.CaptureFixture[str]) -> None:
    emit_log(StdoutLogSink(), level="warning", message="launch.terminating", fields={"pid": 7})
    record = json.loads(capsys.readouterr().out)
    assert record["level"] == "warning"
    assert record["fields"] == {"pid": 7}


def test_fanout_continues_after_a_failing_sink() -> None:
    memory = MemoryLogSink()
    fanout = FanoutLogSink(sinks=[_BrokenSink(), memory])
    emit_log(fanout, level="info", message="launch.closed")
    assert memory.messages() == ["launch.closed"]


def test_level_filter_drops_lower_levels() -> None:
    memory = MemoryLogSink()
    sink = LevelFilterSink(sink=memory, level="warning")
    for level in ("debug", "info", "warning", "error"):
        emit_log(sink, level=level, message=f"record.{level}")
    assert memory.messages() == ["record.warning", "record.error"]


def test_resolve_log_sink_from_settings(tmp_path: Path) -> None:
    assert resolve_log_sink(None) is None
    assert resolve_log_sink(LoggingSettings()) is None

    debug = resolve_log_sink(LoggingSettings(level="debug", exporters=[LogExporterDecl(kind="memory")]))
    assert isinstance(debug, MemoryLogSink)

    filtered = resolve_log_sink(
        LoggingSettings(
            exporters=[
                LogExporterDecl(kind="memory"),
                LogExporterDecl(kind="jsonl", path=str(tmp_path / "out.jsonl")),
            ]
        )
    )
    assert isinstance(filtered, LevelFilterSink)
    assert isinstance(filtered.sink, FanoutLogSink)
    filtered.close()

    with pytest.raises(ValueError):
        resolve_log_sink(LoggingSettings(exporters=[LogExporterDecl(kind="jsonl")]))
