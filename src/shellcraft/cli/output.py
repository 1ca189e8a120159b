"""CLI output formatting utilities."""

from __future__ import annotations

import json
import sys
from dataclasses import dataclass
from typing import Any, Literal, TextIO, cast

from shellcraft.lib.domain import ExecutionResult
from shellcraft.lib.events import LifecycleEvent
from shellcraft.lib.serialization import to_jsonable

OutputFormat = Literal["text", "json"]
type JSONScalar = str | int | float | bool | None
type JSONValue = JSONScalar | list["JSONValue"] | dict[str, "JSONValue"]


@dataclass(frozen=True, slots=True)
class OutputConfig:
    format: OutputFormat


def _to_json_value(value: Any) -> JSONValue:
    return cast("JSONValue", to_jsonable(value))


def result_payload(result: ExecutionResult) -> dict[str, JSONValue]:
    payload = cast("dict[str, JSONValue]", _to_json_value(result))
    payload["succeeded"] = result.succeeded
    return payload


def event_payload(event: LifecycleEvent) -> dict[str, JSONValue]:
    payload = cast("dict[str, JSONValue]", _to_json_value(event))
    return {"event": type(event).__name__, **payload}


def emit(value: Any, config: OutputConfig, *, stream: TextIO | None = None) -> None:
    """Emit one payload according to the configured output mode."""

    target = stream if stream is not None else sys.stdout
    payload = result_payload(value) if isinstance(value, ExecutionResult) else _to_json_value(value)
    if config.format == "json":
        print(json.dumps(payload, sort_keys=True), file=target)
        return
    if isinstance(payload, dict):
        for key in sorted(payload):
            print(f"{key}: {payload[key]}", file=target)
        return
    print(payload, file=target)


class EventPrinter:
    """Event sink that writes one JSON line per lifecycle event."""

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream if stream is not None else sys.stderr

    def __call__(self, event: LifecycleEvent) -> None:
        print(json.dumps(event_payload(event), sort_keys=True), file=self._stream, flush=True)
