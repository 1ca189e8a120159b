"""JSON payload conversion for results, events and command configs."""

from __future__ import annotations

import io
from collections.abc import Mapping
from dataclasses import fields, is_dataclass
from enum import Enum
from pathlib import Path
from typing import Any, cast


def _describe_stream(stream: io.IOBase) -> str:
    name = getattr(stream, "name", None)
    if name is not None:
        return f"<stream {name}>"
    return f"<{type(stream).__name__}>"


def to_jsonable(value: Any) -> Any:
    """Convert supported values to JSON-serializable payloads.

    Dataclass fields are walked directly rather than through `asdict`, which
    deep-copies: configs carry pipe targets, input streams and event sinks,
    and those are rendered as short descriptions instead.
    """

    if is_dataclass(value) and not isinstance(value, type):
        return {field.name: to_jsonable(getattr(value, field.name)) for field in fields(value)}
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, Mapping):
        typed_map = cast("Mapping[object, object]", value)
        return {str(key): to_jsonable(item) for key, item in typed_map.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        typed_seq = cast("list[object] | tuple[object, ...] | set[object]", value)
        return [to_jsonable(item) for item in typed_seq]
    if isinstance(value, io.IOBase):
        return _describe_stream(value)
    if callable(value):
        return getattr(value, "__qualname__", type(value).__qualname__)
    return value
