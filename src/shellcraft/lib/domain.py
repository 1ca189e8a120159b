"""Core frozen domain dataclasses."""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, BinaryIO, cast

if TYPE_CHECKING:
    from pathlib import Path

    from shellcraft.lib.events import EventSink

NO_TIMEOUT: float | None = None


class TerminationMode(StrEnum):
    """How hard to stop a still-running child when execution is abandoned."""

    NO_KILL = "none"
    ROOT = "root"
    TREE = "tree"


@dataclass(frozen=True, slots=True)
class TextInput:
    """Literal text written to the child's stdin."""

    text: str


@dataclass(frozen=True, slots=True)
class StreamInput:
    """Readable binary stream copied to the child's stdin."""

    stream: BinaryIO


type StdinSource = TextInput | StreamInput


@dataclass(frozen=True, slots=True)
class OutputRouting:
    """Routing for one output channel.

    `capture` accumulates trimmed lines into the result; `pipe_to` forwards
    raw bytes to an external binary stream. Both may be active at once.
    """

    capture: bool = True
    pipe_to: BinaryIO | None = None

    @property
    def active(self) -> bool:
        return self.capture or self.pipe_to is not None


def _empty_environment() -> Mapping[str, str | None]:
    return cast("Mapping[str, str | None]", {})


def validate_timeout(timeout_seconds: float | None) -> float | None:
    """Normalize a deadline: `None`/infinity mean no deadline, otherwise > 0."""

    if timeout_seconds is None or timeout_seconds == math.inf:
        return None
    if math.isnan(timeout_seconds) or timeout_seconds <= 0:
        raise ValueError(
            f"timeout_seconds must be > 0 or NO_TIMEOUT, got {timeout_seconds!r}."
        )
    return float(timeout_seconds)


@dataclass(frozen=True, slots=True)
class CommandConfig:
    """Everything needed to launch and supervise one child process."""

    executable: str
    arguments: tuple[str, ...] = ()
    environment: Mapping[str, str | None] = field(default_factory=_empty_environment)
    working_directory: Path | None = None
    stdin: StdinSource | None = None
    stdout: OutputRouting = field(default_factory=OutputRouting)
    stderr: OutputRouting = field(default_factory=OutputRouting)
    timeout_seconds: float | None = NO_TIMEOUT
    event_sink: EventSink | None = None
    encoding: str = "utf-8"

    def __post_init__(self) -> None:
        if not self.executable or not self.executable.strip():
            raise ValueError("executable must be a non-empty string.")
        for key in self.environment:
            if not key:
                raise ValueError("environment variable names must be non-empty.")
        object.__setattr__(self, "timeout_seconds", validate_timeout(self.timeout_seconds))

    @property
    def argv(self) -> tuple[str, ...]:
        return (self.executable, *self.arguments)


@dataclass(frozen=True, slots=True)
class ExecutionResult:
    """Outcome of one completed execution."""

    exit_code: int
    stdout: str
    stderr: str

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0
