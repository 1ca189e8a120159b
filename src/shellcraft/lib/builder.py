"""Fluent assembly of command configurations."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import replace
from pathlib import Path
from typing import BinaryIO

from shellcraft.lib.domain import (
    NO_TIMEOUT,
    CommandConfig,
    ExecutionResult,
    OutputRouting,
    StdinSource,
    StreamInput,
    TerminationMode,
    TextInput,
    validate_timeout,
)
from shellcraft.lib.events import EventSink
from shellcraft.lib.exec.cancellation import CancellationToken
from shellcraft.lib.exec.spawn import execute_command


def _require_readable(stream: BinaryIO) -> None:
    readable = getattr(stream, "readable", None)
    if readable is not None and not readable():
        raise ValueError("Standard input stream is not readable.")


def _require_writable(stream: BinaryIO, channel: str) -> None:
    writable = getattr(stream, "writable", None)
    if writable is not None and not writable():
        raise ValueError(f"{channel} pipe target is not writable.")


class CommandBuilder:
    """Collects settings for one command; every `with_*` call returns `self`."""

    def __init__(self, executable: str) -> None:
        if not executable or not executable.strip():
            raise ValueError("executable must be a non-empty string.")
        self._executable = executable
        self._arguments: list[str] = []
        self._environment: dict[str, str | None] = {}
        self._working_directory: Path | None = None
        self._stdin: StdinSource | None = None
        self._stdout = OutputRouting()
        self._stderr = OutputRouting()
        self._timeout_seconds: float | None = NO_TIMEOUT
        self._event_sink: EventSink | None = None
        self._encoding = "utf-8"

    def with_arguments(self, *args: str) -> CommandBuilder:
        self._arguments.extend(args)
        return self

    def in_working_directory(self, path: str | Path) -> CommandBuilder:
        self._working_directory = Path(path)
        return self

    def with_environment_variable(self, key: str, value: str | None) -> CommandBuilder:
        """Set one environment override; `None` removes the inherited variable."""

        if not key:
            raise ValueError("Environment variable name must be non-empty.")
        self._environment[key] = value
        return self

    def with_environment_variables(self, variables: Mapping[str, str | None]) -> CommandBuilder:
        for key, value in variables.items():
            self.with_environment_variable(key, value)
        return self

    def with_standard_input(self, source: str | BinaryIO) -> CommandBuilder:
        """Feed text or a readable binary stream to stdin, replacing earlier input."""

        if isinstance(source, str):
            self._stdin = TextInput(source)
        else:
            _require_readable(source)
            self._stdin = StreamInput(source)
        return self

    def capture_stdout(self, enabled: bool = True) -> CommandBuilder:
        self._stdout = replace(self._stdout, capture=enabled)
        return self

    def capture_stderr(self, enabled: bool = True) -> CommandBuilder:
        self._stderr = replace(self._stderr, capture=enabled)
        return self

    def pipe_stdout_to(self, target: BinaryIO) -> CommandBuilder:
        _require_writable(target, "stdout")
        self._stdout = replace(self._stdout, pipe_to=target)
        return self

    def pipe_stderr_to(self, target: BinaryIO) -> CommandBuilder:
        _require_writable(target, "stderr")
        self._stderr = replace(self._stderr, pipe_to=target)
        return self

    def with_timeout(self, seconds: float | None) -> CommandBuilder:
        """Set the deadline; `NO_TIMEOUT` or `math.inf` clears it."""

        self._timeout_seconds = validate_timeout(seconds)
        return self

    def with_events(self, sink: EventSink) -> CommandBuilder:
        self._event_sink = sink
        return self

    def with_encoding(self, encoding: str) -> CommandBuilder:
        self._encoding = encoding
        return self

    def build(self) -> CommandConfig:
        return CommandConfig(
            executable=self._executable,
            arguments=tuple(self._arguments),
            environment=dict(self._environment),
            working_directory=self._working_directory,
            stdin=self._stdin,
            stdout=self._stdout,
            stderr=self._stderr,
            timeout_seconds=self._timeout_seconds,
            event_sink=self._event_sink,
            encoding=self._encoding,
        )

    async def execute(
        self,
        cancellation: CancellationToken | None = None,
        termination: TerminationMode = TerminationMode.NO_KILL,
    ) -> ExecutionResult:
        return await execute_command(
            self.build(),
            cancellation=cancellation,
            termination=termination,
        )


def command(executable: str) -> CommandBuilder:
    """Start configuring a command for `executable`."""

    return CommandBuilder(executable)
