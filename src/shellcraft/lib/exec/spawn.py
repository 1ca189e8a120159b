"""Async subprocess execution with deadline, cancellation and termination."""

from __future__ import annotations

import asyncio
import os
import shlex
from collections.abc import Mapping

import structlog

from shellcraft.lib.config.settings import ShellcraftConfig
from shellcraft.lib.domain import (
    CommandConfig,
    ExecutionResult,
    StdinSource,
    TerminationMode,
    TextInput,
)
from shellcraft.lib.events import ProcessExited, ProcessStarted, report_event
from shellcraft.lib.exec.cancellation import CancellationToken, OperationAborted, abandon
from shellcraft.lib.exec.drain import drain_output
from shellcraft.lib.exec.errors import (
    CommandCancelledError,
    CommandTimeoutError,
    InputWriteError,
    OutputDrainError,
    ProcessStartError,
)
from shellcraft.lib.exec.process_groups import new_group_kwargs
from shellcraft.lib.exec.termination import DEFAULT_KILL_GRACE_SECONDS, terminate_process
from shellcraft.lib.types import OutputChannel, ProcessId

DEFAULT_STREAM_LIMIT = ShellcraftConfig().stream_limit_bytes
STDIN_CHUNK_SIZE = 64 * 1024
logger = structlog.get_logger(__name__)


def build_child_env(
    base_env: Mapping[str, str],
    overrides: Mapping[str, str | None],
) -> dict[str, str] | None:
    """Merge overrides into the inherited environment; `None` unsets a variable."""

    if not overrides:
        return None

    env = dict(base_env)
    for key, value in overrides.items():
        if value is None:
            env.pop(key, None)
        else:
            env[key] = value
    return env


def _pipe_or_devnull(active: bool) -> int:
    return asyncio.subprocess.PIPE if active else asyncio.subprocess.DEVNULL


async def _start_process(
    config: CommandConfig,
    *,
    new_group: bool,
    stream_limit: int,
) -> asyncio.subprocess.Process:
    try:
        return await asyncio.create_subprocess_exec(
            *config.argv,
            stdin=_pipe_or_devnull(config.stdin is not None),
            stdout=_pipe_or_devnull(config.stdout.active),
            stderr=_pipe_or_devnull(config.stderr.active),
            cwd=config.working_directory,
            env=build_child_env(os.environ, config.environment),
            limit=stream_limit,
            **(new_group_kwargs() if new_group else {}),
        )
    except OSError as exc:
        raise ProcessStartError(config.executable, exc.strerror or str(exc)) from exc


async def _write_stdin(
    process: asyncio.subprocess.Process,
    source: StdinSource,
    encoding: str,
) -> None:
    stdin = process.stdin
    if stdin is None:
        raise RuntimeError("Subprocess did not expose a stdin pipe.")

    try:
        if isinstance(source, TextInput):
            stdin.write(source.text.encode(encoding))
            await stdin.drain()
        else:
            # Blocking reads run on a worker thread so the deadline and token stay live.
            while chunk := await asyncio.to_thread(source.stream.read, STDIN_CHUNK_SIZE):
                stdin.write(chunk)
                await stdin.drain()
        stdin.close()
        await stdin.wait_closed()
    except (BrokenPipeError, ConnectionResetError):
        # Same as subprocess.communicate: a child that stops reading is not an error.
        logger.debug("Child closed stdin before consuming all input.", pid=process.pid)
    except (OSError, ValueError) as exc:
        raise InputWriteError(f"Failed to write stdin of pid {process.pid}: {exc}") from exc
    finally:
        if not stdin.is_closing():
            stdin.close()


async def _wait_for_exit(
    process: asyncio.subprocess.Process,
    drains: dict[OutputChannel, asyncio.Task[str]],
) -> int:
    exit_code, *_ = await asyncio.gather(process.wait(), *drains.values())
    return exit_code


def _captured(drains: dict[OutputChannel, asyncio.Task[str]], channel: OutputChannel) -> str:
    task = drains.get(channel)
    return task.result().strip() if task is not None else ""


async def _supervise(
    process: asyncio.subprocess.Process,
    config: CommandConfig,
    *,
    effective: CancellationToken,
    deadline: CancellationToken | None,
    timeout_seconds: float | None,
    termination: TerminationMode,
    kill_grace_seconds: float,
) -> ExecutionResult:
    drains: dict[OutputChannel, asyncio.Task[str]] = {}
    for channel, reader in (("stdout", process.stdout), ("stderr", process.stderr)):
        if reader is None:
            continue
        drains[channel] = asyncio.create_task(
            drain_output(
                reader,
                channel=channel,
                routing=config.stdout if channel == "stdout" else config.stderr,
                encoding=config.encoding,
                event_sink=config.event_sink,
            )
        )

    input_error: InputWriteError | None = None
    try:
        if config.stdin is not None:
            try:
                await effective.guard(_write_stdin(process, config.stdin, config.encoding))
            except InputWriteError as exc:
                input_error = exc
        exit_code = await effective.guard(_wait_for_exit(process, drains))
    except OperationAborted:
        # The deadline wins ties: its flag is checked regardless of the external token.
        timed_out = deadline is not None and deadline.cancelled
        await terminate_process(process, termination, grace_seconds=kill_grace_seconds)
        if timed_out and timeout_seconds is not None:
            logger.warning(
                "Command timed out.",
                pid=process.pid,
                timeout_seconds=timeout_seconds,
                termination=str(termination),
            )
            raise CommandTimeoutError(timeout_seconds) from input_error
        logger.info("Command cancelled.", pid=process.pid, termination=str(termination))
        raise CommandCancelledError(
            f"Command '{config.executable}' was cancelled."
        ) from input_error
    except asyncio.CancelledError:
        await terminate_process(process, termination, grace_seconds=kill_grace_seconds)
        raise
    except OutputDrainError:
        await terminate_process(process, termination, grace_seconds=kill_grace_seconds)
        raise
    finally:
        for task in drains.values():
            await abandon(task)

    if input_error is not None:
        raise input_error

    result = ExecutionResult(
        exit_code=exit_code,
        stdout=_captured(drains, "stdout"),
        stderr=_captured(drains, "stderr"),
    )
    logger.debug("Process exited.", pid=process.pid, exit_code=exit_code)
    report_event(config.event_sink, ProcessExited(result=result))
    return result


async def execute_command(
    config: CommandConfig,
    *,
    cancellation: CancellationToken | None = None,
    termination: TerminationMode = TerminationMode.NO_KILL,
    kill_grace_seconds: float = DEFAULT_KILL_GRACE_SECONDS,
    stream_limit: int = DEFAULT_STREAM_LIMIT,
) -> ExecutionResult:
    """Run one command to completion and return its captured result.

    Raises `ProcessStartError` when the executable cannot be launched,
    `CommandTimeoutError` when the configured deadline elapses,
    `CommandCancelledError` when `cancellation` fires, `OutputDrainError`
    when an output channel cannot be drained and `InputWriteError` when the
    configured input could not be written. On timeout, cancellation and
    drain failure the child is stopped according to `termination` first.
    """

    external = cancellation if cancellation is not None else CancellationToken()
    timeout_seconds = config.timeout_seconds
    deadline: CancellationToken | None = None
    effective = external
    if timeout_seconds is not None:
        deadline = CancellationToken()
        deadline.cancel_after(timeout_seconds)
        effective = CancellationToken.any(external, deadline)

    try:
        if effective.cancelled:
            raise CommandCancelledError(f"Command '{config.executable}' was cancelled.")

        process = await _start_process(
            config,
            new_group=termination is TerminationMode.TREE,
            stream_limit=stream_limit,
        )
        logger.debug("Started process.", pid=process.pid, command=shlex.join(config.argv))
        report_event(config.event_sink, ProcessStarted(process_id=ProcessId(process.pid)))

        return await _supervise(
            process,
            config,
            effective=effective,
            deadline=deadline,
            timeout_seconds=timeout_seconds,
            termination=termination,
            kill_grace_seconds=kill_grace_seconds,
        )
    finally:
        if deadline is not None:
            deadline.dispose()
            effective.dispose()
