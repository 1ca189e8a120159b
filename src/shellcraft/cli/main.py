"""Cyclopts CLI entry point for shellcraft."""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Annotated

import structlog
from cyclopts import App, Parameter

from shellcraft import __version__
from shellcraft.cli.output import EventPrinter, OutputConfig, emit
from shellcraft.lib.builder import CommandBuilder, command
from shellcraft.lib.config.settings import ShellcraftConfig, load_config
from shellcraft.lib.domain import ExecutionResult, TerminationMode
from shellcraft.lib.exec.errors import CommandTimeoutError, ProcessStartError, ShellcraftError
from shellcraft.lib.exec.spawn import execute_command
from shellcraft.lib.serialization import to_jsonable

if TYPE_CHECKING:
    from collections.abc import Sequence

EXIT_TIMEOUT = 124
EXIT_START_FAILURE = 127
EXIT_INTERRUPTED = 130
logger = structlog.get_logger(__name__)

app = App(
    name="shellcraft",
    help="Run a command with deadlines, cancellation and kill policies.",
    version=__version__,
    help_formatter="plain",
)


def _parse_env_assignments(assignments: Sequence[str]) -> dict[str, str | None]:
    parsed: dict[str, str | None] = {}
    for assignment in assignments:
        key, sep, value = assignment.partition("=")
        key = key.strip()
        if not key:
            raise ValueError(f"Invalid --env value {assignment!r}: expected KEY=VALUE.")
        # A bare KEY (no '=') unsets the inherited variable.
        parsed[key] = value if sep else None
    return parsed


def _resolve_termination(requested: str | None, config: ShellcraftConfig) -> TerminationMode:
    raw = (requested or config.termination_mode).strip().lower()
    try:
        return TerminationMode(raw)
    except ValueError:
        raise ValueError(
            f"Invalid --kill value {requested!r}: expected one of none, root, tree."
        ) from None


def _exit_status(result: ExecutionResult) -> int:
    if result.exit_code < 0:
        # Killed by signal N on POSIX; report it the way shells do.
        return 128 - result.exit_code
    return result.exit_code


def _build_command(
    executable: str,
    arguments: Sequence[str],
    *,
    config: ShellcraftConfig,
    timeout: float | None,
    input_text: str | None,
    input_file: Path | None,
    cwd: Path | None,
    env: Sequence[str],
    events: bool,
    json_mode: bool,
) -> CommandBuilder:
    if input_text is not None and input_file is not None:
        raise ValueError("Cannot combine --input with --input-file.")

    builder = (
        command(executable)
        .with_arguments(*arguments)
        .with_environment_variables(_parse_env_assignments(env))
        .with_timeout(timeout if timeout is not None else config.default_timeout_seconds)
        .with_encoding(config.encoding)
    )
    if cwd is not None:
        builder.in_working_directory(cwd)
    if input_text is not None:
        builder.with_standard_input(input_text)
    if events:
        builder.with_events(EventPrinter())
    if not json_mode:
        # Text mode forwards the child's output live; capture only feeds --events.
        builder.pipe_stdout_to(sys.stdout.buffer).pipe_stderr_to(sys.stderr.buffer)
        builder.capture_stdout(events).capture_stderr(events)
    return builder


async def _run_async(
    builder: CommandBuilder,
    *,
    termination: TerminationMode,
    config: ShellcraftConfig,
    input_file: Path | None,
) -> ExecutionResult:
    async def _execute(prepared: CommandBuilder) -> ExecutionResult:
        command_config = prepared.build()
        logger.debug(
            "Resolved command.",
            command=to_jsonable(command_config),
            termination=str(termination),
        )
        return await execute_command(
            command_config,
            termination=termination,
            kill_grace_seconds=config.kill_grace_seconds,
            stream_limit=config.stream_limit_bytes,
        )

    if input_file is None:
        return await _execute(builder)
    with input_file.open("rb") as handle:
        return await _execute(builder.with_standard_input(handle))


@app.command(name="run")
def run(
    executable: str,
    *arguments: str,
    timeout: Annotated[
        float | None,
        Parameter(name="--timeout", help="Abandon the command after this many seconds."),
    ] = None,
    kill: Annotated[
        str | None,
        Parameter(name="--kill", help="What to stop on timeout/interrupt: none, root or tree."),
    ] = None,
    input_text: Annotated[
        str | None,
        Parameter(name="--input", help="Text written to the command's stdin."),
    ] = None,
    input_file: Annotated[
        Path | None,
        Parameter(name="--input-file", help="File whose bytes are written to stdin."),
    ] = None,
    cwd: Annotated[
        Path | None,
        Parameter(name="--cwd", help="Working directory for the command."),
    ] = None,
    env: Annotated[
        tuple[str, ...],
        Parameter(
            name="--env",
            help="Environment override KEY=VALUE (repeatable); bare KEY unsets it.",
            negative_iterable=(),
        ),
    ] = (),
    events: Annotated[
        bool,
        Parameter(name="--events", help="Print lifecycle events as JSON lines on stderr."),
    ] = False,
    json_mode: Annotated[
        bool,
        Parameter(name="--json", help="Capture output and emit the result as JSON."),
    ] = False,
) -> None:
    """Run EXECUTABLE with ARGUMENTS (use `--` before arguments that start with '-')."""

    config = load_config(Path.cwd())
    termination = _resolve_termination(kill, config)
    builder = _build_command(
        executable,
        arguments,
        config=config,
        timeout=timeout,
        input_text=input_text,
        input_file=input_file,
        cwd=cwd,
        env=env,
        events=events,
        json_mode=json_mode,
    )

    try:
        result = asyncio.run(
            _run_async(builder, termination=termination, config=config, input_file=input_file)
        )
    except KeyboardInterrupt:
        print("error: interrupted", file=sys.stderr)
        raise SystemExit(EXIT_INTERRUPTED) from None
    except CommandTimeoutError as exc:
        print(f"error: {exc}", file=sys.stderr)
        raise SystemExit(EXIT_TIMEOUT) from None
    except ProcessStartError as exc:
        print(f"error: {exc}", file=sys.stderr)
        raise SystemExit(EXIT_START_FAILURE) from None

    if json_mode:
        emit(result, OutputConfig(format="json"))
    status = _exit_status(result)
    if status != 0:
        raise SystemExit(status)


@app.command(name="config")
def show_config(
    json_mode: Annotated[
        bool,
        Parameter(name="--json", help="Emit the resolved configuration as JSON."),
    ] = False,
) -> None:
    """Show the resolved configuration (config file plus SHELLCRAFT_* overrides)."""

    emit(load_config(Path.cwd()), OutputConfig(format="json" if json_mode else "text"))


def _extract_verbosity(argv: Sequence[str]) -> tuple[list[str], int]:
    verbosity = 0
    cleaned: list[str] = []
    for index, arg in enumerate(argv):
        if arg == "--":
            # Everything after the delimiter belongs to the child command.
            cleaned.extend(argv[index:])
            break
        if arg in {"--verbose", "-v"}:
            verbosity += 1
            continue
        cleaned.append(arg)
    return cleaned, verbosity


def main(argv: Sequence[str] | None = None) -> None:
    """CLI entry point used by `shellcraft` and `python -m shellcraft`."""

    from shellcraft.lib.logging import configure_logging

    args = list(sys.argv[1:] if argv is None else argv)

    args, verbosity = _extract_verbosity(args)
    own_args = args[: args.index("--")] if "--" in args else args
    # --events writes JSON lines to stderr; logs sharing it follow suit.
    configure_logging(
        json_mode="--json" in own_args or "--events" in own_args,
        verbosity=verbosity,
    )

    try:
        app(args)
    except ShellcraftError as exc:
        print(f"error: {exc}", file=sys.stderr)
        raise SystemExit(1) from None
    except (ValueError, OSError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        raise SystemExit(1) from None
