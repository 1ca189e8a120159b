"""Execution engine primitives."""

from shellcraft.lib.exec.cancellation import CancellationToken, OperationAborted
from shellcraft.lib.exec.drain import copy_bytes, drain_lines, drain_output
from shellcraft.lib.exec.errors import (
    CommandCancelledError,
    CommandTimeoutError,
    InputWriteError,
    OutputDrainError,
    ProcessStartError,
    ShellcraftError,
)
from shellcraft.lib.exec.spawn import DEFAULT_STREAM_LIMIT, build_child_env, execute_command
from shellcraft.lib.exec.termination import DEFAULT_KILL_GRACE_SECONDS, terminate_process

__all__ = [
    "DEFAULT_KILL_GRACE_SECONDS",
    "DEFAULT_STREAM_LIMIT",
    "CancellationToken",
    "CommandCancelledError",
    "CommandTimeoutError",
    "InputWriteError",
    "OperationAborted",
    "OutputDrainError",
    "ProcessStartError",
    "ShellcraftError",
    "build_child_env",
    "copy_bytes",
    "drain_lines",
    "drain_output",
    "execute_command",
    "terminate_process",
]
