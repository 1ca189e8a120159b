"""Error taxonomy for command execution."""

from __future__ import annotations

import asyncio

from shellcraft.lib.types import OutputChannel


class ShellcraftError(Exception):
    """Base class for execution failures raised by shellcraft."""


class ProcessStartError(ShellcraftError):
    """The executable could not be launched."""

    def __init__(self, executable: str, reason: str) -> None:
        self.executable = executable
        super().__init__(f"Failed to start process '{executable}': {reason}")


class InputWriteError(ShellcraftError):
    """Writing the configured input to the child's stdin failed."""


class CommandTimeoutError(ShellcraftError, TimeoutError):
    """Raised when a command exceeds its configured deadline."""

    def __init__(self, timeout_seconds: float) -> None:
        self.timeout_seconds = timeout_seconds
        super().__init__(f"Command exceeded timeout after {timeout_seconds:.3f}s")


class OutputDrainError(ShellcraftError):
    """Reading or forwarding one output channel failed."""

    def __init__(self, channel: OutputChannel, reason: str) -> None:
        self.channel = channel
        super().__init__(f"Failed to drain {channel}: {reason}")


class CommandCancelledError(asyncio.CancelledError):
    """The caller's cancellation token fired before the command finished."""
