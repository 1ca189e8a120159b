"""Async child-process execution with deadlines, cancellation and kill policies."""

from shellcraft.lib.builder import CommandBuilder, command
from shellcraft.lib.domain import (
    NO_TIMEOUT,
    CommandConfig,
    ExecutionResult,
    OutputRouting,
    StreamInput,
    TerminationMode,
    TextInput,
)
from shellcraft.lib.events import (
    EventRecorder,
    EventSink,
    LifecycleEvent,
    OutputLineReceived,
    ProcessExited,
    ProcessStarted,
    log_event,
)
from shellcraft.lib.exec import (
    CancellationToken,
    CommandCancelledError,
    CommandTimeoutError,
    InputWriteError,
    OutputDrainError,
    ProcessStartError,
    ShellcraftError,
    execute_command,
)

__version__ = "0.1.0"

__all__ = [
    "NO_TIMEOUT",
    "CancellationToken",
    "CommandBuilder",
    "CommandCancelledError",
    "CommandConfig",
    "CommandTimeoutError",
    "EventRecorder",
    "EventSink",
    "ExecutionResult",
    "InputWriteError",
    "LifecycleEvent",
    "OutputDrainError",
    "OutputLineReceived",
    "OutputRouting",
    "ProcessExited",
    "ProcessStartError",
    "ProcessStarted",
    "ShellcraftError",
    "StreamInput",
    "TerminationMode",
    "TextInput",
    "__version__",
    "command",
    "execute_command",
    "log_event",
]
