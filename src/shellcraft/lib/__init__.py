"""Core shellcraft library exports."""

from shellcraft.lib.domain import CommandConfig, ExecutionResult, TerminationMode
from shellcraft.lib.types import OutputChannel, ProcessId

__all__ = ["CommandConfig", "ExecutionResult", "OutputChannel", "ProcessId", "TerminationMode"]
