"""Lifecycle events reported while a command runs."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from threading import Lock

import structlog

from shellcraft.lib.domain import ExecutionResult
from shellcraft.lib.types import OutputChannel, ProcessId

logger = structlog.get_logger(__name__)


@dataclass(frozen=True, slots=True)
class ProcessStarted:
    """The child was launched."""

    process_id: ProcessId


@dataclass(frozen=True, slots=True)
class OutputLineReceived:
    """One trimmed line read from stdout or stderr."""

    channel: OutputChannel
    line: str


@dataclass(frozen=True, slots=True)
class ProcessExited:
    """The child exited and both output channels were fully drained."""

    result: ExecutionResult


type LifecycleEvent = ProcessStarted | OutputLineReceived | ProcessExited
EventSink = Callable[[LifecycleEvent], None]


def report_event(sink: EventSink | None, event: LifecycleEvent) -> None:
    """Deliver one event; a failing sink never aborts the execution."""

    if sink is None:
        return
    try:
        sink(event)
    except Exception:
        logger.warning("Lifecycle event sink failed.", event=type(event).__name__, exc_info=True)


class EventRecorder:
    """Sink that keeps every event in arrival order."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._events: list[LifecycleEvent] = []

    def __call__(self, event: LifecycleEvent) -> None:
        with self._lock:
            self._events.append(event)

    @property
    def events(self) -> tuple[LifecycleEvent, ...]:
        with self._lock:
            return tuple(self._events)

    def lines(self, channel: OutputChannel) -> list[str]:
        return [
            event.line
            for event in self.events
            if isinstance(event, OutputLineReceived) and event.channel == channel
        ]


def log_event(event: LifecycleEvent) -> None:
    """Sink that writes each event to the structured log."""

    match event:
        case ProcessStarted(process_id=pid):
            logger.info("Process started.", pid=pid)
        case OutputLineReceived(channel=channel, line=line):
            logger.debug("Output line.", channel=channel, line=line)
        case ProcessExited(result=result):
            logger.info("Process exited.", exit_code=result.exit_code)
