"""Structlog configuration for the shellcraft CLI."""

from __future__ import annotations

import logging as std_logging
import sys
from typing import TextIO

import structlog


def _level_from_verbosity(verbosity: int) -> int:
    if verbosity <= 0:
        return std_logging.WARNING
    if verbosity == 1:
        return std_logging.INFO
    return std_logging.DEBUG


def _is_terminal(stream: TextIO) -> bool:
    isatty = getattr(stream, "isatty", None)
    return bool(isatty is not None and isatty())


def configure_logging(
    json_mode: bool = False,
    verbosity: int = 0,
    *,
    stream: TextIO | None = None,
) -> None:
    """Configure structlog and stdlib logging to write to `stream` (stderr).

    Logs share stderr with the child's forwarded stderr and with `--events`
    lines. JSON mode renders one object per line, tracebacks included, so the
    stream stays machine-readable; console mode drops colours when the stream
    is not a terminal.
    """

    target = stream if stream is not None else sys.stderr
    level = _level_from_verbosity(verbosity)

    shared: list[structlog.typing.Processor] = [
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]
    rendering: list[structlog.typing.Processor]
    if json_mode:
        rendering = [structlog.processors.dict_tracebacks, structlog.processors.JSONRenderer()]
    else:
        rendering = [structlog.dev.ConsoleRenderer(colors=_is_terminal(target))]

    # Stdlib records (config warnings, asyncio) get the same rendering.
    handler = std_logging.StreamHandler(target)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, *rendering],
        )
    )
    std_logging.basicConfig(level=level, handlers=[handler])

    structlog.configure(
        processors=[structlog.contextvars.merge_contextvars, *shared, *rendering],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(file=target),
        cache_logger_on_first_use=True,
    )
