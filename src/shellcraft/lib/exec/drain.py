"""Stdout/stderr draining for child processes."""

from __future__ import annotations

import asyncio
from typing import BinaryIO

from shellcraft.lib.domain import OutputRouting
from shellcraft.lib.events import EventSink, OutputLineReceived, report_event
from shellcraft.lib.exec.errors import OutputDrainError
from shellcraft.lib.types import OutputChannel

COPY_CHUNK_SIZE = 64 * 1024


def _forward(target: BinaryIO, data: bytes, channel: OutputChannel) -> None:
    try:
        target.write(data)
        target.flush()
    except (OSError, ValueError) as exc:
        raise OutputDrainError(channel, str(exc)) from exc


async def copy_bytes(
    reader: asyncio.StreamReader,
    target: BinaryIO,
    *,
    channel: OutputChannel,
) -> None:
    """Copy raw bytes from `reader` to `target` until end-of-stream."""

    while True:
        chunk = await reader.read(COPY_CHUNK_SIZE)
        if not chunk:
            return
        _forward(target, chunk, channel)


async def read_line(reader: asyncio.StreamReader) -> bytes:
    """Read one raw line of any length, including its newline when present.

    The reader's limit only bounds each buffered chunk; longer lines are
    assembled from several chunks. Returns b"" at end-of-stream.
    """

    chunks: list[bytes] = []
    while True:
        try:
            chunks.append(await reader.readuntil(b"\n"))
        except asyncio.IncompleteReadError as exc:
            chunks.append(exc.partial)
        except asyncio.LimitOverrunError as exc:
            chunks.append(await reader.read(exc.consumed))
            continue
        return b"".join(chunks)


async def drain_lines(
    reader: asyncio.StreamReader,
    *,
    channel: OutputChannel,
    encoding: str,
    target: BinaryIO | None = None,
    event_sink: EventSink | None = None,
) -> str:
    """Read `reader` line by line and return the captured text.

    Each raw line is forwarded verbatim to `target` (when set) before it is
    decoded, trimmed, buffered and reported.
    """

    lines: list[str] = []
    while True:
        raw = await read_line(reader)
        if not raw:
            break

        if target is not None:
            _forward(target, raw, channel)

        line = raw.decode(encoding, errors="replace").strip()
        lines.append(line)
        report_event(event_sink, OutputLineReceived(channel=channel, line=line))

    return "".join(f"{line}\n" for line in lines)


async def drain_output(
    reader: asyncio.StreamReader,
    *,
    channel: OutputChannel,
    routing: OutputRouting,
    encoding: str,
    event_sink: EventSink | None = None,
) -> str:
    """Drain one output channel according to its routing."""

    if routing.capture:
        return await drain_lines(
            reader,
            channel=channel,
            encoding=encoding,
            target=routing.pipe_to,
            event_sink=event_sink,
        )
    if routing.pipe_to is not None:
        await copy_bytes(reader, routing.pipe_to, channel=channel)
    return ""
