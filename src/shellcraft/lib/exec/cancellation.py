"""Cooperative cancellation tokens for command execution.

A token is a one-shot signal. The execution engine combines the caller's
token with an internal deadline token through `CancellationToken.any`, and
afterwards inspects the deadline token alone to tell a timeout apart from an
external cancellation.

Tokens are not thread-safe: create, fire and observe them on the event loop
thread (use `loop.call_soon_threadsafe(token.cancel)` from other threads).
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from contextlib import suppress


class OperationAborted(Exception):
    """Raised by `CancellationToken.guard` when the token fires first."""


async def abandon(task: asyncio.Future[object]) -> None:
    """Cancel one in-flight task and wait for it to unwind."""

    if task.done():
        # Retrieve the outcome so asyncio does not log it as never retrieved.
        if not task.cancelled():
            task.exception()
        return
    task.cancel()
    await asyncio.gather(task, return_exceptions=True)


class CancellationToken:
    """One-shot cancellation signal observable from coroutines."""

    def __init__(self) -> None:
        self._cancelled = False
        self._event = asyncio.Event()
        self._children: list[CancellationToken] = []
        self._parents: tuple[CancellationToken, ...] = ()
        self._timer: asyncio.TimerHandle | None = None

    @classmethod
    def any(cls, *tokens: CancellationToken) -> CancellationToken:
        """Return a token that fires as soon as any of `tokens` fires."""

        linked = cls()
        linked._parents = tokens
        for token in tokens:
            token._children.append(linked)
            if token.cancelled:
                linked.cancel()
        return linked

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        """Fire the token. Repeated calls are no-ops."""

        if self._cancelled:
            return
        self._cancelled = True
        self._event.set()
        for child in tuple(self._children):
            child.cancel()

    def cancel_after(self, seconds: float) -> None:
        """Arm a loop timer that fires the token after `seconds`."""

        if self._timer is not None:
            self._timer.cancel()
        self._timer = asyncio.get_running_loop().call_later(seconds, self.cancel)

    def dispose(self) -> None:
        """Disarm the timer and detach from linked parents."""

        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        for parent in self._parents:
            with suppress(ValueError):
                parent._children.remove(self)
        self._parents = ()

    async def wait(self) -> None:
        await self._event.wait()

    async def guard[T](self, awaitable: Awaitable[T]) -> T:
        """Await `awaitable` unless the token fires first.

        When the token wins the race the work is cancelled and
        `OperationAborted` is raised. Work that completed in the same loop
        iteration keeps its result.
        """

        work = asyncio.ensure_future(awaitable)
        if self._cancelled:
            await abandon(work)
            raise OperationAborted

        waiter = asyncio.ensure_future(self._event.wait())
        try:
            done, _ = await asyncio.wait((work, waiter), return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            await abandon(work)
            raise
        finally:
            waiter.cancel()

        if work in done:
            return work.result()
        await abandon(work)
        raise OperationAborted
