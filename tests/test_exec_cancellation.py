"""Cancellation token tests."""

from __future__ import annotations

import asyncio

import pytest

from shellcraft.lib.exec.cancellation import CancellationToken, OperationAborted, abandon


@pytest.mark.asyncio
async def test_cancel_is_idempotent() -> None:
    token = CancellationToken()
    assert token.cancelled is False

    token.cancel()
    token.cancel()

    assert token.cancelled is True
    await asyncio.wait_for(token.wait(), timeout=1.0)


@pytest.mark.asyncio
async def test_linked_token_fires_when_any_parent_fires() -> None:
    first = CancellationToken()
    second = CancellationToken()
    linked = CancellationToken.any(first, second)

    assert linked.cancelled is False
    second.cancel()

    assert linked.cancelled is True
    assert first.cancelled is False


@pytest.mark.asyncio
async def test_linked_token_is_born_fired_when_parent_already_fired() -> None:
    parent = CancellationToken()
    parent.cancel()

    assert CancellationToken.any(parent, CancellationToken()).cancelled is True


@pytest.mark.asyncio
async def test_disposed_linked_token_ignores_parents() -> None:
    parent = CancellationToken()
    linked = CancellationToken.any(parent)

    linked.dispose()
    parent.cancel()

    assert linked.cancelled is False


@pytest.mark.asyncio
async def test_cancel_after_fires_on_the_loop_timer() -> None:
    token = CancellationToken()
    token.cancel_after(0.05)

    await asyncio.wait_for(token.wait(), timeout=2.0)

    assert token.cancelled is True


@pytest.mark.asyncio
async def test_dispose_disarms_pending_timer() -> None:
    token = CancellationToken()
    token.cancel_after(0.05)
    token.dispose()

    await asyncio.sleep(0.15)

    assert token.cancelled is False


@pytest.mark.asyncio
async def test_guard_returns_result_when_token_stays_quiet() -> None:
    async def work() -> str:
        await asyncio.sleep(0.01)
        return "done"

    assert await CancellationToken().guard(work()) == "done"


@pytest.mark.asyncio
async def test_guard_propagates_work_exception() -> None:
    async def work() -> None:
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError, match="boom"):
        await CancellationToken().guard(work())


@pytest.mark.asyncio
async def test_guard_aborts_and_cancels_work_when_token_fires() -> None:
    token = CancellationToken()
    work_cancelled = asyncio.Event()

    async def work() -> None:
        try:
            await asyncio.sleep(30)
        except asyncio.CancelledError:
            work_cancelled.set()
            raise

    asyncio.get_running_loop().call_later(0.05, token.cancel)
    with pytest.raises(OperationAborted):
        await token.guard(work())

    assert work_cancelled.is_set()


@pytest.mark.asyncio
async def test_guard_on_fired_token_never_runs_work_to_completion() -> None:
    token = CancellationToken()
    token.cancel()
    finished = False

    async def work() -> None:
        nonlocal finished
        await asyncio.sleep(0.01)
        finished = True

    with pytest.raises(OperationAborted):
        await token.guard(work())

    assert finished is False


@pytest.mark.asyncio
async def test_guard_cancels_work_when_caller_is_cancelled() -> None:
    token = CancellationToken()
    started = asyncio.Event()
    work_cancelled = asyncio.Event()

    async def work() -> None:
        started.set()
        try:
            await asyncio.sleep(30)
        except asyncio.CancelledError:
            work_cancelled.set()
            raise

    task = asyncio.create_task(token.guard(work()))
    await started.wait()
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task
    assert work_cancelled.is_set()


@pytest.mark.asyncio
async def test_abandon_retrieves_finished_task_exception() -> None:
    async def fail() -> None:
        raise ValueError("already failed")

    task = asyncio.create_task(fail())
    await asyncio.gather(task, return_exceptions=True)

    await abandon(task)

    assert task.done()
