"""Best-effort termination of abandoned child processes."""

from __future__ import annotations

import asyncio
import signal

import structlog

from shellcraft.lib.config.settings import ShellcraftConfig
from shellcraft.lib.domain import TerminationMode
from shellcraft.lib.exec.process_groups import leads_own_group, signal_process_group

DEFAULT_KILL_GRACE_SECONDS = ShellcraftConfig().kill_grace_seconds
REAP_TIMEOUT_SECONDS = 5.0
logger = structlog.get_logger(__name__)


def _send_stop(process: asyncio.subprocess.Process, *, group: bool, force: bool) -> None:
    if group:
        signal_process_group(process.pid, signal.SIGKILL if force else signal.SIGTERM)
        return
    if process.returncode is not None:
        return
    if force:
        process.kill()
    else:
        process.terminate()


async def terminate_process(
    process: asyncio.subprocess.Process,
    mode: TerminationMode,
    *,
    grace_seconds: float = DEFAULT_KILL_GRACE_SECONDS,
) -> None:
    """Stop a process according to `mode`; never raises.

    With a positive grace period the child (or its group) gets SIGTERM first
    and is only force-killed if it is still alive afterwards. The process is
    reaped before returning so it does not linger as a zombie.
    """

    if mode is TerminationMode.NO_KILL or process.returncode is not None:
        return

    group = mode is TerminationMode.TREE and leads_own_group(process)
    if mode is TerminationMode.TREE and not group:
        logger.debug("Process tree kill unavailable; killing root only.", pid=process.pid)

    try:
        if grace_seconds > 0:
            _send_stop(process, group=group, force=False)
            try:
                await asyncio.wait_for(process.wait(), timeout=grace_seconds)
            except TimeoutError:
                pass
            else:
                if not group:
                    return
        # Descendants may outlive the root, so the group is signalled even
        # after the leader has exited.
        _send_stop(process, group=group, force=True)
        await asyncio.wait_for(process.wait(), timeout=REAP_TIMEOUT_SECONDS)
    except (OSError, NotImplementedError) as exc:
        # ProcessLookupError, PermissionError and reap timeouts all land here.
        logger.debug(
            "Ignoring process termination failure.",
            pid=process.pid,
            mode=str(mode),
            error=repr(exc),
        )
