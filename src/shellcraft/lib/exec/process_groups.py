"""Process-group helpers for subprocess lifecycle management."""

from __future__ import annotations

import asyncio
import os
import signal
import subprocess
import sys
from typing import Any

IS_WINDOWS = sys.platform == "win32"


def supports_process_groups() -> bool:
    return hasattr(os, "killpg") and hasattr(os, "getpgid")


def new_group_kwargs() -> dict[str, Any]:
    """Subprocess kwargs that make the child the leader of a fresh group."""

    if IS_WINDOWS:
        return {"creationflags": subprocess.CREATE_NEW_PROCESS_GROUP}
    return {"start_new_session": True}


def leads_own_group(process: asyncio.subprocess.Process) -> bool:
    """Return whether the child is the leader of its own process group."""

    if not supports_process_groups():
        return False
    try:
        return os.getpgid(process.pid) == process.pid
    except ProcessLookupError:
        return False


def signal_process_group(pgid: int, signum: signal.Signals) -> bool:
    """Send one signal to every member of a process group.

    The group may empty out between the caller's check and signal delivery,
    so ProcessLookupError is treated as an expected race. Returns whether the
    signal was delivered.
    """

    try:
        os.killpg(pgid, signum)
    except ProcessLookupError:
        return False
    return True
