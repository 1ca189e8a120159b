"""Stable identifier newtypes and literals."""

from typing import Literal, NewType

ProcessId = NewType("ProcessId", int)
OutputChannel = Literal["stdout", "stderr"]
