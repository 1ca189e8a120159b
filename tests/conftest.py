"""Shared pytest fixtures for execution and CLI checks."""

from __future__ import annotations

import os
import subprocess
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

import pytest

if TYPE_CHECKING:
    from collections.abc import Callable

PACKAGE_ROOT = Path(__file__).resolve().parents[1]


@dataclass(frozen=True, slots=True)
class CliResult:
    args: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str


@pytest.fixture
def package_root() -> Path:
    return PACKAGE_ROOT


@pytest.fixture
def mock_child(package_root: Path) -> Path:
    return package_root / "tests" / "mock_child.py"


@pytest.fixture
def child_argv(mock_child: Path) -> Callable[..., tuple[str, ...]]:
    """Build argv for the mock child: executable first, then its arguments."""

    def _argv(*args: str) -> tuple[str, ...]:
        return (sys.executable, str(mock_child), *args)

    return _argv


@pytest.fixture
def cli_env(package_root: Path) -> dict[str, str]:
    env = os.environ.copy()
    existing = env.get("PYTHONPATH", "")
    root = str(package_root / "src")
    env["PYTHONPATH"] = root if not existing else f"{root}{os.pathsep}{existing}"
    for name in list(env):
        if name.startswith("SHELLCRAFT_"):
            env.pop(name)
    return env


@pytest.fixture
def run_shellcraft(
    tmp_path: Path,
    cli_env: dict[str, str],
) -> Callable[..., CliResult]:
    def _run(
        args: list[str],
        timeout: float = 15.0,
        env: dict[str, str] | None = None,
    ) -> CliResult:
        completed = subprocess.run(
            [sys.executable, "-m", "shellcraft", *args],
            cwd=tmp_path,
            env={**cli_env, **(env or {})},
            capture_output=True,
            text=True,
            check=False,
            timeout=timeout,
        )
        return CliResult(
            args=tuple(args),
            returncode=completed.returncode,
            stdout=completed.stdout,
            stderr=completed.stderr,
        )

    return _run
