"""Operational config loader."""

from __future__ import annotations

import logging
import math
import os
import tomllib
from dataclasses import dataclass, fields
from pathlib import Path
from typing import cast

logger = logging.getLogger(__name__)

CONFIG_DIRNAME = ".shellcraft"
CONFIG_FILENAME = "config.toml"
TERMINATION_MODES = frozenset({"none", "root", "tree"})


@dataclass(frozen=True, slots=True)
class ShellcraftConfig:
    """Resolved operational configuration for shellcraft."""

    kill_grace_seconds: float = 0.0
    default_timeout_seconds: float | None = None
    termination_mode: str = "tree"
    stream_limit_bytes: int = 1024 * 1024
    encoding: str = "utf-8"


_SECTION_KEY_MAP: dict[str, dict[str, str]] = {
    "timeouts": {
        "kill_grace_seconds": "kill_grace_seconds",
        "default_seconds": "default_timeout_seconds",
        "default_timeout_seconds": "default_timeout_seconds",
    },
    "execution": {
        "termination_mode": "termination_mode",
        "kill_mode": "termination_mode",
        "stream_limit_bytes": "stream_limit_bytes",
        "encoding": "encoding",
    },
}

_TOP_LEVEL_KEY_MAP: dict[str, str] = {
    "kill_grace_seconds": "kill_grace_seconds",
    "default_timeout_seconds": "default_timeout_seconds",
    "termination_mode": "termination_mode",
    "stream_limit_bytes": "stream_limit_bytes",
    "encoding": "encoding",
}

_ENV_OVERRIDE_MAP: dict[str, str] = {
    "SHELLCRAFT_KILL_GRACE_SECONDS": "kill_grace_seconds",
    "SHELLCRAFT_TIMEOUT_SECONDS": "default_timeout_seconds",
    "SHELLCRAFT_TERMINATION_MODE": "termination_mode",
    "SHELLCRAFT_STREAM_LIMIT_BYTES": "stream_limit_bytes",
    "SHELLCRAFT_ENCODING": "encoding",
}


def resolve_config_path(root: Path) -> Path:
    return root / CONFIG_DIRNAME / CONFIG_FILENAME


def _expected_type_name(field_name: str) -> str:
    if field_name == "stream_limit_bytes":
        return "int"
    if field_name in {"kill_grace_seconds", "default_timeout_seconds"}:
        return "float"
    return "str"


def _coerce_file_value(*, field_name: str, raw_value: object, source: str) -> object:
    expected = _expected_type_name(field_name)
    if expected == "int":
        if isinstance(raw_value, bool) or not isinstance(raw_value, int):
            raise ValueError(
                f"Invalid value for '{source}': expected int, got "
                f"{type(raw_value).__name__} ({raw_value!r})."
            )
        return raw_value

    if expected == "float":
        if isinstance(raw_value, bool) or not isinstance(raw_value, int | float):
            raise ValueError(
                f"Invalid value for '{source}': expected float, got "
                f"{type(raw_value).__name__} ({raw_value!r})."
            )
        return float(raw_value)

    if not isinstance(raw_value, str):
        raise ValueError(
            f"Invalid value for '{source}': expected str, got "
            f"{type(raw_value).__name__} ({raw_value!r})."
        )
    normalized = raw_value.strip()
    if not normalized:
        raise ValueError(f"Invalid value for '{source}': expected non-empty string.")
    return normalized


def _coerce_env_value(*, field_name: str, raw_value: str, env_name: str) -> object:
    expected = _expected_type_name(field_name)
    if expected == "int":
        try:
            return int(raw_value.strip())
        except ValueError as error:
            raise ValueError(
                f"Invalid environment override '{env_name}': expected int, got {raw_value!r}."
            ) from error

    if expected == "float":
        try:
            return float(raw_value.strip())
        except ValueError as error:
            raise ValueError(
                f"Invalid environment override '{env_name}': expected float, got {raw_value!r}."
            ) from error

    normalized = raw_value.strip()
    if not normalized:
        raise ValueError(
            f"Invalid environment override '{env_name}': expected non-empty string."
        )
    return normalized


def _default_values() -> dict[str, object]:
    defaults = ShellcraftConfig()
    return {field.name: getattr(defaults, field.name) for field in fields(ShellcraftConfig)}


def _apply_toml_payload(
    *,
    values: dict[str, object],
    payload: dict[str, object],
    path: Path,
) -> None:
    for key, raw_value in payload.items():
        section_map = _SECTION_KEY_MAP.get(key)
        if section_map is not None:
            if not isinstance(raw_value, dict):
                raise ValueError(f"Invalid value for '{key}' in '{path}': expected table.")
            for section_key, section_value in cast("dict[str, object]", raw_value).items():
                field_name = section_map.get(section_key)
                if field_name is None:
                    logger.warning(
                        "Ignoring unknown shellcraft config key '%s.%s'.",
                        key,
                        section_key,
                    )
                    continue
                values[field_name] = _coerce_file_value(
                    field_name=field_name,
                    raw_value=section_value,
                    source=f"{key}.{section_key}",
                )
            continue

        field_name = _TOP_LEVEL_KEY_MAP.get(key)
        if field_name is None:
            logger.warning("Ignoring unknown shellcraft config key '%s'.", key)
            continue
        values[field_name] = _coerce_file_value(
            field_name=field_name,
            raw_value=raw_value,
            source=key,
        )


def _apply_env_overrides(values: dict[str, object]) -> None:
    for env_name, field_name in _ENV_OVERRIDE_MAP.items():
        raw_value = os.getenv(env_name)
        if raw_value is None:
            continue
        values[field_name] = _coerce_env_value(
            field_name=field_name,
            raw_value=raw_value,
            env_name=env_name,
        )


def _build_config(values: dict[str, object]) -> ShellcraftConfig:
    config = ShellcraftConfig(
        kill_grace_seconds=cast("float", values["kill_grace_seconds"]),
        default_timeout_seconds=cast("float | None", values["default_timeout_seconds"]),
        termination_mode=cast("str", values["termination_mode"]).lower(),
        stream_limit_bytes=cast("int", values["stream_limit_bytes"]),
        encoding=cast("str", values["encoding"]),
    )
    if config.kill_grace_seconds < 0 or math.isnan(config.kill_grace_seconds):
        raise ValueError("Invalid kill_grace_seconds: expected a value >= 0.")
    timeout = config.default_timeout_seconds
    if timeout is not None and (math.isnan(timeout) or timeout <= 0):
        raise ValueError("Invalid default_timeout_seconds: expected a value > 0.")
    if config.termination_mode not in TERMINATION_MODES:
        raise ValueError(
            f"Invalid termination_mode: expected one of {sorted(TERMINATION_MODES)}, "
            f"got {config.termination_mode!r}."
        )
    if config.stream_limit_bytes <= 0:
        raise ValueError("Invalid stream_limit_bytes: expected a value > 0.")
    return config


def load_config(root: Path) -> ShellcraftConfig:
    """Load `.shellcraft/config.toml` under `root` and apply environment overrides."""

    values = _default_values()
    path = resolve_config_path(root)
    if path.is_file():
        payload_obj = tomllib.loads(path.read_text(encoding="utf-8"))
        payload = cast("dict[str, object]", payload_obj)
        _apply_toml_payload(values=values, payload=payload, path=path)

    _apply_env_overrides(values)
    return _build_config(values)
