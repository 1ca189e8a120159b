"""Configuration loading."""

from shellcraft.lib.config.settings import (
    TERMINATION_MODES,
    ShellcraftConfig,
    load_config,
    resolve_config_path,
)

__all__ = ["TERMINATION_MODES", "ShellcraftConfig", "load_config", "resolve_config_path"]
