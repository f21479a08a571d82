"""Configuration management for fscprobe."""

from fscprobe.core.config.loader import ConfigLoader
from fscprobe.core.config.settings import (
    BuildSettings,
    LoggingSettings,
    Settings,
    ToolchainSettings,
    get_settings,
)

__all__ = [
    "ConfigLoader",
    "Settings",
    "LoggingSettings",
    "ToolchainSettings",
    "BuildSettings",
    "get_settings",
]
