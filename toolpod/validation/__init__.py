"""
toolpod validation module.

This module provides configuration loading and schema enforcement.
"""

from toolpod.validation.config import (
    ConfigError,
    LoggingConfig,
    PodConfig,
    build_options,
    find_config,
    load_config,
    load_tools,
)

__all__ = [
    "ConfigError",
    "LoggingConfig",
    "PodConfig",
    "build_options",
    "find_config",
    "load_config",
    "load_tools",
]
