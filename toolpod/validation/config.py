"""
toolpod configuration - loading and validation.

A pod is described by a ``toolpod.yaml`` file: its name and version, the
capabilities it advertises, where its tools live, and the log level. The
file is looked up from the current directory upwards; every field has a
default, so a missing file is not an error.
"""

import importlib
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from toolpod.tools.schema import PodOptions, Tool

CONFIG_FILENAME = "toolpod.yaml"
DEFAULT_TOOLS = "toolpod.demo:TOOLS"
LOG_LEVEL_ENV = "TOOLPOD_LOG_LEVEL"


class ConfigError(Exception):
    """Raised when there's a configuration error."""

    pass


class LoggingConfig(BaseModel):
    """Configuration for log output."""

    level: str = "INFO"

    @field_validator("level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        value = value.upper()
        if value not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unknown log level: {value}")
        return value


class PodConfig(BaseModel):
    """Complete pod configuration schema."""

    name: str = "toolpod"
    version: str = "0.1.0"
    tools: str = DEFAULT_TOOLS
    capabilities: Dict[str, Any] = Field(default_factory=lambda: {"tools": {}})
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @field_validator("tools")
    @classmethod
    def _import_target(cls, value: str) -> str:
        module, _, attr = value.partition(":")
        if not module or not attr:
            raise ValueError(f"expected 'module:attribute', got {value!r}")
        return value


def find_config(start: Optional[Path] = None) -> Optional[Path]:
    """Find ``toolpod.yaml`` by walking up the directory tree."""
    current = Path(start or Path.cwd()).resolve()
    while True:
        candidate = current / CONFIG_FILENAME
        if candidate.exists():
            return candidate
        if current == current.parent:
            return None
        current = current.parent


def _load_yaml(path: Path) -> Dict[str, Any]:
    """Load YAML file if it exists."""
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")

    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Failed to load config from {path}: {e}")

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config in {path} must be a mapping")
    return data


def load_config(path: Optional[Path] = None) -> PodConfig:
    """
    Load and validate the pod configuration.

    Args:
        path: Explicit config file. If None, ``find_config()`` is used and
            defaults apply when nothing is found.

    Returns:
        Validated PodConfig. ``TOOLPOD_LOG_LEVEL`` overrides ``logging.level``.
    """
    if path is None:
        path = find_config()
    data = _load_yaml(Path(path)) if path is not None else {}

    env_level = os.environ.get(LOG_LEVEL_ENV)
    if env_level:
        data.setdefault("logging", {})
        if not isinstance(data["logging"], dict):
            raise ConfigError("logging must be a mapping")
        data["logging"]["level"] = env_level

    try:
        return PodConfig(**data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}")


def load_tools(target: str) -> List[Tool]:
    """
    Import the tools named by a ``module:attribute`` target.

    The attribute may be a list of tools or a zero-argument callable
    returning one.
    """
    module_name, _, attr = target.partition(":")
    if not module_name or not attr:
        raise ConfigError(f"Invalid tools target {target!r}, expected 'module:attribute'")

    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise ConfigError(f"Cannot import tools module {module_name!r}: {e}")

    try:
        tools = getattr(module, attr)
    except AttributeError:
        raise ConfigError(f"Module {module_name!r} has no attribute {attr!r}")

    if callable(tools):
        tools = tools()

    try:
        tools = list(tools)
    except TypeError:
        raise ConfigError(f"{target} is not a list of tools")
    for tool in tools:
        if not isinstance(tool, Tool):
            raise ConfigError(f"{target} contains a non-Tool item: {tool!r}")
    return tools


def build_options(config: PodConfig, tools: Optional[List[Tool]] = None) -> PodOptions:
    """Combine a config and its tools into ``PodOptions``."""
    if tools is None:
        tools = load_tools(config.tools)
    return PodOptions(
        name=config.name,
        version=config.version,
        tools=tools,
        capabilities=config.capabilities,
    )
