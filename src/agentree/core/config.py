"""Layered configuration for agent trees.

Loads and merges configuration from:
1. Default settings (built-in)
2. Project config (.agentree/config.yaml)
3. Caller / CLI parameters (override)

The merged result is validated once, frozen, and shared by reference with
every agent in the tree.
"""

from __future__ import annotations

import copy
import logging
from pathlib import Path
from typing import Optional, Union

import yaml
from pydantic import ValidationError

from ..models.config import AgentTreeConfig
from .errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG: dict = {
    "base_url": "https://api.openai.com/v1",
    "model": "gpt-4",
    "max_depth": 5,
    "streaming": False,
    "output_file": True,
    "output_folder": ".agentree",
    "temperature": 0.0,
    "timeout_seconds": 300,
    "retry_attempts": 3,
    "retry_delay_seconds": 5,
    "max_steps": None,
}

MIN_DEPTH = 1
MAX_DEPTH = 10


def get_default() -> dict:
    """Return a copy of the built-in defaults."""
    return copy.deepcopy(DEFAULT_CONFIG)


def merge(partial: Union[dict, AgentTreeConfig, None] = None) -> AgentTreeConfig:
    """Overlay user-provided fields on the defaults.

    Flat merge: keys set to None count as "not provided". An existing
    AgentTreeConfig is returned unchanged so subtrees share one snapshot.
    """
    if isinstance(partial, AgentTreeConfig):
        return partial

    values = get_default()
    for key, value in (partial or {}).items():
        if value is not None:
            values[key] = value

    try:
        return AgentTreeConfig(**values)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e


def validate(config: AgentTreeConfig) -> None:
    if not config.api_key:
        raise ConfigurationError("API key is required")

    if config.max_depth is not None and not (MIN_DEPTH <= config.max_depth <= MAX_DEPTH):
        raise ConfigurationError(f"max_depth must be between {MIN_DEPTH} and {MAX_DEPTH}")

    if not config.model:
        raise ConfigurationError("Model is required")

    if config.max_steps is not None and config.max_steps < 1:
        raise ConfigurationError("max_steps must be a positive integer")


def load_project_config(project_path: Path) -> dict:
    """Load project configuration from .agentree/config.yaml."""
    config_path = project_path / ".agentree" / "config.yaml"
    if not config_path.exists():
        return {}
    try:
        content = config_path.read_text(encoding="utf-8-sig")  # utf-8-sig strips BOM
        data = yaml.safe_load(content) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.warning("Ignoring unreadable project config %s: %s", config_path, e)
        return {}
    if not isinstance(data, dict):
        logger.warning("Ignoring project config %s: expected a mapping", config_path)
        return {}
    return data


def get_effective_config(
    project_path: Optional[Path] = None,
    cli_overrides: Optional[dict] = None,
) -> dict:
    """Resolve defaults < project file < CLI overrides into one flat dict."""
    config = get_default()

    if project_path is not None:
        for key, value in load_project_config(project_path).items():
            config[key] = value

    for key, value in (cli_overrides or {}).items():
        if value is not None:
            config[key] = value

    return config
