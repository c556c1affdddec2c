"""Configuration loader.

Reads ``config/carveout.yaml`` (or the file named by ``CARVEOUT_CONFIG``)
and exposes nested lookups. Environment variables from ``.env`` are loaded
once at import so provider API keys resolve the same way everywhere.
"""

import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict

import yaml
from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "carveout.yaml"


def get_config_path() -> Path:
    """Return the directory holding configuration files."""
    override = os.getenv("CARVEOUT_CONFIG")
    if override:
        return Path(override).parent
    return Path(__file__).resolve().parent.parent.parent.parent / "config"


@lru_cache(maxsize=1)
def load_config() -> Dict[str, Any]:
    """Load and cache the YAML configuration.

    A missing file yields an empty dict so every lookup falls back to its
    default.
    """
    override = os.getenv("CARVEOUT_CONFIG")
    config_file = Path(override) if override else get_config_path() / CONFIG_FILENAME

    if not config_file.exists():
        logger.warning(f"{config_file} not found, using built-in defaults")
        return {}

    with open(config_file, "r") as f:
        config = yaml.safe_load(f) or {}

    if not isinstance(config, dict):
        raise ValueError(f"{config_file} must contain a mapping at the top level")

    logger.debug(f"Loaded configuration from {config_file}")
    return config


def get_config_value(*keys: str, default: Any = None) -> Any:
    """Walk nested configuration keys, returning ``default`` when absent.

    Example:
        >>> get_config_value("oracle", "timeout_seconds", default=120)
    """
    node: Any = load_config()
    for key in keys:
        if not isinstance(node, dict) or key not in node:
            return default
        node = node[key]
    return default if node is None else node


def get_oracle_config() -> Dict[str, Any]:
    """Oracle settings with environment overrides applied."""
    cfg = dict(get_config_value("oracle", default={}) or {})
    if os.getenv("LLM_PROVIDER"):
        cfg["provider"] = os.getenv("LLM_PROVIDER")
    if os.getenv("LLM_MODEL"):
        cfg["model"] = os.getenv("LLM_MODEL")
    return cfg


def reset_config_cache() -> None:
    """Drop the cached configuration (tests and long-lived processes)."""
    load_config.cache_clear()
