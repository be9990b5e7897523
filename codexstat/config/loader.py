"""
Configuration loading for codexstat.

Handles loading configuration from ~/.codexstat/config.json with sensible
defaults. CODEXSTAT_SESSIONS_DIR and CODEXSTAT_CACHE_DIR override the
file.
"""

import copy
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger("codexstat.config")

SESSIONS_DIR_ENV = "CODEXSTAT_SESSIONS_DIR"
CACHE_DIR_ENV = "CODEXSTAT_CACHE_DIR"

DATABASE_FILENAME = "index.sqlite"

DEFAULT_CONFIG: Dict[str, Any] = {
    "sessions_path": "~/.codex/sessions",
    "cache_path": "~/.codexstat/cache",

    # Refresh coordination (seconds)
    "refresh_interval_seconds": 10,
    "snapshot_ttl_seconds": 10,

    "timeline_max_events": 5000,

    # Display options
    "display": {
        "color_enabled": True,
    },
}

SECTION_KEYS = ('display',)
SCALAR_KEYS = (
    'sessions_path',
    'cache_path',
    'refresh_interval_seconds',
    'snapshot_ttl_seconds',
    'timeline_max_events',
)


def get_config_path() -> Path:
    """Get path to config file."""
    return Path.home() / ".codexstat" / "config.json"


def get_sessions_path(config: Dict[str, Any]) -> Path:
    """Get expanded sessions root from config."""
    return Path(config["sessions_path"]).expanduser()


def get_cache_path(config: Dict[str, Any]) -> Path:
    """Get expanded cache root from config."""
    return Path(config["cache_path"]).expanduser()


def get_database_path(config: Dict[str, Any]) -> Path:
    return get_cache_path(config) / DATABASE_FILENAME


def _env(name: str) -> Optional[str]:
    value = os.environ.get(name, "").strip()
    return value or None


def load_config(config_path: Optional[Path] = None) -> Dict[str, Any]:
    """
    Load configuration from file, merging with defaults.

    Returns a complete configuration with all default values filled in.
    User config overrides defaults where specified; environment variables
    override both for the two directory settings.
    """
    config = copy.deepcopy(DEFAULT_CONFIG)
    config_path = config_path or get_config_path()

    if config_path.exists():
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                user_config = json.load(f)

            if not isinstance(user_config, dict):
                raise ValueError("top-level value must be an object")

            for key in SECTION_KEYS:
                if key in user_config and isinstance(user_config[key], dict):
                    config[key].update(user_config[key])

            for key in SCALAR_KEYS:
                if key in user_config:
                    config[key] = user_config[key]

        except json.JSONDecodeError as e:
            logger.warning("Could not parse config file %s: %s", config_path, e)
        except (OSError, ValueError) as e:
            logger.warning("Error loading config %s: %s", config_path, e)

    sessions_dir = _env(SESSIONS_DIR_ENV)
    if sessions_dir:
        config["sessions_path"] = sessions_dir
    cache_dir = _env(CACHE_DIR_ENV)
    if cache_dir:
        config["cache_path"] = cache_dir

    return config


def save_config(config: Dict[str, Any], config_path: Optional[Path] = None) -> None:
    """Save configuration to file."""
    config_path = config_path or get_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)

    with open(config_path, 'w', encoding='utf-8') as f:
        json.dump(config, f, indent=2)
