"""Config package - configuration loading."""

from .loader import (
    DEFAULT_CONFIG,
    get_cache_path,
    get_config_path,
    get_database_path,
    get_sessions_path,
    load_config,
)

__all__ = [
    "load_config",
    "get_config_path",
    "get_sessions_path",
    "get_cache_path",
    "get_database_path",
    "DEFAULT_CONFIG",
]
