# src/goalsync/config/__init__.py
"""
Configuration module for goalsync.

Configuration files:
    - User config: ~/.config/goalsync/config.toml
    - Custom config: passed as ``config_path`` / ``--config``

Environment variables:
    - Prefix: GOALSYNC_
    - Nested keys use double underscores: GOALSYNC_REMOTE__AUTH_TOKEN
"""

from .settings import (
    DEFAULT_CONFIG_PATH,
    ENV_PREFIX,
    RemoteConfig,
    SchedulerConfig,
    SyncConfig,
    VaultConfig,
    load_config,
    load_toml_config,
)

__all__ = [
    "DEFAULT_CONFIG_PATH",
    "ENV_PREFIX",
    "RemoteConfig",
    "SchedulerConfig",
    "SyncConfig",
    "VaultConfig",
    "load_config",
    "load_toml_config",
]
