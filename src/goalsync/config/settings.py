# src/goalsync/config/settings.py
"""
Configuration models and loader.

The configuration hierarchy:
    SyncConfig (root)
    ├── RemoteConfig      - goal service credentials and transport
    ├── SchedulerConfig   - drain tick, settle delay, update policy
    ├── VaultConfig       - where documents and daily notes live
    ├── goals             - one Goal per tracked series
    └── logging           - passed to configure_logging()

Configuration is loaded and merged in order:
    1. Default values
    2. TOML config file (default: ~/.config/goalsync/config.toml)
    3. Environment variables (GOALSYNC_ prefix, ``__`` separates levels)
    4. Runtime overrides

Example config file::

    timezone = "Europe/Berlin"
    day_end = "03:00"

    [remote]
    username = "alice"
    auth_token = "${BEEMINDER_TOKEN}"

    [[goals]]
    slug = "writing"
    metric_kind = "word_count"
    file_path = "Drafts/novel.md"
    auto_submit = true
    polling_interval = "00:05:00"

Usage:
    >>> config = load_config(overrides={"remote": {"username": "alice", "auth_token": "t"}})
    >>> config.scheduler.tick_seconds
    10.0
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError as PydanticValidationError, field_validator, model_validator

from ..core.daystamp import DayBoundary, format_cutoff, parse_cutoff, resolve_timezone
from ..core.reconcile import UpdatePolicy
from ..exceptions import ConfigError
from ..models import Goal

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

logger = logging.getLogger(__name__)

ENV_PREFIX = "GOALSYNC_"
DEFAULT_CONFIG_PATH = Path("~/.config/goalsync/config.toml")


# =============================================================================
# SECTION MODELS
# =============================================================================


class RemoteConfig(BaseModel):
    """
    Remote goal service settings.

    Examples:
        >>> RemoteConfig(username="alice", auth_token="${BEEMINDER_TOKEN}").dry_run
        False
    """

    model_config = ConfigDict(frozen=True)

    provider: str = Field(default="beeminder", description="Remote service implementation")
    base_url: str = Field(default="https://www.beeminder.com/api/v1", description="API root URL")
    username: str = Field(default="", description="Account the goals belong to")
    auth_token: str = Field(
        default="",
        description="Personal auth token. Supports ${ENV_VAR} substitution.",
        repr=False,
    )
    timeout_seconds: float = Field(default=30.0, gt=0.0, description="Total request timeout")
    dry_run: bool = Field(default=False, description="Log writes instead of sending them")

    @field_validator("auth_token", "username")
    @classmethod
    def expand_env_vars(cls, v: str) -> str:
        """Expand environment variables."""
        return os.path.expandvars(v).strip()

    @field_validator("provider")
    @classmethod
    def check_provider(cls, v: str) -> str:
        if v.lower() != "beeminder":
            raise ValueError(f"Unsupported remote provider: {v!r}")
        return v.lower()


class SchedulerConfig(BaseModel):
    """
    Trigger scheduler settings.

    Examples:
        >>> SchedulerConfig().settle_delay_seconds
        3.0
    """

    model_config = ConfigDict(frozen=True)

    tick_seconds: float = Field(default=10.0, gt=0.0, description="Drain loop period")
    settle_delay_seconds: float = Field(
        default=3.0,
        ge=0.0,
        description="Quiet time after a document change before its goal is queued",
    )
    watch_interval_seconds: float = Field(
        default=5.0, gt=0.0, description="How often watched documents are polled"
    )
    update_policy: UpdatePolicy = Field(
        default=UpdatePolicy.ALWAYS_OVERWRITE,
        description="Overwrite today's datapoint even if unchanged, or skip",
    )
    max_goal_commands: int = Field(
        default=10, ge=0, le=100, description="Number of per-goal submit commands exposed"
    )


class VaultConfig(BaseModel):
    """Where tracked documents live."""

    model_config = ConfigDict(frozen=True)

    root: str = Field(default=".", description="Vault root directory")
    daily_notes_folder: str = Field(default="", description="Vault-relative daily notes folder")
    daily_note_format: str = Field(default="%Y-%m-%d", description="strftime pattern of daily notes")

    @field_validator("root")
    @classmethod
    def expand_root(cls, v: str) -> str:
        """Expand ~ and environment variables in root."""
        return os.path.expanduser(os.path.expandvars(v))


# =============================================================================
# ROOT MODEL
# =============================================================================


class SyncConfig(BaseModel):
    """
    Root configuration. Frozen: a ``SyncConfig`` is an immutable snapshot.

    Raises (on construction):
        pydantic.ValidationError: For a day_end between 06:00 and 07:00,
            an unknown timezone, or duplicate goal slugs.
    """

    model_config = ConfigDict(frozen=True)

    remote: RemoteConfig = Field(default_factory=RemoteConfig)
    timezone: str = Field(default="UTC", description="IANA timezone of the day boundary")
    day_end: str = Field(default="00:00", description="Day-end time, 00:00-06:00 or 07:00-23:59")
    goals: Tuple[Goal, ...] = Field(default_factory=tuple)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    vault: VaultConfig = Field(default_factory=VaultConfig)
    logging: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("timezone")
    @classmethod
    def check_timezone(cls, v: str) -> str:
        v = v.strip() or "UTC"
        resolve_timezone(v)
        return v

    @field_validator("day_end")
    @classmethod
    def check_day_end(cls, v: str) -> str:
        return format_cutoff(parse_cutoff(v))

    @model_validator(mode="after")
    def check_unique_slugs(self) -> "SyncConfig":
        seen = set()
        for goal in self.goals:
            if goal.slug in seen:
                raise ValueError(f"Duplicate goal slug: '{goal.slug}'")
            seen.add(goal.slug)
        return self

    @property
    def boundary(self) -> DayBoundary:
        return DayBoundary(timezone=self.timezone, cutoff=self.day_end)

    def goal(self, slug: str) -> Optional[Goal]:
        for goal in self.goals:
            if goal.slug == slug:
                return goal
        return None


# =============================================================================
# LOADING
# =============================================================================


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """
    Deep merge two dictionaries.

    Values in override take precedence. Nested dictionaries are merged recursively.
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def _apply_env_overrides(config: Dict[str, Any], environ: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    """
    Apply environment variable overrides to configuration.

    Environment variables follow the pattern ``GOALSYNC_<SECTION>__<KEY>``;
    values stay strings and are coerced by the pydantic models.

    Examples:
        GOALSYNC_TIMEZONE=Europe/Berlin
        GOALSYNC_REMOTE__AUTH_TOKEN=abc123
        GOALSYNC_SCHEDULER__TICK_SECONDS=5
    """
    env = os.environ if environ is None else environ
    result = config

    for key, value in env.items():
        if not key.startswith(ENV_PREFIX):
            continue
        parts = [part for part in key[len(ENV_PREFIX):].lower().split("__") if part]
        if not parts:
            continue
        nested: Dict[str, Any] = {parts[-1]: value}
        for part in reversed(parts[:-1]):
            nested = {part: nested}
        result = _deep_merge(result, nested)
        logger.debug(f"Applied environment override {key}")

    return result


def load_toml_config(config_path: Optional[Path] = None) -> Dict[str, Any]:
    """
    Load configuration from a TOML file.

    A missing default file is not an error; a missing explicitly given
    file or an unparsable one raises ``ConfigError``.
    """
    explicit = config_path is not None
    path = Path(os.path.expanduser(str(config_path or DEFAULT_CONFIG_PATH)))

    if not path.exists():
        if explicit:
            raise ConfigError(f"Config file not found: {path}")
        logger.debug(f"Config file not found: {path}")
        return {}

    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise ConfigError(f"Failed to load config from {path}: {e}")

    logger.debug(f"Loaded config from {path}")
    return data


def load_config(
    config_path: Optional[Path | str] = None,
    overrides: Optional[Dict[str, Any]] = None,
    environ: Optional[Dict[str, str]] = None,
) -> SyncConfig:
    """
    Load the complete configuration snapshot.

    Args:
        config_path: Optional path to a TOML config file
        overrides: Optional runtime overrides
        environ: Environment to read overrides from (default: ``os.environ``)

    Returns:
        Validated :class:`SyncConfig`

    Raises:
        ConfigError: If a source cannot be read or validation fails.
    """
    config: Dict[str, Any] = {}

    toml_config = load_toml_config(Path(config_path) if config_path else None)
    if toml_config:
        config = _deep_merge(config, toml_config)

    config = _apply_env_overrides(config, environ)

    if overrides:
        config = _deep_merge(config, overrides)

    try:
        return SyncConfig.model_validate(config)
    except PydanticValidationError as e:
        raise ConfigError(f"Invalid goalsync configuration: {e}")
