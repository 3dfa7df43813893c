# src/goalsync/logging_config.py
"""
Logging configuration for goalsync.

goalsync is a long-running background service, so by default it logs
everything to a file and keeps the console quiet.  Messages the user
must see (bad credentials, a goal the service does not know) are logged
with ``extra={"display": True}`` and reach the console anyway.

Configuration comes from the ``[logging]`` table of the goalsync config
file (or a dict passed in directly) and supports:
- Console logging gated by :class:`DisplayFilter`
- File logging, one file per run or a single rotating file
- Per-component log level overrides

Usage:
    from goalsync.logging_config import configure_logging, log_display

    configure_logging(config=sync_config.logging)

    logger = logging.getLogger("goalsync.service")
    log_display(logger, logging.ERROR, "Beeminder rejected the auth token")
"""

import logging
import os
import sys
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Optional

# ---------------------------------------------------------------------------
# Default logging configuration
# ---------------------------------------------------------------------------

DEFAULT_LOGGING_CONFIG: dict[str, Any] = {
    "console_enabled": False,
    "console_level": "WARNING",
    "console_format": "%(levelname)s - %(message)s",
    "file_enabled": True,
    "file_level": "DEBUG",
    "file_directory": "~/.local/share/goalsync/logs",
    "file_mode": "single",
    "file_name_pattern": "{app}_{timestamp:%Y%m%d_%H%M%S}.log",
    "file_single_name": "{app}.log",
    "file_format": "%(asctime)s [%(levelname)-8s] %(name)-30s - %(message)s (%(filename)s:%(lineno)d)",
    "rotation_max_bytes": 5 * 1024 * 1024,  # 5 MB
    "rotation_backup_count": 3,
    "display_min_level": "INFO",
    "components": {
        "goalsync": "INFO",
        "aiohttp": "WARNING",
        "asyncio": "WARNING",
    },
}


def _level(value: Any, default: int) -> int:
    """Resolve a level name or number, falling back to ``default``."""
    if isinstance(value, int):
        return value
    level = logging.getLevelName(str(value).upper())
    return level if isinstance(level, int) else default


# ---------------------------------------------------------------------------
# DisplayFilter
# ---------------------------------------------------------------------------


class DisplayFilter(logging.Filter):
    """Controls which log records pass through to the console handler.

    When the console is globally enabled (``--verbose``), everything
    passes and the handler's own level does the filtering.  Otherwise only
    records carrying ``display=True`` at or above ``display_min_level``
    pass.
    """

    def __init__(
        self,
        console_globally_enabled: bool = False,
        display_min_level: int = logging.INFO,
    ) -> None:
        super().__init__()
        self.console_globally_enabled = console_globally_enabled
        self.display_min_level = display_min_level

    def filter(self, record: logging.LogRecord) -> bool:
        """Determine if the record should pass to console."""
        if self.console_globally_enabled:
            return True

        if getattr(record, "display", False):
            return record.levelno >= self.display_min_level

        return False


# ---------------------------------------------------------------------------
# LoggingManager
# ---------------------------------------------------------------------------


class LoggingManager:
    """
    Singleton manager for goalsync's logging setup.

    Ensures logging is only configured once and allows runtime level
    changes.
    """

    _instance: Optional["LoggingManager"] = None
    _configured: bool = False
    _log_file_path: Path | None = None
    _console_handler: logging.Handler | None = None
    _file_handler: logging.Handler | None = None

    def __new__(cls) -> "LoggingManager":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    @classmethod
    def get_instance(cls) -> "LoggingManager":
        """Get the singleton instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def is_configured(cls) -> bool:
        return cls._configured

    @classmethod
    def get_log_file_path(cls) -> Path | None:
        return cls._log_file_path

    def configure(
        self,
        app_name: str = "goalsync",
        config: dict[str, Any] | None = None,
        force_reconfigure: bool = False,
    ) -> Path | None:
        """
        Configure logging for the process.

        Args:
            app_name: Name used in log file names
            config: The ``[logging]`` section (merged over the defaults)
            force_reconfigure: If True, reconfigure even if already configured

        Returns:
            Path to the log file, or None when file logging is off
        """
        if self._configured and not force_reconfigure:
            return self._log_file_path

        log_config = {**DEFAULT_LOGGING_CONFIG, **(config or {})}

        root_logger = logging.getLogger()
        for handler in root_logger.handlers[:]:
            root_logger.removeHandler(handler)
            handler.close()
        root_logger.setLevel(logging.DEBUG)

        # --- Console handler (always created, gated by DisplayFilter) ---
        console_enabled = bool(log_config.get("console_enabled", False))
        display_filter = DisplayFilter(
            console_globally_enabled=console_enabled,
            display_min_level=_level(log_config.get("display_min_level"), logging.INFO),
        )
        console = logging.StreamHandler(sys.stderr)
        console.setFormatter(logging.Formatter(log_config["console_format"]))
        if console_enabled:
            console.setLevel(_level(log_config.get("console_level"), logging.WARNING))
        else:
            # The filter is the sole gate.
            console.setLevel(logging.DEBUG)
        console.addFilter(display_filter)
        root_logger.addHandler(console)
        LoggingManager._console_handler = console

        # --- File handler ---
        LoggingManager._file_handler = None
        LoggingManager._log_file_path = None
        if log_config.get("file_enabled", True):
            handler, path = self._create_file_handler(log_config, app_name)
            if handler is not None:
                root_logger.addHandler(handler)
                LoggingManager._file_handler = handler
                LoggingManager._log_file_path = path

        components = log_config.get("components", DEFAULT_LOGGING_CONFIG["components"])
        for component_name, level_str in components.items():
            logging.getLogger(component_name).setLevel(_level(level_str, logging.INFO))

        LoggingManager._configured = True
        logging.getLogger("goalsync.logging_config").debug(
            f"Logging configured. Log file: {self._log_file_path}"
        )
        return self._log_file_path

    def _create_file_handler(
        self, config: dict[str, Any], app_name: str
    ) -> tuple[logging.Handler | None, Path | None]:
        """Create the file handler.

        ``file_mode="single"`` (default) uses a
        :class:`~logging.handlers.RotatingFileHandler`; ``"per_run"``
        creates a new timestamped file each invocation.
        """
        log_dir = Path(os.path.expanduser(config.get("file_directory", DEFAULT_LOGGING_CONFIG["file_directory"])))
        try:
            log_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            sys.stderr.write(f"Warning: Cannot create log directory {log_dir}: {e}\n")
            return None, None

        try:
            if config.get("file_mode", "single") == "per_run":
                pattern = config.get("file_name_pattern", DEFAULT_LOGGING_CONFIG["file_name_pattern"])
                try:
                    filename = pattern.format(app=app_name, timestamp=datetime.now())
                except (KeyError, ValueError):
                    filename = f"{app_name}_{datetime.now().strftime('%Y%m%d_%H%M%S')}.log"
                log_file_path = log_dir / filename
                handler: logging.Handler = logging.FileHandler(log_file_path, encoding="utf-8")
            else:
                try:
                    filename = config.get("file_single_name", "{app}.log").format(app=app_name)
                except (KeyError, ValueError):
                    filename = f"{app_name}.log"
                log_file_path = log_dir / filename
                handler = RotatingFileHandler(
                    log_file_path,
                    maxBytes=int(config.get("rotation_max_bytes", DEFAULT_LOGGING_CONFIG["rotation_max_bytes"])),
                    backupCount=int(config.get("rotation_backup_count", DEFAULT_LOGGING_CONFIG["rotation_backup_count"])),
                    encoding="utf-8",
                )
        except OSError as e:
            sys.stderr.write(f"Warning: Cannot create log file in {log_dir}: {e}\n")
            return None, None

        handler.setLevel(_level(config.get("file_level"), logging.DEBUG))
        handler.setFormatter(logging.Formatter(config.get("file_format", DEFAULT_LOGGING_CONFIG["file_format"])))
        return handler, log_file_path

    def set_console_level(self, level: str | int) -> None:
        """Change the console handler's log level at runtime."""
        if self._console_handler is not None:
            self._console_handler.setLevel(_level(level, logging.WARNING))

    def set_component_level(self, component: str, level: str | int) -> None:
        """Change a specific component's log level at runtime."""
        logging.getLogger(component).setLevel(_level(level, logging.INFO))


# ---------------------------------------------------------------------------
# Public module-level functions
# ---------------------------------------------------------------------------


def configure_logging(
    app_name: str = "goalsync",
    config: dict[str, Any] | None = None,
    force_reconfigure: bool = False,
) -> Path | None:
    """
    Configure logging for the application.

    Call this once at startup, before the service starts.

    Example:
        configure_logging(config={"console_enabled": True, "console_level": "INFO"})
    """
    return LoggingManager.get_instance().configure(
        app_name=app_name,
        config=config,
        force_reconfigure=force_reconfigure,
    )


def log_display(
    logger: logging.Logger,
    level: int,
    msg: str,
    *args: Any,
    **kwargs: Any,
) -> None:
    """Log a message that also appears on console even in silent mode.

    Sets ``extra={"display": True}``, merged with any ``extra`` the
    caller passes.  ``display_min_level`` still applies.
    """
    extra = kwargs.pop("extra", None) or {}
    extra["display"] = True
    kwargs["extra"] = extra
    logger.log(level, msg, *args, **kwargs)


def get_log_file_path() -> Path | None:
    """Get the current log file path."""
    return LoggingManager.get_log_file_path()


def set_console_level(level: str | int) -> None:
    """Change console log level at runtime."""
    LoggingManager.get_instance().set_console_level(level)


def set_component_level(component: str, level: str | int) -> None:
    """Change a specific component's log level at runtime."""
    LoggingManager.get_instance().set_component_level(component, level)
