"""Configuration utilities for the possync CLI.

This module provides:
- get_config_dir() / load_config() / save_config(): JSON config file
- load_settings(): Config file merged with POSSYNC_* environment variables
- setup_logging(): Handlers on the possync logger
"""

from __future__ import annotations

import json
import logging
import os
import sys
from collections.abc import Mapping
from dataclasses import fields
from pathlib import Path
from typing import Any

from possync.core.config import (
    BackofficeConfig,
    ErpConfig,
    MenuApiConfig,
    PosApiConfig,
    Settings,
    SyncConfig,
)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

SECTIONS = {
    "backoffice": BackofficeConfig,
    "pos": PosApiConfig,
    "menu": MenuApiConfig,
    "erp": ErpConfig,
    "sync": SyncConfig,
}

# Environment variable -> (section, field)
ENV_VARS = {
    "POSSYNC_BACKOFFICE_URL": ("backoffice", "base_url"),
    "POSSYNC_USERNAME": ("backoffice", "username"),
    "POSSYNC_PASSWORD": ("backoffice", "password"),
    "POSSYNC_SESSION_ID": ("backoffice", "session_id"),
    "POSSYNC_USER_ID": ("backoffice", "user_id"),
    "POSSYNC_LSP_ID": ("backoffice", "lsp_id"),
    "POSSYNC_ORG_ID": ("backoffice", "org_id"),
    "POSSYNC_SESSION_TTL_HOURS": ("backoffice", "session_ttl_hours"),
    "POSSYNC_TIMEOUT": ("backoffice", "timeout"),
    "POSSYNC_POS_URL": ("pos", "base_url"),
    "POSSYNC_MENU_URL": ("menu", "url"),
    "POSSYNC_MENU_API_KEY": ("menu", "api_key"),
    "POSSYNC_ERP_URL": ("erp", "url"),
    "POSSYNC_ERP_DATABASE": ("erp", "database"),
    "POSSYNC_ERP_USERNAME": ("erp", "username"),
    "POSSYNC_ERP_API_KEY": ("erp", "api_key"),
    "POSSYNC_DIRECTORY_URL": ("sync", "directory_url"),
    "POSSYNC_DIRECTORY_TOKEN": ("sync", "directory_token"),
    "POSSYNC_DATABASE_URL": ("sync", "database_url"),
    "POSSYNC_REDIS_URL": ("sync", "redis_url"),
    "POSSYNC_SYNC_INTERVAL": ("sync", "sync_interval_minutes"),
    "POSSYNC_BANNER_HOUR": ("sync", "banner_hour"),
    "POSSYNC_GL_EXPORT_HOUR": ("sync", "gl_export_hour"),
    "POSSYNC_MAX_WORKERS": ("sync", "max_workers"),
}


def get_config_dir() -> Path:
    """Get the configuration directory for possync.

    Returns:
        Path to ~/.possync, or $POSSYNC_CONFIG_DIR when set.
    """
    override = os.environ.get("POSSYNC_CONFIG_DIR")
    if override:
        return Path(override).expanduser()
    return Path.home() / ".possync"


def get_config_file() -> Path:
    """Get the path to the config file."""
    return get_config_dir() / "config.json"


def load_config() -> dict[str, Any]:
    """Load configuration from config file."""
    config_file = get_config_file()
    if config_file.exists():
        return dict(json.loads(config_file.read_text()))
    return {}


def save_config(config: dict[str, Any]) -> None:
    """Save configuration to config file."""
    config_file = get_config_file()
    config_file.parent.mkdir(parents=True, exist_ok=True)
    config_file.write_text(json.dumps(config, indent=2))


def _coerce(value: Any, type_name: str) -> Any:
    if not isinstance(value, str):
        return value
    if value == "" and "None" in type_name:
        return None
    if type_name.startswith("int"):
        return int(value)
    if type_name.startswith("float"):
        return float(value)
    return value


def _build_section(name: str, values: Mapping[str, Any]) -> Any:
    cls = SECTIONS[name]
    types = {f.name: str(f.type) for f in fields(cls)}
    unknown = set(values) - set(types)
    if unknown:
        raise ValueError(f"Unknown {name} setting(s): {', '.join(sorted(unknown))}")
    return cls(**{key: _coerce(value, types[key]) for key, value in values.items()})


def load_settings(
    config: Mapping[str, Any] | None = None,
    environ: Mapping[str, str] | None = None,
) -> Settings:
    """Resolve settings from the config file and the environment.

    Environment variables win over the config file.

    Args:
        config: Config file contents (read from disk when omitted).
        environ: Environment (os.environ when omitted).

    Returns:
        Resolved settings.

    Raises:
        ValueError: On unknown settings or unparsable values.
    """
    if config is None:
        config = load_config()
    if environ is None:
        environ = os.environ

    merged: dict[str, dict[str, Any]] = {name: {} for name in SECTIONS}
    for name in SECTIONS:
        section = config.get(name) or {}
        if not isinstance(section, dict):
            raise ValueError(f"Config section {name!r} must be an object")
        merged[name].update(section)

    for var, (section, key) in ENV_VARS.items():
        if var in environ:
            merged[section][key] = environ[var]

    return Settings(**{name: _build_section(name, values) for name, values in merged.items()})


def setup_logging(level: str = "INFO", log_path: Path | None = None) -> None:
    """Configure logging to stdout and, optionally, a file.

    Args:
        level: Log level name for the possync logger.
        log_path: Optional path of a log file.
    """
    formatter = logging.Formatter(LOG_FORMAT)

    root_logger = logging.getLogger("possync")
    root_logger.setLevel(level.upper())
    root_logger.handlers.clear()

    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setFormatter(formatter)
    root_logger.addHandler(stdout_handler)

    if log_path is not None:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    # APScheduler job errors go to the same handlers
    logging.getLogger("apscheduler").setLevel(logging.WARNING)
    logging.getLogger("apscheduler").handlers = list(root_logger.handlers)
