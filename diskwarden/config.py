import copy
import os
from pathlib import Path
from typing import Optional

import yaml

from .byte_size import ByteSize
from .errors import ConfigurationError


DEFAULT_CONFIG = {
    "telegram": {
        "bot_token": "",
        "alerts_chat": "",
        "topic_id": None,
    },
    "monitor": {
        "max_size": "1GB",
        "check_interval": 300,
        "state_dir": "",
        "mount": "/",
    },
    "cleanup": {
        "path": "/tmp",
        "max_age_hours": 24,
        "interval": 3600,
    },
}

MARKER_FILE = "disk_alert_rung"


def get_config_path() -> Path:
    """Get the path to the config file."""
    config_home = os.environ.get("XDG_CONFIG_HOME") or str(Path.home() / ".config")
    return Path(config_home) / "diskwarden" / "config.yaml"


def state_dir() -> Path:
    """Get the XDG state directory (~/.local/state by default)."""
    state_home = os.environ.get("XDG_STATE_HOME")
    if state_home:
        return Path(state_home)
    return Path.home() / ".local" / "state"


def marker_path() -> Path:
    """Path of the file remembering the last alerted disk usage rung."""
    return state_dir() / "diskwarden" / MARKER_FILE


def load_config(path: Optional[Path] = None) -> dict:
    """
    Load configuration from file, creating the default one if it doesn't exist.

    Args:
        path: Explicit config file. Must exist when given.

    Raises:
        ConfigurationError: if the file is missing (explicit path) or not valid YAML
    """
    if path is not None:
        config_path = Path(expand_path(str(path)))
        if not config_path.exists():
            raise ConfigurationError(f"Config file not found: {config_path}")
    else:
        config_path = get_config_path()
        if not config_path.exists():
            save_config(DEFAULT_CONFIG, config_path)
            return copy.deepcopy(DEFAULT_CONFIG)

    try:
        with open(config_path, "r") as f:
            config = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in config file {config_path}: {e}")

    if not isinstance(config, dict):
        raise ConfigurationError(f"Config at {config_path} must be a mapping")

    # Merge with defaults for any missing keys
    merged = copy.deepcopy(DEFAULT_CONFIG)
    for section, values in config.items():
        if section in merged and isinstance(values, dict):
            merged[section].update(values)
        else:
            merged[section] = values

    return merged


def save_config(config: dict, path: Optional[Path] = None) -> None:
    """Save configuration to file."""
    config_path = path or get_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)

    with open(config_path, "w") as f:
        yaml.dump(config, f, default_flow_style=False)


def validate_config(config: dict, require_telegram: bool = True) -> None:
    """
    Check the settings a run depends on.

    Raises:
        ConfigurationError: describing the first invalid setting found
    """
    if require_telegram:
        telegram = config.get("telegram") or {}
        if not telegram.get("bot_token"):
            raise ConfigurationError("Telegram bot_token not configured")
        if not telegram.get("alerts_chat"):
            raise ConfigurationError("Telegram alerts_chat not configured")

    monitor = config.get("monitor") or {}
    try:
        ByteSize.parse(monitor.get("max_size"))
    except (TypeError, ValueError, AttributeError) as e:
        raise ConfigurationError(f"Invalid monitor.max_size {monitor.get('max_size')!r}: {e}")

    cleanup = config.get("cleanup") or {}
    for section, key, value in (
        ("monitor", "check_interval", monitor.get("check_interval")),
        ("cleanup", "interval", cleanup.get("interval")),
        ("cleanup", "max_age_hours", cleanup.get("max_age_hours")),
    ):
        if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
            raise ConfigurationError(f"{section}.{key} must be a positive number, got {value!r}")


def expand_path(path: str) -> str:
    """Expand ~ and environment variables in a path."""
    return os.path.expanduser(os.path.expandvars(path))
