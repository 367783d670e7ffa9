"""
Configuration — loads settings from .bufpatch.yaml, environment variables,
and built-in defaults (in that priority order: CLI args > env > YAML > defaults).
"""

import os
import shlex

import yaml

from .editing.buffer_port import AddressStyle
from .editing.diff_invoker import accept_statuses


_DEFAULTS = {
    "diff_command": "diff",
    "diff_ok_status": [0, 1],
    "group_undo": True,
    "address_style": "bytes",
    "command_timeout": 0,
    "log_dir": ".bufpatch/logs",
    "metrics": False,
    "metrics_root": ".",
}

# Config file search locations
_CONFIG_FILENAMES = [".bufpatch.yaml", ".bufpatch.yml"]


def _find_config_file(explicit_path: str | None = None) -> str | None:
    """Find the config file. Checks explicit path, CWD, then user home."""
    if explicit_path:
        if os.path.isfile(explicit_path):
            return explicit_path
        return None

    search_dirs = [os.getcwd(), os.path.expanduser("~")]
    for d in search_dirs:
        for name in _CONFIG_FILENAMES:
            path = os.path.join(d, name)
            if os.path.isfile(path):
                return path
    return None


def _load_yaml(path: str) -> dict:
    """Load YAML file, returns empty dict on failure."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
        return data if isinstance(data, dict) else {}
    except (OSError, yaml.YAMLError):
        return {}


def _parse_status_list(value) -> list[int]:
    """Accept ``[0, 1]``, ``"0,1"`` or a single int."""
    if isinstance(value, int):
        return [value]
    if isinstance(value, str):
        return [int(p) for p in value.replace(" ", "").split(",") if p]
    return [int(v) for v in value]


def _parse_command(value) -> list[str]:
    if isinstance(value, str):
        return shlex.split(value)
    return [str(v) for v in value]


class Config:
    """Application configuration.

    Settings are resolved in priority order:
    1. CLI arguments (handled by caller)
    2. Environment variables
    3. .bufpatch.yaml config file
    4. Built-in defaults
    """

    def __init__(self, yaml_data: dict | None = None):
        yd = yaml_data or {}

        # Helper: env var > yaml > default
        def _get(env_key: str, yaml_key: str, default, cast=str):
            env_val = os.getenv(env_key)
            if env_val is not None:
                return cast(env_val)
            yaml_val = yd.get(yaml_key)
            if yaml_val is not None:
                return cast(yaml_val)
            return default

        def _get_bool(env_key: str, yaml_key: str, default: bool) -> bool:
            env_val = os.getenv(env_key)
            if env_val is not None:
                return env_val.lower() == "true"
            yaml_val = yd.get(yaml_key)
            if yaml_val is not None:
                return bool(yaml_val)
            return default

        self.DIFF_COMMAND: list[str] = _get(
            "BUFPATCH_DIFF_COMMAND", "diff_command",
            _parse_command(_DEFAULTS["diff_command"]), cast=_parse_command)
        if not self.DIFF_COMMAND:
            self.DIFF_COMMAND = _parse_command(_DEFAULTS["diff_command"])
        self.DIFF_OK_STATUS: list[int] = _get(
            "BUFPATCH_DIFF_OK_STATUS", "diff_ok_status",
            list(_DEFAULTS["diff_ok_status"]), cast=_parse_status_list)

        self.GROUP_UNDO = _get_bool("BUFPATCH_GROUP_UNDO", "group_undo",
                                    _DEFAULTS["group_undo"])

        style = _get("BUFPATCH_ADDRESS_STYLE", "address_style",
                     _DEFAULTS["address_style"])
        try:
            self.ADDRESS_STYLE = AddressStyle(str(style).lower())
        except ValueError:
            self.ADDRESS_STYLE = AddressStyle(_DEFAULTS["address_style"])

        # 0 means no timeout
        self.COMMAND_TIMEOUT = _get("BUFPATCH_COMMAND_TIMEOUT", "command_timeout",
                                    _DEFAULTS["command_timeout"], cast=float)

        self.LOG_DIR = _get("BUFPATCH_LOG_DIR", "log_dir", _DEFAULTS["log_dir"])

        self.METRICS_ENABLED = _get_bool("BUFPATCH_METRICS", "metrics",
                                         _DEFAULTS["metrics"])
        self.METRICS_ROOT = _get("BUFPATCH_METRICS_ROOT", "metrics_root",
                                 _DEFAULTS["metrics_root"])

    def make_accept_status(self):
        """Return the exit-status predicate for the diff invoker."""
        return accept_statuses(self.DIFF_OK_STATUS)

    @classmethod
    def load(cls, config_path: str | None = None) -> "Config":
        """Load config from YAML file (if found) + env vars + defaults."""
        path = _find_config_file(config_path)
        yaml_data = _load_yaml(path) if path else {}
        return cls(yaml_data)
