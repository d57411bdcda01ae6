"""
Configuration loading for notion2memos.

Configuration is a JSON file shaped like::

    {
      "notion": {"token": "secret_..."},
      "memos": {"url": "https://memos.example.com", "token": "..."},
      "migration": {"state_file": "~/.notion2memos/state.json"}
    }

Values from the environment override the file, so a file is optional when
the three credentials are exported: ``NOTION_TOKEN``, ``MEMOS_URL`` and
``MEMOS_TOKEN`` (or the same names prefixed with ``NOTION2MEMOS_``).
"""

from __future__ import annotations

import json
import logging
import os
from typing import Any, Dict, List, Mapping, Optional, Tuple

from notion2memos.utils.errors import ConfigError

logger = logging.getLogger(__name__)

CONFIG_DIR = os.path.join("~", ".notion2memos")
CONFIG_FILENAME = "config.json"
ENV_PREFIX = "NOTION2MEMOS_"

# (section, key, environment variable) for every required setting
REQUIRED_SETTINGS: List[Tuple[str, str, str]] = [
    ("notion", "token", "NOTION_TOKEN"),
    ("memos", "url", "MEMOS_URL"),
    ("memos", "token", "MEMOS_TOKEN"),
]

CONFIG_TEMPLATE: Dict[str, Any] = {
    "notion": {
        "token": "YOUR_NOTION_TOKEN_HERE",
    },
    "memos": {
        "url": "YOUR_MEMOS_URL_HERE",
        "token": "YOUR_MEMOS_TOKEN_HERE",
    },
}


def default_config_path() -> str:
    return os.path.expanduser(os.path.join(CONFIG_DIR, CONFIG_FILENAME))


def default_state_path() -> str:
    return os.path.expanduser(os.path.join(CONFIG_DIR, "state.json"))


def _candidate_paths(config_file: Optional[str]) -> List[str]:
    if config_file:
        return [config_file]
    return [default_config_path(), os.path.join(os.getcwd(), CONFIG_FILENAME)]


def _read_config_file(path: str) -> Dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        raise ConfigError(f"failed to read config file {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"config file {path} must contain a JSON object")
    return data


def _env_value(env: Mapping[str, str], name: str) -> str:
    return env.get(name) or env.get(ENV_PREFIX + name) or ""


def load_config(
    config_file: Optional[str] = None,
    *,
    env: Optional[Mapping[str, str]] = None,
    validate: bool = True,
) -> Dict[str, Any]:
    """
    Load and validate the configuration.

    :param config_file: Explicit path to a JSON config file.  It must exist.
        When omitted, ``~/.notion2memos/config.json`` and then
        ``./config.json`` are tried, and having neither is fine.
    :param env: Environment mapping, ``os.environ`` by default.
    :param validate: Check that the required credentials are present.
    :return: The configuration dictionary with defaults filled in.
    :raises ConfigError: if the file is unreadable or a required value is
        missing after applying environment overrides.
    """
    env = os.environ if env is None else env

    config: Dict[str, Any] = {}
    if config_file and not os.path.exists(config_file):
        raise ConfigError(f"config file not found: {config_file}")
    for path in _candidate_paths(config_file):
        if os.path.exists(path):
            config = _read_config_file(path)
            logger.debug("Configuration loaded from %s", path)
            break

    for section in ("notion", "memos", "migration"):
        if not isinstance(config.setdefault(section, {}), dict):
            raise ConfigError(f"config section '{section}' must be an object")

    # Ensure essential keys exist to prevent KeyErrors
    config["notion"].setdefault("base_url", "https://api.notion.com/v1")
    config["notion"].setdefault("version", "2025-09-03")
    config["migration"].setdefault("state_file", default_state_path())
    config["migration"].setdefault("dry_run_dir", "dry-run-output")
    config["migration"].setdefault("report_dir", os.path.join("reports", "migration"))

    for section, key, env_name in REQUIRED_SETTINGS:
        override = _env_value(env, env_name)
        if override:
            config[section][key] = override

    if validate:
        validate_config(config)
    return config


def validate_config(config: Mapping[str, Any]) -> None:
    """Raise :class:`ConfigError` naming the first missing required setting."""
    for section, key, env_name in REQUIRED_SETTINGS:
        value = (config.get(section) or {}).get(key)
        if not isinstance(value, str) or not value.strip() or value == CONFIG_TEMPLATE[section][key]:
            raise ConfigError(
                f"{section}.{key} is required (set via config file or {env_name} env var)"
            )


def write_config_template(path: Optional[str] = None, *, force: bool = False) -> str:
    """
    Write a config file template for the user to fill in.

    :param path: Target path, ``~/.notion2memos/config.json`` by default.
    :param force: Overwrite an existing file.
    :return: The path written.
    :raises ConfigError: if the file exists and ``force`` is false, or it
        cannot be written.
    """
    target = os.path.expanduser(path) if path else default_config_path()
    if os.path.exists(target) and not force:
        raise ConfigError(f"config file already exists at {target}")
    try:
        os.makedirs(os.path.dirname(target) or ".", exist_ok=True)
        fd = os.open(target, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(CONFIG_TEMPLATE, f, indent=2)
            f.write("\n")
    except OSError as e:
        raise ConfigError(f"failed to write config file {target}: {e}") from e
    return target
