from __future__ import annotations

import copy
import logging
import os
import sys
from typing import Any
from zoneinfo import ZoneInfo

import yaml

from .validator import validate_config, ConfigValidationError


DEFAULT_CONFIG_FILE = "config.yaml"
CONFIG_ENV_VAR = "CONFIG_PATH"
TOKEN_ENV_VAR = "DISCORD_TOKEN"

DEFAULTS: dict[str, Any] = {
    "client_id": None,
    "guild_id": None,
    "daily_channel_id": None,
    "ping_role_id": None,
    "timezone": "UTC",
    "data_file": "data.json",
    "daily_cron": "0 4 * * *",
    "timer_cron": "* * * * *",
    "welcome_message": "Welcome back, Doctor",
    "default_xp": 10,
    "daily_tasks": [{"text": "Gacha Dailies", "xp": 5}],
    "admin_ids": [],
}


def get_config_path() -> str:
    """
    Resolve the config path, preferring an explicit environment override.
    """
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return env_path
    return DEFAULT_CONFIG_FILE


def _load_raw_config(path: str | None = None) -> dict[str, Any]:
    cfg_path = path or get_config_path()
    try:
        with open(cfg_path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError:
        logging.error("Config file not found: %s", cfg_path)
        sys.exit(1)
    except yaml.YAMLError as e:
        logging.error("YAML parsing error in %s: %s", cfg_path, e)
        sys.exit(1)

    if not isinstance(data, dict):
        logging.error("Config root must be a mapping, got %s", type(data).__name__)
        sys.exit(1)

    return data


def apply_defaults(raw: dict[str, Any]) -> dict[str, Any]:
    """
    Fill optional keys that are absent (or null) with their defaults.
    The bot token may come from the environment instead of the file.
    """
    cfg = copy.deepcopy(DEFAULTS)
    cfg.update({k: v for k, v in raw.items() if v is not None})
    if env_token := os.environ.get(TOKEN_ENV_VAR):
        cfg["bot_token"] = env_token
    return cfg


def get_config(path: str | None = None) -> dict[str, Any]:
    """
    Public helper for loading configuration.

    - Respects CONFIG_PATH if set, and DISCORD_TOKEN for the bot token.
    - Fills defaults, then validates the result.
    - Exits with error code 1 if validation fails.
    """
    cfg_path = path or get_config_path()
    cfg = apply_defaults(_load_raw_config(cfg_path))

    try:
        validate_config(cfg, cfg_path)
    except ConfigValidationError:
        sys.exit(1)

    return cfg


def get_timezone(config: dict[str, Any]) -> ZoneInfo:
    return ZoneInfo(config.get("timezone") or "UTC")
