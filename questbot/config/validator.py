"""
YAML configuration validator for config.yaml.

Validates structure, required fields, and common misconfigurations.
"""

from __future__ import annotations

import logging
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from apscheduler.triggers.cron import CronTrigger


logger = logging.getLogger(__name__)

KNOWN_KEYS = {
    "bot_token",
    "client_id",
    "guild_id",
    "daily_channel_id",
    "ping_role_id",
    "timezone",
    "data_file",
    "daily_cron",
    "timer_cron",
    "welcome_message",
    "default_xp",
    "daily_tasks",
    "admin_ids",
}
ID_KEYS = ("client_id", "guild_id", "daily_channel_id", "ping_role_id")


class ConfigValidationError(Exception):
    """Raised when config validation fails."""
    pass


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def parse_cron(expr: str) -> dict[str, Any]:
    parts = expr.split()
    if len(parts) != 5:
        raise ValueError(f"Invalid cron: {expr}")
    minute, hour, day, month, dow = parts
    kwargs: dict[str, Any] = {"second": 0}
    if minute != "*": kwargs["minute"] = minute
    if hour != "*": kwargs["hour"] = hour
    if day != "*": kwargs["day"] = day
    if month != "*": kwargs["month"] = month
    if dow != "*": kwargs["day_of_week"] = dow
    return kwargs


def validate_config(cfg: dict[str, Any], config_path: str = "config.yaml") -> None:
    """
    Comprehensive validation of config.yaml structure and content.

    Raises ConfigValidationError if validation fails.
    Logs detailed error messages before raising.

    Args:
        cfg: The loaded config dictionary (defaults already applied)
        config_path: Path to config file (for error messages)

    Raises:
        ConfigValidationError: If validation fails
    """
    errors = []
    warnings = []

    # ── Check root structure ────────────────────────────────────────────────
    if not isinstance(cfg, dict):
        errors.append(f"Config root must be a mapping, got {type(cfg).__name__}")
        cfg = {}

    for key in cfg:
        if key not in KNOWN_KEYS:
            warnings.append(f"Unknown key '{key}' is ignored")

    # ── Credentials ─────────────────────────────────────────────────────────
    token = cfg.get("bot_token")
    if not token:
        errors.append("Missing required 'bot_token' (or set DISCORD_TOKEN)")
    elif not isinstance(token, str):
        errors.append(f"'bot_token' must be a string, got {type(token).__name__}")

    # ── Discord ids ─────────────────────────────────────────────────────────
    for key in ID_KEYS:
        value = cfg.get(key)
        if value is not None and not _is_int(value):
            errors.append(f"'{key}' must be an integer id, got {type(value).__name__}")

    admin_ids = cfg.get("admin_ids", [])
    if not isinstance(admin_ids, list):
        errors.append(f"'admin_ids' must be a list, got {type(admin_ids).__name__}")
    else:
        for i, admin_id in enumerate(admin_ids):
            if not _is_int(admin_id):
                errors.append(f"'admin_ids[{i}]' must be an integer id, got {type(admin_id).__name__}")

    # ── Timezone ────────────────────────────────────────────────────────────
    tz_name = cfg.get("timezone", "UTC")
    if not isinstance(tz_name, str):
        errors.append(f"'timezone' must be a string, got {type(tz_name).__name__}")
    else:
        try:
            ZoneInfo(tz_name)
        except (ZoneInfoNotFoundError, ValueError):
            errors.append(f"Unknown timezone '{tz_name}' (use an IANA name such as 'Europe/Berlin')")

    # ── Cron expressions ────────────────────────────────────────────────────
    for key in ("daily_cron", "timer_cron"):
        expr = cfg.get(key)
        if expr is None:
            continue
        if not isinstance(expr, str):
            errors.append(f"'{key}' must be a string, got {type(expr).__name__}")
            continue
        try:
            CronTrigger(**parse_cron(expr))
        except ValueError as e:
            errors.append(f"'{key}' is not a valid 5-field cron expression: {e}")

    # ── Plain values ────────────────────────────────────────────────────────
    data_file = cfg.get("data_file")
    if data_file is not None and not isinstance(data_file, str):
        errors.append(f"'data_file' must be a string, got {type(data_file).__name__}")

    welcome = cfg.get("welcome_message")
    if welcome is not None and not isinstance(welcome, str):
        errors.append(f"'welcome_message' must be a string, got {type(welcome).__name__}")

    default_xp = cfg.get("default_xp")
    if default_xp is not None and (not _is_int(default_xp) or default_xp <= 0):
        errors.append(f"'default_xp' must be a positive integer, got {default_xp!r}")

    # ── Daily task templates ────────────────────────────────────────────────
    daily = cfg.get("daily_tasks", [])
    if not isinstance(daily, list):
        errors.append(
            f"'daily_tasks' must be a list, got {type(daily).__name__}. "
            f"Use: daily_tasks:\n  - text: \"...\"\n    xp: 5"
        )
    else:
        for i, template in enumerate(daily):
            if not isinstance(template, dict):
                errors.append(f"'daily_tasks[{i}]' must be a mapping, got {type(template).__name__}")
                continue
            if not isinstance(template.get("text"), str) or not template["text"].strip():
                errors.append(f"'daily_tasks[{i}]' missing required 'text'")
            xp = template.get("xp")
            if not _is_int(xp) or xp <= 0:
                errors.append(f"'daily_tasks[{i}].xp' must be a positive integer, got {xp!r}")
        if not daily:
            warnings.append("'daily_tasks' is empty; the daily post will list no tasks")

    if cfg.get("daily_channel_id") is None:
        warnings.append("'daily_channel_id' is not set; daily tasks will not be posted")

    # ── Log warnings ────────────────────────────────────────────────────────
    for warning in warnings:
        logger.warning("Config warning: %s", warning)

    # ── Log errors and exit if any ──────────────────────────────────────────
    if errors:
        logger.error("=" * 70)
        logger.error("CONFIG VALIDATION FAILED (%s)", config_path)
        logger.error("=" * 70)
        for i, error in enumerate(errors, 1):
            logger.error("[%d] %s", i, error)
        logger.error("=" * 70)
        logger.error("Please fix the errors above and restart the bot.")
        logger.error("=" * 70)
        raise ConfigValidationError(f"Config validation failed with {len(errors)} error(s)")
