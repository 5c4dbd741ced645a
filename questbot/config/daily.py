from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml

from questbot.core.daily import DailyTemplate


DAILY_DIR = Path(__file__).parent / "daily"


def _to_template(entry: Any, source: str) -> DailyTemplate | None:
    if not isinstance(entry, dict):
        logging.warning("Skipping daily task in %s: expected a mapping, got %s", source, type(entry).__name__)
        return None
    text, xp = entry.get("text"), entry.get("xp")
    if not isinstance(text, str) or not text.strip() or not isinstance(xp, int) or isinstance(xp, bool) or xp <= 0:
        logging.warning("Skipping daily task in %s: needs non-empty 'text' and positive 'xp' (%r)", source, entry)
        return None
    return DailyTemplate(text=text.strip(), xp=xp)


def load_daily_templates(config: dict[str, Any], daily_dir: Path = DAILY_DIR) -> list[DailyTemplate]:
    """
    Collect daily task templates: inline ones from config['daily_tasks'] first,
    then any YAML files under questbot/config/daily (a single mapping or a list).
    """
    templates: list[DailyTemplate] = []

    for entry in config.get("daily_tasks") or []:
        if template := _to_template(entry, "config"):
            templates.append(template)

    if daily_dir.is_dir():
        for path in sorted(daily_dir.glob("*.yaml")):
            data = yaml.safe_load(path.read_text(encoding="utf-8")) or []
            entries = data if isinstance(data, list) else [data]
            for entry in entries:
                if template := _to_template(entry, path.name):
                    templates.append(template)

    return templates
