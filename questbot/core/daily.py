from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone, tzinfo
from typing import Optional

from questbot.core.models import Document, Task


@dataclass(frozen=True)
class DailyTemplate:
    text: str
    xp: int


def today_key(tz: tzinfo, now: Optional[datetime] = None) -> str:
    """Calendar date (YYYY-MM-DD) of `now` in the configured zone."""
    now = now or datetime.now(timezone.utc)
    return now.astimezone(tz).strftime("%Y-%m-%d")


def inject_daily_tasks(doc: Document, today: str, templates: list[DailyTemplate]) -> bool:
    """
    Append one task per template to every profile, once per calendar day.

    Returns False without touching the document when `today` was already
    handled.
    """
    if doc.meta.last_daily_date == today:
        return False
    doc.meta.last_daily_date = today

    for profile in doc.users.values():
        first_id = profile.next_task_id()
        for offset, template in enumerate(templates):
            profile.tasks.append(
                Task(
                    id=first_id + offset,
                    text=template.text,
                    xp=template.xp,
                    daily=True,
                    date=today,
                )
            )
    return True


def render_announcement(templates: list[DailyTemplate], role_id: Optional[int]) -> str:
    mention = f"<@&{role_id}>" if role_id else "@everyone"
    lines = "\n".join(f"• {t.text} ({t.xp} XP)" for t in templates)
    return f"{mention} Daily tasks are live!\n{lines}"
