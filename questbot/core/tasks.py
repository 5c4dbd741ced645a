from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterator, Optional

from questbot.core.errors import AlreadyDone, InvalidArgument, NotFound
from questbot.core.models import (
    HISTORY_LIMIT,
    XP_PER_LEVEL,
    HistoryEntry,
    Profile,
    Task,
    calculate_level,
)


BAR_SIZE = 10
BAR_FILLED = "█"
BAR_EMPTY = "░"


@dataclass
class StatusSummary:
    level: int
    xp: int
    next_level_xp: int
    progress: float
    bar: str
    completed: int
    total: int


def add_task(profile: Profile, text: str, xp: int) -> Task:
    if xp <= 0:
        raise InvalidArgument("XP must be a positive number.")
    text = text.strip()
    if not text:
        raise InvalidArgument("Task description cannot be empty.")
    task = Task(id=profile.next_task_id(), text=text, xp=xp)
    profile.tasks.append(task)
    return task


def list_tasks(profile: Profile) -> Iterator[Task]:
    return (task for task in profile.tasks if not task.done)


def complete_task(profile: Profile, task_id: int, now: Optional[datetime] = None) -> Task:
    """
    Mark a task done and credit its XP exactly once.

    The completed task is snapshotted to the front of the history, which is
    kept to the most recent HISTORY_LIMIT entries.
    """
    task = next((t for t in profile.tasks if t.id == task_id), None)
    if task is None:
        raise NotFound("Task not found.")
    if task.done:
        raise AlreadyDone("That task is already completed.")

    task.done = True
    profile.xp += task.xp
    profile.level = calculate_level(profile.xp)
    profile.history.insert(0, HistoryEntry.from_task(task, now or datetime.now(timezone.utc)))
    del profile.history[HISTORY_LIMIT:]
    return task


def history(profile: Profile) -> list[HistoryEntry]:
    return profile.history[:HISTORY_LIMIT]


def render_bar(progress: float, size: int = BAR_SIZE) -> str:
    filled = int(progress * size + 0.5)
    return BAR_FILLED * filled + BAR_EMPTY * (size - filled)


def status(profile: Profile) -> StatusSummary:
    next_level_xp = profile.level * XP_PER_LEVEL
    progress = min(profile.xp / next_level_xp, 1)
    return StatusSummary(
        level=profile.level,
        xp=profile.xp,
        next_level_xp=next_level_xp,
        progress=progress,
        bar=render_bar(progress),
        completed=sum(1 for t in profile.tasks if t.done),
        total=len(profile.tasks),
    )
