"""
Data model for the persisted JSON document.

The document has two roots: `users` (profile per Discord user id) and `meta`
(global state: last daily date, timers, counters). Every `from_dict` applies
defaults for missing or mistyped fields so older files keep loading.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
import logging
from typing import Any, Optional


logger = logging.getLogger(__name__)

HISTORY_LIMIT = 100
XP_PER_LEVEL = 100


def calculate_level(xp: int) -> int:
    return xp // XP_PER_LEVEL + 1


def next_id(ids: list[int]) -> int:
    return max(ids) + 1 if ids else 1


def _int(value: Any, default: int = 0) -> int:
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _list(value: Any) -> list:
    return value if isinstance(value, list) else []


def _parse_instant(value: Any) -> Optional[datetime]:
    if not isinstance(value, str):
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_instant(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat()


@dataclass
class Task:
    id: int
    text: str
    xp: int
    done: bool = False
    daily: bool = False
    date: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Task":
        return cls(
            id=_int(data.get("id")),
            text=str(data.get("text", "")),
            xp=_int(data.get("xp")),
            done=bool(data.get("done", False)),
            daily=bool(data.get("daily", False)),
            date=data.get("date") if isinstance(data.get("date"), str) else None,
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"id": self.id, "text": self.text, "xp": self.xp, "done": self.done}
        if self.daily:
            out["daily"] = True
            out["date"] = self.date
        return out


@dataclass
class HistoryEntry:
    """Snapshot of a task at completion time; later task edits never reach it."""

    id: int
    text: str
    xp: int
    completed_at: str

    @classmethod
    def from_task(cls, task: Task, completed_at: datetime) -> "HistoryEntry":
        return cls(id=task.id, text=task.text, xp=task.xp, completed_at=format_instant(completed_at))

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "HistoryEntry":
        return cls(
            id=_int(data.get("id")),
            text=str(data.get("text", "")),
            xp=_int(data.get("xp")),
            completed_at=str(data.get("completedAt", "")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "text": self.text, "xp": self.xp, "completedAt": self.completed_at}


@dataclass
class Profile:
    xp: int = 0
    level: int = 1
    tasks: list[Task] = field(default_factory=list)
    history: list[HistoryEntry] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> "Profile":
        if not isinstance(data, dict):
            return cls()
        xp = max(_int(data.get("xp")), 0)
        return cls(
            xp=xp,
            level=calculate_level(xp),
            tasks=[Task.from_dict(t) for t in _list(data.get("tasks")) if isinstance(t, dict)],
            history=[HistoryEntry.from_dict(h) for h in _list(data.get("history")) if isinstance(h, dict)][:HISTORY_LIMIT],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "xp": self.xp,
            "level": self.level,
            "tasks": [t.to_dict() for t in self.tasks],
            "history": [h.to_dict() for h in self.history],
        }

    def next_task_id(self) -> int:
        return next_id([t.id for t in self.tasks])


@dataclass
class Timer:
    id: int
    name: str
    timestamp: datetime
    user_id: str
    description: str = ""
    notified_12h: bool = False
    notified_30m: bool = False
    notified_exact: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Optional["Timer"]:
        timestamp = _parse_instant(data.get("timestamp"))
        if timestamp is None:
            return None
        return cls(
            id=_int(data.get("id")),
            name=str(data.get("name", "")),
            timestamp=timestamp,
            user_id=str(data.get("userId", "")),
            description=str(data.get("description") or ""),
            notified_12h=bool(data.get("notified12h", False)),
            notified_30m=bool(data.get("notified30m", False)),
            notified_exact=bool(data.get("notifiedExact", False)),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "timestamp": format_instant(self.timestamp),
            "userId": self.user_id,
            "notified12h": self.notified_12h,
            "notified30m": self.notified_30m,
            "notifiedExact": self.notified_exact,
        }


@dataclass
class Meta:
    last_daily_date: Optional[str] = None
    timers: list[Timer] = field(default_factory=list)
    next_timer_id: int = 1
    last_timer_scan: Optional[datetime] = None

    @classmethod
    def from_dict(cls, data: Any) -> "Meta":
        if not isinstance(data, dict):
            return cls()
        timers = []
        for raw in _list(data.get("timers")):
            timer = Timer.from_dict(raw) if isinstance(raw, dict) else None
            if timer is None:
                logger.warning("Dropping unreadable timer entry: %r", raw)
                continue
            timers.append(timer)
        last_daily = data.get("lastDailyDate")
        return cls(
            last_daily_date=last_daily if isinstance(last_daily, str) else None,
            timers=timers,
            next_timer_id=max(_int(data.get("nextTimerId"), 1), 1),
            last_timer_scan=_parse_instant(data.get("lastTimerScan")),
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "timers": [t.to_dict() for t in self.timers],
            "nextTimerId": self.next_timer_id,
        }
        if self.last_daily_date is not None:
            out["lastDailyDate"] = self.last_daily_date
        if self.last_timer_scan is not None:
            out["lastTimerScan"] = format_instant(self.last_timer_scan)
        return out


@dataclass
class Document:
    users: dict[str, Profile] = field(default_factory=dict)
    meta: Meta = field(default_factory=Meta)

    @classmethod
    def from_dict(cls, data: Any) -> "Document":
        if not isinstance(data, dict):
            return cls()
        users = data.get("users")
        return cls(
            users={str(uid): Profile.from_dict(p) for uid, p in users.items()} if isinstance(users, dict) else {},
            meta=Meta.from_dict(data.get("meta")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "users": {uid: p.to_dict() for uid, p in self.users.items()},
            "meta": self.meta.to_dict(),
        }

    def profile(self, user_id: str | int) -> Profile:
        """Return the caller's profile, creating an empty one on first use."""
        key = str(user_id)
        if key not in self.users:
            self.users[key] = Profile()
        return self.users[key]
