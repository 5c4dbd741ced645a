"""
Slash-command dispatch table.

Every command, including the `timer` subcommands, maps to one handler with the
same shape: `handler(doc, caller, args) -> Reply`. `dispatch` wraps the
handler in a store transaction (or a read-only snapshot) and turns rejected
commands into an ephemeral reply without saving anything.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
import logging
from typing import Any, Callable, Optional

import discord

from questbot.config.loader import DEFAULTS, get_timezone
from questbot.core import tasks as task_engine
from questbot.core import timers as timer_engine
from questbot.core.errors import QuestBotError
from questbot.core.models import Document
from questbot.storage.store import DataStore


MAX_MESSAGE_LENGTH = 2000
MAX_EMBED_FIELDS = 25
DEFAULT_XP = DEFAULTS["default_xp"]
EMBED_COLOR_TIMERS = discord.Color.blurple()

HELP_LINES = [
    "**Commands**",
    "/add <description> <xp>        → add a task (xp optional, default {default_xp})",
    "/list                          → list tasks",
    "/done <id>                     → complete a task and gain XP",
    "/history                       → show last 100 completed tasks",
    "/timer add <name> <time> <description> → schedule an event (time: YYYY-MM-DD HH:MM)",
    "/timer list                    → list your timers",
    "/timer delete <id>             → delete one of your timers",
    "/status                        → show your status screen",
    "/help                          → show this help",
    "/hello                         → hello world",
]


@dataclass
class Caller:
    id: int
    name: str

    @classmethod
    def from_interaction(cls, interaction: discord.Interaction) -> "Caller":
        return cls(id=interaction.user.id, name=interaction.user.display_name)


@dataclass
class Reply:
    content: Optional[str] = None
    embed: Optional[discord.Embed] = None
    ephemeral: bool = False

    def send_kwargs(self) -> dict[str, Any]:
        kwargs: dict[str, Any] = {"ephemeral": self.ephemeral}
        if self.content is not None:
            kwargs["content"] = self.content
        if self.embed is not None:
            kwargs["embed"] = self.embed
        return kwargs


Handler = Callable[[Document, Caller, dict[str, Any]], Reply]


@dataclass
class Command:
    handler: Handler
    readonly: bool = False


COMMANDS: dict[tuple[str, Optional[str]], Command] = {}


def command(name: str, sub: Optional[str] = None, readonly: bool = False) -> Callable[[Handler], Handler]:
    def register(handler: Handler) -> Handler:
        COMMANDS[(name, sub)] = Command(handler, readonly)
        return handler
    return register


def truncate_lines(header: str, lines: list[str], limit: int = MAX_MESSAGE_LENGTH) -> str:
    """Join lines under a header, dropping trailing lines to fit Discord's limit."""
    out = header
    for shown, line in enumerate(lines):
        more = f"\n… and {len(lines) - shown} more"
        if len(out) + 1 + len(line) + len(more) > limit:
            return out + more
        out += "\n" + line
    return out


# ── Tasks ────────────────────────────────────────────────────────────────────

@command("hello", readonly=True)
def hello(doc: Document, caller: Caller, args: dict[str, Any]) -> Reply:
    return Reply("World!")


@command("add")
def add(doc: Document, caller: Caller, args: dict[str, Any]) -> Reply:
    xp = args.get("xp")
    if xp is None:
        xp = args.get("default_xp", DEFAULT_XP)
    task = task_engine.add_task(doc.profile(caller.id), args["description"], xp)
    return Reply(f"Added task #{task.id} for {task.xp} XP.")


@command("list", readonly=True)
def list_(doc: Document, caller: Caller, args: dict[str, Any]) -> Reply:
    active = list(task_engine.list_tasks(doc.profile(caller.id)))
    if not active:
        return Reply("No tasks yet. Add one with /add.")
    lines = [f"{'📅' if t.daily else '🟡'} #{t.id} • {t.text} ({t.xp} XP)" for t in active]
    return Reply(truncate_lines("**Your Tasks**", lines))


@command("done")
def done(doc: Document, caller: Caller, args: dict[str, Any]) -> Reply:
    profile = doc.profile(caller.id)
    level_before = profile.level
    task = task_engine.complete_task(profile, args["id"], now=args.get("now"))
    out = f"Completed task #{task.id}! You earned {task.xp} XP."
    if profile.level > level_before:
        out += f"\n🎉 Level up! You are now level {profile.level}."
    return Reply(out)


@command("history", readonly=True)
def history(doc: Document, caller: Caller, args: dict[str, Any]) -> Reply:
    entries = task_engine.history(doc.profile(caller.id))
    if not entries:
        return Reply("No completed tasks yet.")
    lines = [f"#{i} • {e.text} ({e.xp} XP)" for i, e in enumerate(entries, 1)]
    return Reply(truncate_lines(f"**Completed Tasks (last {len(entries)})**", lines))


@command("status", readonly=True)
def status(doc: Document, caller: Caller, args: dict[str, Any]) -> Reply:
    summary = task_engine.status(doc.profile(caller.id))
    lines = [
        "```",
        f"Player: {caller.name}",
        f"Level:  {summary.level}",
        f"XP:     {summary.xp} / {summary.next_level_xp}",
        f"Progress: [{summary.bar}]",
        f"Tasks:  {summary.completed}/{summary.total} complete",
        "```",
    ]
    return Reply("\n".join(lines))


@command("help", readonly=True)
def help_(doc: Document, caller: Caller, args: dict[str, Any]) -> Reply:
    default_xp = args.get("default_xp", DEFAULT_XP)
    return Reply("\n".join(line.format(default_xp=default_xp) for line in HELP_LINES))


# ── Timers ───────────────────────────────────────────────────────────────────

@command("timer", "add")
def timer_add(doc: Document, caller: Caller, args: dict[str, Any]) -> Reply:
    timer = timer_engine.add_timer(
        doc,
        caller.id,
        args["name"],
        args["time"],
        args.get("description") or "",
        tz=args.get("tz", timezone.utc),
        now=args.get("now"),
    )
    when = timer.timestamp
    return Reply(
        f"⏰ Timer #{timer.id} **{timer.name}** set for "
        f"{timer_engine.discord_timestamp(when)} ({timer_engine.discord_timestamp(when, 'R')})."
    )


@command("timer", "list", readonly=True)
def timer_list(doc: Document, caller: Caller, args: dict[str, Any]) -> Reply:
    owned = timer_engine.list_timers(doc, caller.id)
    if not owned:
        return Reply("You have no timers. Add one with /timer add.")

    embed = discord.Embed(title="Your Timers", color=EMBED_COLOR_TIMERS)
    for timer in owned[:MAX_EMBED_FIELDS]:
        value = f"{timer_engine.discord_timestamp(timer.timestamp)} ({timer_engine.discord_timestamp(timer.timestamp, 'R')})"
        if timer.description:
            value += f"\n{timer.description[:900]}"
        embed.add_field(name=f"#{timer.id} • {timer.name[:240]}", value=value, inline=False)
    if len(owned) > MAX_EMBED_FIELDS:
        embed.set_footer(text=f"… and {len(owned) - MAX_EMBED_FIELDS} more")
    return Reply(embed=embed)


@command("timer", "delete")
def timer_delete(doc: Document, caller: Caller, args: dict[str, Any]) -> Reply:
    timer = timer_engine.delete_timer(doc, caller.id, args["id"])
    return Reply(f"Deleted timer #{timer.id} ({timer.name}).")


# ── Dispatch ─────────────────────────────────────────────────────────────────

async def dispatch(
    store: DataStore,
    caller: Caller,
    name: str,
    sub: Optional[str] = None,
    args: Optional[dict[str, Any]] = None,
    config: Optional[dict[str, Any]] = None,
) -> Reply:
    cmd = COMMANDS.get((name, sub))
    if cmd is None:
        logging.warning("Unknown command: %s %s", name, sub or "")
        return Reply("Unknown command.", ephemeral=True)

    config = config or {}
    call_args: dict[str, Any] = {
        "default_xp": config.get("default_xp", DEFAULT_XP),
        "tz": get_timezone(config),
        "now": datetime.now(timezone.utc),
    }
    call_args.update(args or {})

    try:
        if cmd.readonly:
            async with store.snapshot() as doc:
                return cmd.handler(doc, caller, call_args)
        async with store.transaction() as doc:
            return cmd.handler(doc, caller, call_args)
    except QuestBotError as e:
        logging.info("Rejected /%s%s for %s: %s", name, f" {sub}" if sub else "", caller.id, e)
        return Reply(str(e), ephemeral=True)
