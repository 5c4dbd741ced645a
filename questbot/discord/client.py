import logging
from typing import Any, Optional

import discord
from discord import app_commands
from discord.ext import commands
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from questbot.config.loader import get_timezone
from questbot.discord.commands import DEFAULT_XP, Caller, dispatch
from questbot.discord.errors import handle_app_command_error
from questbot.scheduler import run_daily_tasks, send_welcome, setup_scheduler
from questbot.storage.store import DataStore


async def sync_commands(discord_bot: commands.Bot, config: dict[str, Any]) -> None:
    """
    Register slash commands with Discord, guild-scoped when a guild is
    configured. Failure is logged; the bot keeps running with whatever
    commands Discord already knows.
    """
    try:
        if guild_id := config.get("guild_id"):
            guild = discord.Object(id=guild_id)
            discord_bot.tree.copy_global_to(guild=guild)
            synced = await discord_bot.tree.sync(guild=guild)
            logging.info("Registered %d guild slash commands", len(synced))
        else:
            synced = await discord_bot.tree.sync()
            logging.info("Registered %d global slash commands", len(synced))
    except discord.DiscordException as e:
        logging.error("Failed to register slash commands: %s", e)


def build_bot(config: dict[str, Any], store: DataStore) -> commands.Bot:
    intents = discord.Intents.default()
    discord_bot = commands.Bot(command_prefix=commands.when_mentioned, intents=intents)
    scheduler = AsyncIOScheduler(timezone=get_timezone(config))
    default_xp = config.get("default_xp", DEFAULT_XP)

    async def respond(interaction: discord.Interaction, name: str, sub: Optional[str] = None, **args: Any) -> None:
        reply = await dispatch(store, Caller.from_interaction(interaction), name, sub, args, config)
        await interaction.response.send_message(**reply.send_kwargs())

    # ── Slash commands ──────────────────────────────────────────────────────

    @discord_bot.tree.command(name="hello", description="Say hello")
    async def hello_command(interaction: discord.Interaction) -> None:
        await respond(interaction, "hello")

    @discord_bot.tree.command(name="add", description="Add a task")
    @app_commands.describe(description="Task description", xp=f"XP awarded (default {default_xp})")
    async def add_command(interaction: discord.Interaction, description: str, xp: Optional[int] = None) -> None:
        await respond(interaction, "add", description=description, xp=xp)

    @discord_bot.tree.command(name="list", description="List your tasks")
    async def list_command(interaction: discord.Interaction) -> None:
        await respond(interaction, "list")

    @discord_bot.tree.command(name="done", description="Complete a task")
    @app_commands.describe(id="Task ID")
    async def done_command(interaction: discord.Interaction, id: int) -> None:
        await respond(interaction, "done", id=id)

    @discord_bot.tree.command(name="history", description="Show your last 100 completed tasks")
    async def history_command(interaction: discord.Interaction) -> None:
        await respond(interaction, "history")

    @discord_bot.tree.command(name="status", description="Show your status screen")
    async def status_command(interaction: discord.Interaction) -> None:
        await respond(interaction, "status")

    @discord_bot.tree.command(name="help", description="Show available commands")
    async def help_command(interaction: discord.Interaction) -> None:
        await respond(interaction, "help")

    timer_group = app_commands.Group(name="timer", description="Schedule event reminders")

    @timer_group.command(name="add", description="Schedule an event")
    @app_commands.describe(
        name="Event name",
        time="Event time as YYYY-MM-DD HH:MM",
        description="Event description",
    )
    async def timer_add_command(
        interaction: discord.Interaction, name: str, time: str, description: Optional[str] = None
    ) -> None:
        await respond(interaction, "timer", "add", name=name, time=time, description=description)

    @timer_group.command(name="list", description="List your timers")
    async def timer_list_command(interaction: discord.Interaction) -> None:
        await respond(interaction, "timer", "list")

    @timer_group.command(name="delete", description="Delete one of your timers")
    @app_commands.describe(id="Timer ID")
    async def timer_delete_command(interaction: discord.Interaction, id: int) -> None:
        await respond(interaction, "timer", "delete", id=id)

    discord_bot.tree.add_command(timer_group)

    @discord_bot.tree.error
    async def on_app_command_error(interaction: discord.Interaction, error: app_commands.AppCommandError) -> None:
        await handle_app_command_error(interaction, error, discord_bot, config)

    # ── Events ──────────────────────────────────────────────────────────────

    @discord_bot.event
    async def on_ready() -> None:
        logging.info("Logged in as %s", discord_bot.user)
        if client_id := config.get("client_id"):
            logging.info(f"\n\nBOT INVITE URL:\nhttps://discord.com/oauth2/authorize?client_id={client_id}&permissions=2147485696&scope=bot%20applications.commands\n")
        await sync_commands(discord_bot, config)
        if not scheduler.running:
            setup_scheduler(scheduler, discord_bot, store, config)
            scheduler.start()
            logging.info("Scheduler started")
            await run_daily_tasks(discord_bot, store, config)
            await send_welcome(discord_bot, config)

    return discord_bot
