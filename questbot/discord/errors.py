from __future__ import annotations

from datetime import datetime, timezone
import logging
from typing import Any

import discord

from questbot.core.errors import parse_error_message
from questbot.discord.notify import send_direct_message


GENERIC_ERROR_MESSAGE = "Something went wrong while running that command. The admins have been notified."


def render_admin_report(error: Exception, context: str, when: datetime | None = None) -> str:
    when = when or datetime.now(timezone.utc)
    return "\n".join([
        "🤖 **questbot error**",
        f"⏰ {when.strftime('%Y-%m-%d %H:%M:%S')} UTC",
        f"📝 {context or 'no context'}",
        "",
        parse_error_message(error),
    ])


async def notify_admin_error(
    discord_bot: discord.Client,
    config: dict[str, Any],
    error: Exception,
    context: str = "",
) -> int:
    """
    DM the error report to every id in `admin_ids`.
    Returns how many admins were reached; unreachable ones are only logged.
    """
    admin_ids = config.get("admin_ids") or []
    if not admin_ids:
        return 0

    report = render_admin_report(error, context)
    reached = 0
    for admin_id in admin_ids:
        if await send_direct_message(discord_bot, admin_id, report):
            reached += 1
    if reached < len(admin_ids):
        logging.warning("Error report reached %d of %d admin(s)", reached, len(admin_ids))
    return reached


async def handle_app_command_error(
    interaction: discord.Interaction,
    error: Exception,
    discord_bot: discord.Client,
    config: dict[str, Any],
) -> None:
    """
    Last-resort handler for slash commands: log, tell the admins, and give
    the caller a generic ephemeral answer.
    """
    command_name = getattr(interaction.command, "qualified_name", "unknown")
    logging.error("Unexpected error in /%s", command_name, exc_info=error)
    await notify_admin_error(discord_bot, config, error, f"/{command_name} used by {interaction.user}")

    try:
        if interaction.response.is_done():
            await interaction.followup.send(GENERIC_ERROR_MESSAGE, ephemeral=True)
        else:
            await interaction.response.send_message(GENERIC_ERROR_MESSAGE, ephemeral=True)
    except discord.DiscordException as e:
        logging.warning("Could not report command error to user: %s", e)
