from __future__ import annotations

import logging

import discord


async def send_direct_message(discord_bot: discord.Client, user_id: str | int, content: str) -> bool:
    """
    Best-effort DM. Unreachable users (closed DMs, unknown ids) are logged and
    reported as False; the caller never retries.
    """
    try:
        uid = int(user_id)
    except (TypeError, ValueError):
        logging.warning("Cannot DM invalid user id %r", user_id)
        return False

    try:
        user = discord_bot.get_user(uid) or await discord_bot.fetch_user(uid)
        await user.send(content)
        return True
    except discord.Forbidden:
        logging.warning("Cannot DM user %s (DMs disabled/blocked)", uid)
    except discord.NotFound:
        logging.warning("Cannot DM user %s (user not found)", uid)
    except discord.HTTPException as e:
        logging.warning("Failed to DM user %s: %s", uid, e)
    return False
