"""
Scheduled jobs: the daily task poster and the per-minute timer scan.
"""

from __future__ import annotations

from datetime import datetime, timedelta
import logging
from typing import Any

import discord
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from questbot.config.daily import load_daily_templates
from questbot.config.loader import get_timezone
from questbot.config.validator import parse_cron
from questbot.core.daily import inject_daily_tasks, render_announcement, today_key
from questbot.core.timers import MAX_SCAN_GAP, render_notice, scan_timers
from questbot.discord.notify import send_direct_message
from questbot.storage.store import DataStore


DAILY_JOB_ID = "daily_tasks"
TIMER_JOB_ID = "timer_scan"
DEFAULT_TIMER_CRON = "* * * * *"

# Fire times sampled when measuring the timer cron spacing.
GAP_SAMPLES = 8


# ── Daily tasks ──────────────────────────────────────────────────────────────

async def run_daily_tasks(discord_bot: discord.Client, store: DataStore, config: dict[str, Any]) -> bool:
    """
    Inject today's daily tasks into every profile and announce them.

    Returns True when tasks were injected. The announcement is best-effort:
    a failed post is logged and the injected tasks stay.
    """
    channel_id = config.get("daily_channel_id")
    if not channel_id:
        logging.info("Missing daily_channel_id in config. Skipping daily task post.")
        return False

    templates = load_daily_templates(config)
    today = today_key(get_timezone(config))
    async with store.transaction() as doc:
        injected = inject_daily_tasks(doc, today, templates)
        users = len(doc.users)
    if not injected:
        return False
    logging.info("Daily tasks for %s added to %d profile(s)", today, users)

    role_id = config.get("ping_role_id")
    if role_id:
        allowed = discord.AllowedMentions(everyone=False, users=False, roles=[discord.Object(id=role_id)])
    else:
        allowed = discord.AllowedMentions(everyone=True, users=False, roles=False)
    try:
        channel = discord_bot.get_channel(channel_id) or await discord_bot.fetch_channel(channel_id)
        await channel.send(render_announcement(templates, role_id), allowed_mentions=allowed)
    except discord.DiscordException as e:
        logging.error("Failed to post daily tasks to channel %s: %s", channel_id, e)
    return True


async def send_welcome(discord_bot: discord.Client, config: dict[str, Any]) -> None:
    channel_id = config.get("daily_channel_id")
    message = config.get("welcome_message")
    if not channel_id or not message:
        return
    try:
        channel = discord_bot.get_channel(channel_id) or await discord_bot.fetch_channel(channel_id)
        await channel.send(message)
    except discord.DiscordException as e:
        logging.error("Failed to send welcome message: %s", e)


# ── Timers ───────────────────────────────────────────────────────────────────

def timer_scan_gap(config: dict[str, Any], now: datetime | None = None) -> timedelta:
    """
    How far back a timer scan may look: twice the widest spacing between
    upcoming `timer_cron` fire times, and never less than the default.
    """
    tz = get_timezone(config)
    try:
        trigger = CronTrigger(timezone=tz, **parse_cron(config.get("timer_cron") or DEFAULT_TIMER_CRON))
    except ValueError:
        return MAX_SCAN_GAP

    widest = timedelta(0)
    fire = trigger.get_next_fire_time(None, now or datetime.now(tz))
    for _ in range(GAP_SAMPLES):
        if fire is None:
            break
        following = trigger.get_next_fire_time(fire, fire)
        if following is None:
            break
        widest = max(widest, following - fire)
        fire = following
    return max(MAX_SCAN_GAP, 2 * widest)


async def run_timer_scan(discord_bot: discord.Client, store: DataStore, config: dict[str, Any]) -> int:
    """
    Scan all timers, persist the updated flags, then DM each due notice.
    Returns the number of notices delivered.
    """
    max_gap = timer_scan_gap(config)
    async with store.transaction() as doc:
        notices = scan_timers(doc, max_gap=max_gap)

    delivered = 0
    for notice in notices:
        logging.info("Timer #%d '%s': %s notice to user %s", notice.timer.id, notice.timer.name, notice.kind, notice.timer.user_id)
        if await send_direct_message(discord_bot, notice.timer.user_id, render_notice(notice)):
            delivered += 1
    return delivered


# ── Setup ────────────────────────────────────────────────────────────────────

def setup_scheduler(
    scheduler: AsyncIOScheduler,
    discord_bot: discord.Client,
    store: DataStore,
    config: dict[str, Any],
) -> None:
    tz = get_timezone(config)
    jobs = (
        (DAILY_JOB_ID, run_daily_tasks, config.get("daily_cron", "0 4 * * *")),
        (TIMER_JOB_ID, run_timer_scan, config.get("timer_cron", DEFAULT_TIMER_CRON)),
    )
    for job_id, func, cron in jobs:
        try:
            scheduler.add_job(func, "cron", id=job_id, replace_existing=True, timezone=tz,
                              coalesce=True, misfire_grace_time=60,
                              args=[discord_bot, store, config], **parse_cron(cron))
            logging.info("Scheduled job '%s': %s (%s)", job_id, cron, tz.key)
        except ValueError as e:
            logging.error("Failed to setup job '%s': %s", job_id, e)
