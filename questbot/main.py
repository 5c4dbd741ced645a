"""
Entrypoint: `python -m questbot.main` (or the `questbot` console script).
"""

import asyncio
import logging
import os
import sys
from typing import Any

import discord

from questbot.config.loader import get_config
from questbot.discord.client import build_bot
from questbot.storage.store import DataStore


def setup_logging() -> None:
    level = logging.DEBUG if os.environ.get("DEBUG") else logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s: %(message)s")
    if level == logging.INFO:
        logging.getLogger("discord").setLevel(logging.WARNING)
        logging.getLogger("apscheduler").setLevel(logging.WARNING)


async def run_bot(config: dict[str, Any]) -> None:
    store = DataStore(config["data_file"])
    discord_bot = build_bot(config, store)
    logging.info(f"🚀 Bot starting | data: {store.path} | timezone: {config['timezone']}")
    async with discord_bot:
        await discord_bot.start(config["bot_token"])


def main() -> None:
    setup_logging()
    config = get_config()
    try:
        asyncio.run(run_bot(config))
    except discord.LoginFailure as e:
        logging.error("Discord login failed: %s", e)
        sys.exit(1)
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
