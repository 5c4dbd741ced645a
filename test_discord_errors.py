import unittest
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import discord

from questbot.discord.errors import (
    GENERIC_ERROR_MESSAGE,
    handle_app_command_error,
    notify_admin_error,
    render_admin_report,
)


def forbidden():
    return discord.Forbidden(MagicMock(status=403, reason="Forbidden"), "Cannot send messages to this user")


def make_interaction(done=False):
    interaction = MagicMock()
    interaction.command.qualified_name = "timer add"
    interaction.user = "alice"
    interaction.response.is_done.return_value = done
    interaction.response.send_message = AsyncMock()
    interaction.followup.send = AsyncMock()
    return interaction


def make_admins(reachable, unreachable=()):
    """Bot whose fetch_user returns a DM-able user for `reachable` ids and raises Forbidden for the rest."""
    users = {}
    for admin_id in reachable:
        user = MagicMock()
        user.send = AsyncMock()
        users[admin_id] = user

    async def fetch_user(admin_id):
        if admin_id in unreachable:
            raise forbidden()
        return users[admin_id]

    bot = MagicMock()
    bot.get_user.return_value = None
    bot.fetch_user = AsyncMock(side_effect=fetch_user)
    return bot, users


class TestRenderAdminReport(unittest.TestCase):
    def test_layout(self):
        when = datetime(2026, 10, 18, 9, 5, 0, tzinfo=timezone.utc)
        report = render_admin_report(ValueError("bad value"), "/add used by alice", when)
        self.assertEqual(report.splitlines(), [
            "🤖 **questbot error**",
            "⏰ 2026-10-18 09:05:00 UTC",
            "📝 /add used by alice",
            "",
            "❌ ValueError: bad value",
        ])


class TestNotifyAdminError(unittest.IsolatedAsyncioTestCase):
    async def test_no_admins_configured(self):
        bot, _ = make_admins([])
        self.assertEqual(await notify_admin_error(bot, {"admin_ids": []}, ValueError("x")), 0)
        self.assertEqual(await notify_admin_error(bot, {}, ValueError("x")), 0)
        bot.get_user.assert_not_called()
        bot.fetch_user.assert_not_awaited()

    async def test_unreachable_admin_does_not_stop_the_rest(self):
        bot, users = make_admins([2], unreachable={1})
        with self.assertLogs(level="WARNING") as logs:
            reached = await notify_admin_error(bot, {"admin_ids": [1, 2]}, ValueError("x"), "/add")
        self.assertEqual(reached, 1)
        users[2].send.assert_awaited_once()
        self.assertIn("📝 /add", users[2].send.await_args.args[0])
        self.assertTrue(any("reached 1 of 2" in line for line in logs.output))


class TestHandleAppCommandError(unittest.IsolatedAsyncioTestCase):
    async def test_fresh_interaction_gets_ephemeral_response(self):
        interaction = make_interaction(done=False)
        bot, users = make_admins([7])
        with self.assertLogs(level="ERROR") as logs:
            await handle_app_command_error(interaction, RuntimeError("boom"), bot, {"admin_ids": [7]})

        interaction.response.send_message.assert_awaited_once_with(GENERIC_ERROR_MESSAGE, ephemeral=True)
        interaction.followup.send.assert_not_awaited()
        self.assertIn("/timer add", logs.output[0])
        report = users[7].send.await_args.args[0]
        self.assertIn("/timer add used by alice", report)
        self.assertIn("RuntimeError: boom", report)

    async def test_answered_interaction_gets_followup(self):
        interaction = make_interaction(done=True)
        bot, _ = make_admins([])
        with self.assertLogs(level="ERROR"):
            await handle_app_command_error(interaction, RuntimeError("boom"), bot, {"admin_ids": []})

        interaction.followup.send.assert_awaited_once_with(GENERIC_ERROR_MESSAGE, ephemeral=True)
        interaction.response.send_message.assert_not_awaited()
        bot.fetch_user.assert_not_awaited()

    async def test_failed_reply_is_logged(self):
        interaction = make_interaction(done=False)
        interaction.response.send_message.side_effect = discord.HTTPException(
            MagicMock(status=500, reason="error"), "unavailable"
        )
        bot, _ = make_admins([])
        with self.assertLogs(level="WARNING") as logs:
            await handle_app_command_error(interaction, RuntimeError("boom"), bot, {})
        self.assertTrue(any("Could not report command error" in line for line in logs.output))


if __name__ == "__main__":
    unittest.main()
