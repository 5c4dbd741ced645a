from __future__ import annotations


class QuestBotError(Exception):
    """Base error for rejected commands. The message is shown to the user."""


class InvalidArgument(QuestBotError):
    pass


class InvalidTime(InvalidArgument):
    pass


class PastTime(InvalidArgument):
    pass


class NotFound(QuestBotError):
    pass


class AlreadyDone(QuestBotError):
    pass


def parse_error_message(error: Exception) -> str:
    """
    Map raw exceptions into short, human-readable messages.
    Used for admin notifications and logs.
    """
    s, t = str(error), type(error).__name__
    if isinstance(error, QuestBotError):
        return f"⚠️ {t}: {s}"
    if "429" in s or t == "RateLimited":
        return "⚠️ Rate Limited: Discord is temporarily rate-limiting the bot."
    if "401" in s or "Unauthorized" in s or t == "LoginFailure":
        return "❌ Authentication Error: Invalid bot token."
    if "404" in s or t == "NotFound":
        return "❌ Not Found: The requested channel, user or message was not found."
    if "403" in s or t == "Forbidden":
        return "❌ Forbidden: The bot lacks permission for this action."
    if "Connection" in t or "ECONNREFUSED" in s or "ETIMEDOUT" in s:
        return "❌ Connection Error: Unable to reach Discord."
    return f"❌ {t}: {s.split(chr(10))[0][:100]}"
