"""
Top-level package for the quest/timer Discord bot.

This package hosts:
- config loading and validation (YAML)
- the task, timer and daily-task engines over a single JSON document
- Discord client, slash commands and direct-message notifications
- scheduler integration for the daily poster and the timer scan
"""

__version__ = "1.0.0"
