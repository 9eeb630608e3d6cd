"""
Discord integration package.

Design goals:
- Keep dropsbot.discord.bot as the stable entrypoint (DropsBot + run_bot).
- Commands live in dropsbot.discord.commands.* and all run through the Dispatcher.
"""

from .bot import DropsBot, run_bot  # re-export for convenience

__all__ = [
    "DropsBot",
    "run_bot",
]
