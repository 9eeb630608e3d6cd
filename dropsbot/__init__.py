"""
Drops Cloud Discord bot.

Slash commands backed by the Drops Cloud database, plus a small webhook the
web app calls after a user links their Discord account.
"""

__version__ = "1.0.0"
