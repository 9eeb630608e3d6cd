from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

import discord

from ...errors import NotLinkedError
from ...models.user import User, as_utc
from ...services.accounts import get_user_by_discord_id
from ..dispatcher import CommandContext

logger = logging.getLogger(__name__)

# NOTE:
# Keep this module free of slash-command declarations.
# It holds the formatting and lookup helpers every command module shares.

# Brand palette (matches the web app)
COLOR_PURPLE = discord.Colour(0x8B5CF6)
COLOR_GREEN = discord.Colour(0x10B981)
COLOR_BLUE = discord.Colour(0x3B82F6)
COLOR_GOLD = discord.Colour(0xFFD700)
COLOR_GRAY = discord.Colour(0x6B7280)
COLOR_BLURPLE = discord.Colour(0x5865F2)

# Discord embed limits
FIELD_NAME_LIMIT = 256
FIELD_VALUE_LIMIT = 1024

_MEDALS = ("🥇", "🥈", "🥉")


# -----------------------------
# Small primitives
# -----------------------------

def truncate(s: Optional[str], limit: int = 1500) -> str:
    if not s:
        return ""
    if len(s) <= limit:
        return s
    return s[: max(0, limit - 3)] + "..."


def medal(index: int) -> str:
    """0-based rank -> 🥇/🥈/🥉, then #4, #5, ..."""
    if 0 <= index < len(_MEDALS):
        return _MEDALS[index]
    return f"#{index + 1}"


def fmt_date(dt: Optional[datetime]) -> str:
    """
    Date rendered by the Discord client in the reader's locale.
    Only works where Discord renders markdown (descriptions, field values).
    """
    value = as_utc(dt)
    if value is None:
        return "Unknown"
    return discord.utils.format_dt(value, style="D")


def plain_date(dt: Optional[datetime]) -> str:
    """For footers/titles, which don't render timestamp markup."""
    value = as_utc(dt)
    if value is None:
        return "Unknown"
    return value.strftime("%Y-%m-%d")


def add_field(embed: discord.Embed, name: str, value: Any, *, inline: bool = False) -> None:
    """
    add_field with Discord's limits applied (empty values are rejected by the API).
    """
    text = str(value) if value not in (None, "") else "—"
    embed.add_field(
        name=truncate(name, FIELD_NAME_LIMIT),
        value=truncate(text, FIELD_VALUE_LIMIT),
        inline=inline,
    )


def drop_line(drop: Any) -> str:
    return (
        f"💰 {drop.cost or 0} coins | 🔓 {drop.unlock_count or 0} unlocks\n"
        f"👤 {drop.owner_username or 'Unknown'} | 🎮 {drop.service or 'General'}"
    )


# -----------------------------
# Lookup helpers
# -----------------------------

def target_user(ctx: CommandContext, args: Dict[str, Any]) -> Tuple[Any, bool]:
    """
    The optional `user` argument, defaulting to the invoker.
    Returns (discord_user, is_self).
    """
    target = args.get("user")
    if target is None or getattr(target, "id", None) == getattr(ctx.user, "id", None):
        return ctx.user, True
    return target, False


def display_name(user: Any) -> str:
    for attr in ("display_name", "name"):
        value = getattr(user, attr, None)
        if isinstance(value, str) and value:
            return value
    return str(user)


def avatar_url(user: Any) -> Optional[str]:
    try:
        url = user.display_avatar.url
    except AttributeError:
        return None
    return url if isinstance(url, str) else None


async def require_linked(ctx: CommandContext, user: Any, *, is_self: bool = True) -> User:
    """
    Linked Drops Cloud account for a Discord user, or NotLinkedError.
    """
    discord_id = str(user.id)
    account = await ctx.store.read(get_user_by_discord_id, discord_id)
    if account is None:
        raise NotLinkedError(discord_id, display_name(user), is_self=is_self)
    return account


def command_map() -> List[str]:
    """
    One line per public command. Used by /help and the link welcome DM.
    """
    return [
        "• `/drops` - View latest drops",
        "• `/search` - Search for drops",
        "• `/top` - View top drops by unlocks",
        "• `/stats` - Check your stats",
        "• `/balance` - View coin balance",
        "• `/profile` - View a user profile",
        "• `/vip` - Check VIP status",
        "• `/daily` - Claim daily bonus",
        "• `/leaderboard` - View top users",
        "• `/services` - View account services",
        "• `/announcements` - View latest announcements",
        "• `/link` - Link your Discord account",
    ]


__all__ = [
    "COLOR_PURPLE",
    "COLOR_GREEN",
    "COLOR_BLUE",
    "COLOR_GOLD",
    "COLOR_GRAY",
    "COLOR_BLURPLE",
    "truncate",
    "medal",
    "fmt_date",
    "plain_date",
    "add_field",
    "drop_line",
    "target_user",
    "display_name",
    "avatar_url",
    "require_linked",
    "command_map",
]
