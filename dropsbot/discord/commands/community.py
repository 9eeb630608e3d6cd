from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Optional, Sequence

import discord
from discord import app_commands

from ...models.announcement import Announcement, AnnouncementType
from ...services.accounts import LeaderboardCategory, LeaderboardRow, leaderboard
from ...services.catalog import ServiceStock, active_announcements, active_services
from ..dispatcher import CommandContext, CommandSpec
from ..interaction import Reply
from .shared import COLOR_BLUE, COLOR_GOLD, COLOR_PURPLE, add_field, medal, truncate

if TYPE_CHECKING:
    from ..bot import DropsBot

ANNOUNCEMENT_MESSAGE_LIMIT = 200

_ANNOUNCEMENT_EMOJI = {
    AnnouncementType.INFO.value: "ℹ️",
    AnnouncementType.WARNING.value: "⚠️",
    AnnouncementType.SUCCESS.value: "✅",
    AnnouncementType.ERROR.value: "❌",
}

_UNITS = {
    LeaderboardCategory.COINS: "coins",
    LeaderboardCategory.DROPS: "drops",
    LeaderboardCategory.UNLOCKED: "unlocked",
}


def parse_category(raw: Any) -> LeaderboardCategory:
    """
    Slash-command choices restrict the value already; anything else falls back to coins.
    """
    if isinstance(raw, LeaderboardCategory):
        return raw
    value = getattr(raw, "value", raw)
    try:
        return LeaderboardCategory(str(value or LeaderboardCategory.COINS.value).strip().lower())
    except ValueError:
        return LeaderboardCategory.COINS


def build_leaderboard_embed(category: LeaderboardCategory, rows: Sequence[LeaderboardRow]) -> discord.Embed:
    embed = discord.Embed(
        title=f"🏆 Top 10 - {category.label}",
        colour=COLOR_GOLD,
        timestamp=discord.utils.utcnow(),
    )
    if not rows:
        embed.description = "No active users yet."
    for i, row in enumerate(rows):
        add_field(embed, f"{medal(i)} {row.username}", f"{row.value_for(category)} {_UNITS[category]}", inline=True)
    return embed


def build_services_embed(services: Sequence[ServiceStock]) -> discord.Embed:
    embed = discord.Embed(
        title="🎮 Available Account Services",
        description="Account generator services currently available",
        colour=COLOR_PURPLE,
        timestamp=discord.utils.utcnow(),
    )
    for svc in services:
        add_field(
            embed,
            svc.name,
            f"{svc.description or 'No description'}\n📦 Stock: {svc.stock_count} accounts",
            inline=True,
        )
    embed.set_footer(text="Visit /account-generator to claim accounts!")
    return embed


def build_announcements_embed(announcements: Sequence[Announcement]) -> discord.Embed:
    embed = discord.Embed(
        title="📢 Drops Cloud Announcements",
        colour=COLOR_BLUE,
        timestamp=discord.utils.utcnow(),
    )
    for a in announcements:
        emoji = _ANNOUNCEMENT_EMOJI.get((a.type or "").lower(), "📌")
        add_field(embed, f"{emoji} {a.title}", truncate(a.message, ANNOUNCEMENT_MESSAGE_LIMIT))
    return embed


async def handle_leaderboard(ctx: CommandContext, args: Dict[str, Any]) -> Reply:
    category = parse_category(args.get("category"))
    rows = await ctx.store.read(leaderboard, category, limit=10)
    return Reply.embed(build_leaderboard_embed(category, rows))


async def handle_services(ctx: CommandContext, args: Dict[str, Any]) -> Reply:
    services = await ctx.store.read(active_services, limit=15)
    if not services:
        return Reply.text("No services available at the moment.")
    return Reply.embed(build_services_embed(services))


async def handle_announcements(ctx: CommandContext, args: Dict[str, Any]) -> Reply:
    announcements = await ctx.store.read(active_announcements, limit=3)
    if not announcements:
        return Reply.text("No active announcements at the moment.")
    return Reply.embed(build_announcements_embed(announcements))


def register(bot: "DropsBot", tree: app_commands.CommandTree) -> None:
    """
    Site-wide listings:
      - /leaderboard  top users by a fixed category
      - /services     account generator stock
      - /announcements
    """
    bot.registry.add(CommandSpec("leaderboard", handle_leaderboard))
    bot.registry.add(CommandSpec("services", handle_services))
    bot.registry.add(CommandSpec("announcements", handle_announcements))

    @tree.command(name="leaderboard", description="View top users")
    @app_commands.describe(category="Leaderboard category")
    @app_commands.choices(
        category=[
            app_commands.Choice(name="Coins", value=LeaderboardCategory.COINS.value),
            app_commands.Choice(name="Drops Created", value=LeaderboardCategory.DROPS.value),
            app_commands.Choice(name="Drops Unlocked", value=LeaderboardCategory.UNLOCKED.value),
        ]
    )
    async def leaderboard_cmd(
        interaction: discord.Interaction,
        category: Optional[app_commands.Choice[str]] = None,
    ) -> None:
        await bot.dispatcher.dispatch("leaderboard", interaction, {"category": category})

    @tree.command(name="services", description="View available account generator services")
    async def services(interaction: discord.Interaction) -> None:
        await bot.dispatcher.dispatch("services", interaction)

    @tree.command(name="announcements", description="View the latest Drops Cloud announcements")
    async def announcements(interaction: discord.Interaction) -> None:
        await bot.dispatcher.dispatch("announcements", interaction)
