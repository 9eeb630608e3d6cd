from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Sequence

import discord
from discord import app_commands

from ...models.drop import Drop
from ...services.catalog import latest_drops, search_drops, top_drops
from ..dispatcher import CommandContext, CommandSpec
from ..interaction import Reply
from .shared import COLOR_GOLD, COLOR_PURPLE, add_field, drop_line, medal, truncate

if TYPE_CHECKING:
    from ..bot import DropsBot

DROP_DESCRIPTION_LIMIT = 80
SEARCH_QUERY_MAX = 100


def build_drops_embed(drops: Sequence[Drop]) -> discord.Embed:
    embed = discord.Embed(
        title="📦 Latest Drops on Drops Cloud",
        description="Here are the newest drops available",
        colour=COLOR_PURPLE,
        timestamp=discord.utils.utcnow(),
    )
    for drop in drops:
        description = truncate(drop.description, DROP_DESCRIPTION_LIMIT) or "No description"
        add_field(embed, drop.title or "Untitled Drop", f"{drop_line(drop)}\n{description}")
    embed.set_footer(text="Visit Drops Cloud to unlock these drops!")
    return embed


def build_search_embed(query: str, drops: Sequence[Drop]) -> discord.Embed:
    embed = discord.Embed(
        title=truncate(f'🔍 Search Results for "{query}"', 256),
        description=f"Found {len(drops)} result(s)",
        colour=COLOR_PURPLE,
        timestamp=discord.utils.utcnow(),
    )
    for drop in drops:
        add_field(embed, drop.title or "Untitled", drop_line(drop))
    return embed


def build_top_embed(drops: Sequence[Drop]) -> discord.Embed:
    embed = discord.Embed(
        title="🏆 Top Drops by Unlocks",
        description="Most popular drops on Drops Cloud",
        colour=COLOR_GOLD,
        timestamp=discord.utils.utcnow(),
    )
    for i, drop in enumerate(drops):
        add_field(embed, f"{medal(i)} {drop.title or 'Untitled'}", drop_line(drop))
    return embed


async def handle_drops(ctx: CommandContext, args: Dict[str, Any]) -> Reply:
    drops = await ctx.store.read(latest_drops, limit=5)
    if not drops:
        return Reply.text("No active drops found at the moment.")
    return Reply.embed(build_drops_embed(drops))


async def handle_search(ctx: CommandContext, args: Dict[str, Any]) -> Reply:
    query = str(args.get("query") or "").strip()
    if not query:
        return Reply.text("❌ Please provide something to search for.")

    query = query[:SEARCH_QUERY_MAX]
    drops = await ctx.store.read(search_drops, query, limit=5)
    if not drops:
        return Reply.text(f'No drops found for "{discord.utils.escape_markdown(query)}".')
    return Reply.embed(build_search_embed(query, drops))


async def handle_top(ctx: CommandContext, args: Dict[str, Any]) -> Reply:
    drops = await ctx.store.read(top_drops, limit=5)
    if not drops:
        return Reply.text("No drops found.")
    return Reply.embed(build_top_embed(drops))


def register(bot: "DropsBot", tree: app_commands.CommandTree) -> None:
    """
    Drop listings:
      - /drops   newest visible drops
      - /search  substring search
      - /top     most unlocked
    """
    bot.registry.add(CommandSpec("drops", handle_drops))
    bot.registry.add(CommandSpec("search", handle_search))
    bot.registry.add(CommandSpec("top", handle_top))

    @tree.command(name="drops", description="View the latest drops on Drops Cloud")
    async def drops(interaction: discord.Interaction) -> None:
        await bot.dispatcher.dispatch("drops", interaction)

    @tree.command(name="search", description="Search for drops")
    @app_commands.describe(query="Search term")
    async def search(interaction: discord.Interaction, query: app_commands.Range[str, 1, SEARCH_QUERY_MAX]) -> None:
        await bot.dispatcher.dispatch("search", interaction, {"query": query})

    @tree.command(name="top", description="View top drops by unlocks")
    async def top(interaction: discord.Interaction) -> None:
        await bot.dispatcher.dispatch("top", interaction)
