from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Optional

import discord

from ..dispatcher import CommandContext, CommandSpec
from ..interaction import Reply
from .shared import COLOR_BLURPLE, command_map

if TYPE_CHECKING:
    from discord import app_commands

    from ..bot import DropsBot


async def handle_ping(ctx: CommandContext, args: Dict[str, Any]) -> Reply:
    client = ctx.interaction.client
    latency = getattr(client, "latency", None)
    latency_ms = f"{latency * 1000:.0f}ms" if isinstance(latency, float) else "n/a"
    guild_id = ctx.settings.discord_guild_id

    return Reply.text(
        "✅ Pong. Bot is online.\n"
        f"Gateway latency: {latency_ms}\n"
        f"Guild sync: {'ON (' + str(guild_id) + ')' if guild_id and ctx.settings.discord_sync_guild_only else 'OFF (global)'}",
        ephemeral=True,
    )


async def handle_help(ctx: CommandContext, args: Dict[str, Any]) -> Reply:
    lines = ["🤖 **Drops Cloud Bot**", "", *command_map()]
    if ctx.settings.app_url:
        lines += ["", f"🌐 {ctx.settings.app_url}"]
    return Reply.text("\n".join(lines), ephemeral=True)


def build_link_embed(link_url: Optional[str]) -> discord.Embed:
    embed = discord.Embed(
        title="🔗 Link Your Discord Account",
        description="To link your Discord account with Drops Cloud:",
        colour=COLOR_BLURPLE,
        timestamp=discord.utils.utcnow(),
    )
    settings_page = f"[Settings Page]({link_url})" if link_url else "account settings page"
    steps = (
        f"Go to your Drops Cloud {settings_page}",
        'Find the "Discord Integration" section',
        'Click the "Link Discord Account" button',
        "Authorize the connection when prompted",
    )
    for i, step in enumerate(steps, start=1):
        embed.add_field(name=f"Step {i}", value=step, inline=False)
    embed.set_footer(text="Once linked, you can use personalized bot commands!")
    return embed


async def handle_link(ctx: CommandContext, args: Dict[str, Any]) -> Reply:
    return Reply.embed(build_link_embed(ctx.settings.link_settings_url), ephemeral=True)


def register(bot: "DropsBot", tree: "app_commands.CommandTree") -> None:
    """
    Core commands that never touch the database:
      - /ping  sanity check
      - /help  command map
      - /link  how to link an account
    """
    bot.registry.add(CommandSpec("ping", handle_ping, defer=False))
    bot.registry.add(CommandSpec("help", handle_help, defer=False))
    bot.registry.add(CommandSpec("link", handle_link, defer=False))

    @tree.command(name="ping", description="Sanity check: bot is alive.")
    async def ping(interaction: discord.Interaction) -> None:
        await bot.dispatcher.dispatch("ping", interaction)

    @tree.command(name="help", description="Show the Drops Cloud command map.")
    async def help_cmd(interaction: discord.Interaction) -> None:
        await bot.dispatcher.dispatch("help", interaction)

    @tree.command(name="link", description="Get instructions to link your Discord account")
    async def link(interaction: discord.Interaction) -> None:
        await bot.dispatcher.dispatch("link", interaction)
