from __future__ import annotations

import math
from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, Optional

import discord
from discord import app_commands

from ...errors import NotLinkedError
from ...models.user import User, UserRole, as_utc, utcnow
from ...services.accounts import DailyBonusResult, claim_daily_bonus
from ..dispatcher import CommandContext, CommandSpec
from ..interaction import Reply
from .shared import (
    COLOR_BLUE,
    COLOR_GOLD,
    COLOR_GRAY,
    COLOR_GREEN,
    COLOR_PURPLE,
    add_field,
    avatar_url,
    display_name,
    fmt_date,
    plain_date,
    require_linked,
    target_user,
    truncate,
)

if TYPE_CHECKING:
    from ..bot import DropsBot


def _vip_days_remaining(expires_at: Optional[datetime], now: datetime) -> int:
    expires = as_utc(expires_at)
    if expires is None:
        return 0
    return max(0, math.ceil((expires - now).total_seconds() / 86400))


def build_stats_embed(user: User, now: Optional[datetime] = None) -> discord.Embed:
    now = now or utcnow()
    is_vip = user.is_vip(now)

    embed = discord.Embed(
        title=f"📊 Stats for {user.username}",
        colour=COLOR_BLUE,
        timestamp=discord.utils.utcnow(),
    )
    add_field(embed, "💰 Coins", user.coin_balance or 0, inline=True)
    add_field(embed, "🪙 Total Earned", user.total_coins_earned or 0, inline=True)
    add_field(embed, "🎁 Drops Created", user.total_drops_created or 0, inline=True)
    add_field(embed, "🏆 Career Tier", user.career_tier or "None", inline=True)
    add_field(embed, "👑 Role", user.role or UserRole.USER.value, inline=True)
    add_field(embed, "⭐ VIP Status", "✅ Active" if is_vip else "❌ Inactive", inline=True)
    add_field(embed, "📅 Member Since", fmt_date(user.created_at), inline=True)
    if is_vip:
        add_field(embed, "⏰ VIP Expires", fmt_date(user.vip_expires_at), inline=True)
    if user.profile_picture:
        embed.set_thumbnail(url=user.profile_picture)
    return embed


def build_balance_embed(user: User, now: Optional[datetime] = None) -> discord.Embed:
    gold = user.role == UserRole.VIP.value or user.is_vip(now)
    return discord.Embed(
        title="💰 Coin Balance",
        description=f"**{user.username}** has **{user.coin_balance or 0}** coins",
        colour=COLOR_GOLD if gold else COLOR_GREEN,
        timestamp=discord.utils.utcnow(),
    )


def build_profile_embed(user: User, thumbnail: Optional[str] = None, now: Optional[datetime] = None) -> discord.Embed:
    is_vip = user.is_vip(now)
    embed = discord.Embed(
        title=f"👤 Profile: {user.username}",
        colour=COLOR_GOLD if is_vip else COLOR_PURPLE,
        timestamp=discord.utils.utcnow(),
    )
    if user.bio:
        embed.description = truncate(user.bio, 4096)
    if thumbnail or user.profile_picture:
        embed.set_thumbnail(url=thumbnail or user.profile_picture)

    add_field(embed, "💰 Coin Balance", user.coin_balance or 0, inline=True)
    add_field(embed, "👑 Role", user.role or UserRole.USER.value, inline=True)
    add_field(embed, "⭐ VIP", "✅ Active" if is_vip else "❌ Inactive", inline=True)
    add_field(embed, "📦 Drops Created", user.total_drops_created or 0, inline=True)
    add_field(embed, "💎 Total Earned", f"{user.total_coins_earned or 0} coins", inline=True)
    add_field(embed, "🎯 Career Tier", user.career_tier or "None", inline=True)
    embed.set_footer(text=f"Member since {plain_date(user.created_at)}")
    return embed


def build_vip_embed(user: User, thumbnail: Optional[str] = None, now: Optional[datetime] = None) -> discord.Embed:
    now = now or utcnow()
    is_vip = user.is_vip(now)
    embed = discord.Embed(
        title=f"⭐ VIP Status: {user.username}",
        colour=COLOR_GOLD if is_vip else COLOR_GRAY,
    )
    if thumbnail:
        embed.set_thumbnail(url=thumbnail)

    if is_vip:
        embed.description = "✅ This user has an active VIP membership!"
        add_field(embed, "📅 Expires On", fmt_date(user.vip_expires_at), inline=True)
        add_field(embed, "⏰ Days Remaining", _vip_days_remaining(user.vip_expires_at, now), inline=True)
        add_field(embed, "🎨 Badge Color", user.vip_badge_color or "Default", inline=True)
    else:
        embed.description = "❌ This user does not have an active VIP membership."
        add_field(embed, "💎 Get VIP", "Visit Drops Cloud to purchase VIP and enjoy exclusive benefits!")
    return embed


def build_daily_embed(result: DailyBonusResult) -> discord.Embed:
    embed = discord.Embed(
        title="🎁 Daily Bonus Claimed!",
        description=f"**{result.username}** claimed their daily bonus!",
        colour=COLOR_GREEN,
        timestamp=discord.utils.utcnow(),
    )
    add_field(embed, "💰 Bonus Amount", f"+{result.amount} coins", inline=True)
    add_field(embed, "💳 New Balance", f"{result.new_balance} coins", inline=True)
    embed.set_footer(text="Come back tomorrow for another bonus!")
    return embed


async def handle_stats(ctx: CommandContext, args: Dict[str, Any]) -> Reply:
    user = await require_linked(ctx, ctx.user)
    return Reply.embed(build_stats_embed(user))


async def handle_balance(ctx: CommandContext, args: Dict[str, Any]) -> Reply:
    target, is_self = target_user(ctx, args)
    user = await require_linked(ctx, target, is_self=is_self)
    return Reply.embed(build_balance_embed(user))


async def handle_profile(ctx: CommandContext, args: Dict[str, Any]) -> Reply:
    target, is_self = target_user(ctx, args)
    user = await require_linked(ctx, target, is_self=is_self)
    return Reply.embed(build_profile_embed(user, thumbnail=avatar_url(target)))


async def handle_vip(ctx: CommandContext, args: Dict[str, Any]) -> Reply:
    target, is_self = target_user(ctx, args)
    user = await require_linked(ctx, target, is_self=is_self)
    return Reply.embed(build_vip_embed(user, thumbnail=avatar_url(target)))


async def handle_daily(ctx: CommandContext, args: Dict[str, Any]) -> Reply:
    discord_id = str(ctx.user.id)
    today = utcnow().date()

    result = await ctx.store.write(claim_daily_bonus, discord_id, ctx.settings.daily_bonus_amount, today)
    if result is None:
        raise NotLinkedError(discord_id, display_name(ctx.user))

    if not result.claimed:
        return Reply.text("❌ You've already claimed your daily bonus today!\nCome back tomorrow for more coins.")
    return Reply.embed(build_daily_embed(result))


def register(bot: "DropsBot", tree: app_commands.CommandTree) -> None:
    """
    Per-account commands. All require a linked account:
      - /stats, /balance, /profile, /vip  (read)
      - /daily                            (the only write)
    """
    bot.registry.add(CommandSpec("stats", handle_stats))
    bot.registry.add(CommandSpec("balance", handle_balance))
    bot.registry.add(CommandSpec("profile", handle_profile))
    bot.registry.add(CommandSpec("vip", handle_vip))
    bot.registry.add(CommandSpec("daily", handle_daily))

    @tree.command(name="stats", description="View your Drops Cloud stats")
    async def stats(interaction: discord.Interaction) -> None:
        await bot.dispatcher.dispatch("stats", interaction)

    @tree.command(name="balance", description="Check your coin balance")
    @app_commands.describe(user="User to check (optional)")
    async def balance(interaction: discord.Interaction, user: Optional[discord.User] = None) -> None:
        await bot.dispatcher.dispatch("balance", interaction, {"user": user})

    @tree.command(name="profile", description="View a user profile")
    @app_commands.describe(user="Discord user to view")
    async def profile(interaction: discord.Interaction, user: Optional[discord.User] = None) -> None:
        await bot.dispatcher.dispatch("profile", interaction, {"user": user})

    @tree.command(name="vip", description="Check VIP status")
    @app_commands.describe(user="Discord user to check")
    async def vip(interaction: discord.Interaction, user: Optional[discord.User] = None) -> None:
        await bot.dispatcher.dispatch("vip", interaction, {"user": user})

    @tree.command(name="daily", description="Claim your daily coin bonus")
    async def daily(interaction: discord.Interaction) -> None:
        await bot.dispatcher.dispatch("daily", interaction)
