from __future__ import annotations

import asyncio
import logging
from typing import Optional

import discord
import uvicorn
from discord import app_commands

from ..config import Settings, settings as default_settings
from ..database import DataStore, open_store
from ..errors import GatewayError
from ..main import create_app
from .commands import register_all
from .commands.shared import COLOR_GREEN, command_map
from .dispatcher import CommandRegistry, Dispatcher

logger = logging.getLogger(__name__)

WEBHOOK_STARTUP_TIMEOUT_S = 10.0


async def _serve(server: uvicorn.Server) -> None:
    try:
        await server.serve()
    except SystemExit as e:
        # uvicorn calls sys.exit(1) when it cannot bind; keep that inside the task.
        raise RuntimeError(f"webhook server exited (code={e.code})") from e


def _log_webhook_exit(task: asyncio.Task) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.exception("Webhook server stopped with an error", exc_info=exc)


def build_link_welcome_embed(username: str) -> discord.Embed:
    embed = discord.Embed(
        title="🎉 Discord Account Linked Successfully!",
        description=f"Welcome to Drops Cloud, **{discord.utils.escape_markdown(username)}**!",
        colour=COLOR_GREEN,
        timestamp=discord.utils.utcnow(),
    )
    embed.add_field(
        name="✅ Account Connected",
        value="Your Discord account is now linked to Drops Cloud!",
        inline=False,
    )
    embed.add_field(
        name="🤖 Bot Commands",
        value="You can now use all bot commands:\n" + "\n".join(command_map()),
        inline=False,
    )
    embed.add_field(
        name="💡 What's Next?",
        value="Start exploring drops, claim accounts, and earn coins on Drops Cloud!",
        inline=False,
    )
    embed.set_footer(text="Thank you for joining Drops Cloud!")
    return embed


class DropsBot(discord.Client):
    """
    Drops Cloud Discord bot.

    Notes:
    - settings and store are injected; the bot owns neither global.
    - Slash commands are declared by modules under discord/commands/ and all run
      through self.dispatcher, which owns the reply-state discipline.
    - The link webhook (FastAPI) is served by uvicorn on this same event loop.
    """

    def __init__(self, settings: Settings, store: DataStore) -> None:
        intents = discord.Intents.default()
        intents.guilds = True
        intents.dm_messages = True

        super().__init__(intents=intents, application_id=settings.discord_client_id)

        self.settings = settings
        self.store = store
        self.tree = app_commands.CommandTree(self)
        self.registry = CommandRegistry()
        self.dispatcher = Dispatcher(self.registry, store, settings)

        self._webhook_server: Optional[uvicorn.Server] = None
        self._webhook_task: Optional[asyncio.Task] = None

    # -----------------------------
    # Lifecycle
    # -----------------------------

    async def setup_hook(self) -> None:
        register_all(
            self,
            self.tree,
            allow=self.settings.commands_allow,
            deny=self.settings.commands_deny,
        )

        # Sync commands (guild-only optional for fast iteration)
        try:
            guild_id = self.settings.discord_guild_id
            if guild_id and self.settings.discord_sync_guild_only:
                guild = discord.Object(id=guild_id)
                self.tree.copy_global_to(guild=guild)
                await self.tree.sync(guild=guild)
                logger.info("Slash commands synced to guild=%s", guild_id)
            else:
                await self.tree.sync()
                logger.info("Slash commands synced globally")
        except discord.HTTPException:
            logger.exception("Slash command sync failed")

        if self.settings.webhook_enabled:
            await self._start_webhook()

    async def _start_webhook(self) -> None:
        """
        Serve the link webhook on this loop and wait until it is listening.
        A webhook that cannot start (port in use, bad host) is fatal.
        """
        app = create_app(self, self.settings)
        config = uvicorn.Config(
            app,
            host=self.settings.webhook_host,
            port=self.settings.webhook_port,
            log_level=self.settings.log_level.lower(),
            lifespan="off",
        )
        server = uvicorn.Server(config)
        task = asyncio.create_task(_serve(server), name="link-webhook")
        task.add_done_callback(_log_webhook_exit)
        self._webhook_server = server
        self._webhook_task = task

        deadline = asyncio.get_running_loop().time() + WEBHOOK_STARTUP_TIMEOUT_S
        while not server.started:
            if task.done():
                self._webhook_server = self._webhook_task = None
                raise RuntimeError(
                    f"Webhook server failed to start on {self.settings.webhook_host}:{self.settings.webhook_port}"
                ) from (None if task.cancelled() else task.exception())
            if asyncio.get_running_loop().time() > deadline:
                raise RuntimeError(f"Webhook server did not start within {WEBHOOK_STARTUP_TIMEOUT_S}s")
            await asyncio.sleep(0.05)

        logger.info("Webhook server listening on %s:%s", self.settings.webhook_host, self.settings.webhook_port)

    async def close(self) -> None:
        server, task = self._webhook_server, self._webhook_task
        self._webhook_server = self._webhook_task = None
        try:
            if server is not None:
                server.should_exit = True
            if task is not None:
                # failures were already logged by _log_webhook_exit
                await asyncio.gather(task, return_exceptions=True)
        finally:
            try:
                await super().close()
            finally:
                self.store.dispose()

    async def on_ready(self) -> None:
        logger.info(
            "DropsBot ready as %s (guilds=%s, guild_sync=%s, commands=%s)",
            str(self.user),
            len(self.guilds),
            str(self.settings.discord_guild_id or "global"),
            len(self.registry),
        )

    async def on_error(self, event_method: str, /, *args, **kwargs) -> None:
        logger.exception("Discord client error in %s", event_method)

    # -----------------------------
    # Link notifications (used by the webhook)
    # -----------------------------

    @property
    def bot_tag(self) -> Optional[str]:
        return str(self.user) if self.user else None

    async def send_link_welcome(self, discord_id: str, username: str) -> None:
        """
        DM the freshly linked user. GatewayError if Discord won't deliver it
        (unknown user, DMs closed, bad id).
        """
        try:
            user = await self.fetch_user(int(discord_id))
            await user.send(embed=build_link_welcome_embed(username))
        except ValueError as e:
            raise GatewayError(f"invalid discord id: {discord_id!r}") from e
        except discord.HTTPException as e:
            raise GatewayError(f"could not DM {discord_id}: {e}") from e
        logger.info("Welcome DM sent to %s (%s)", username, discord_id)


# ---------------------------------------------------------------------
# Entrypoint
# ---------------------------------------------------------------------


def run_bot(settings: Optional[Settings] = None) -> None:
    settings = settings or default_settings
    logging.basicConfig(
        level=getattr(logging, str(settings.log_level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    settings.validate()

    store = open_store(settings.database_url, create_tables=settings.db_create_tables)
    bot = DropsBot(settings, store)
    bot.run(settings.discord_token, log_handler=None)


if __name__ == "__main__":
    run_bot()
