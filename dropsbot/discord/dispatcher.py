from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, Iterator, Mapping, Optional

import discord

from ..errors import DataStoreError, GatewayError, NotLinkedError
from .interaction import InteractionReply, Reply

if TYPE_CHECKING:
    from ..config import Settings
    from ..database import DataStore

logger = logging.getLogger(__name__)

GENERIC_ERROR = "❌ An error occurred while processing your command."
DATASTORE_ERROR = "❌ Drops Cloud is having trouble reaching its database. Please try again in a moment."
UNKNOWN_COMMAND = "Unknown command."


@dataclass
class CommandContext:
    """
    Everything a handler may touch: the guarded reply, the invoking user,
    and the injected process-lifetime handles.
    """

    reply: InteractionReply
    store: "DataStore"
    settings: "Settings"

    @property
    def interaction(self) -> discord.Interaction:
        return self.reply.interaction

    @property
    def user(self) -> Any:
        return self.reply.interaction.user


Handler = Callable[[CommandContext, Dict[str, Any]], Awaitable[Reply]]


@dataclass(frozen=True)
class CommandSpec:
    """
    How the dispatcher runs one command.

    defer=True acknowledges before the handler runs (anything that hits the
    database); ephemeral sets the visibility of that acknowledgement.
    """

    name: str
    handler: Handler
    defer: bool = True
    ephemeral: bool = False


class CommandRegistry:
    def __init__(self) -> None:
        self._specs: Dict[str, CommandSpec] = {}

    def add(self, spec: CommandSpec) -> CommandSpec:
        if spec.name in self._specs:
            raise ValueError(f"command already registered: {spec.name}")
        self._specs[spec.name] = spec
        return spec

    def get(self, name: str) -> Optional[CommandSpec]:
        return self._specs.get(name)

    def names(self) -> Iterator[str]:
        return iter(sorted(self._specs))

    def __contains__(self, name: object) -> bool:
        return name in self._specs

    def __len__(self) -> int:
        return len(self._specs)


class Dispatcher:
    """
    Runs a registered handler for one interaction and funnels every outcome
    through the reply guard. dispatch() never raises.
    """

    def __init__(self, registry: CommandRegistry, store: "DataStore", settings: "Settings") -> None:
        self.registry = registry
        self.store = store
        self.settings = settings

    async def dispatch(
        self,
        name: str,
        interaction: discord.Interaction,
        args: Optional[Mapping[str, Any]] = None,
    ) -> InteractionReply:
        reply = InteractionReply(interaction)
        user_id = getattr(getattr(interaction, "user", None), "id", None)
        logger.info("command=%s user=%s", name, user_id)

        spec = self.registry.get(name)
        if spec is None:
            logger.warning("unknown command=%s", name)
            await reply.fail(UNKNOWN_COMMAND)
            return reply

        ctx = CommandContext(reply=reply, store=self.store, settings=self.settings)
        try:
            if spec.defer:
                await reply.defer(ephemeral=spec.ephemeral)
            payload = await spec.handler(ctx, dict(args or {}))
            await reply.send(payload)
        except NotLinkedError as e:
            logger.info("command=%s not linked: %s", name, e)
            await reply.fail(e.user_message())
        except DataStoreError:
            logger.exception("command=%s data store error", name)
            await reply.fail(DATASTORE_ERROR)
        except GatewayError:
            logger.exception("command=%s gateway error (state=%s)", name, reply.state.value)
            await reply.fail(GENERIC_ERROR)
        except Exception:
            logger.exception("command=%s failed", name)
            await reply.fail(GENERIC_ERROR)

        return reply


__all__ = [
    "CommandContext",
    "CommandSpec",
    "CommandRegistry",
    "Dispatcher",
    "Handler",
    "GENERIC_ERROR",
    "DATASTORE_ERROR",
    "UNKNOWN_COMMAND",
]
