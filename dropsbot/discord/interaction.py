from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

import discord

from ..errors import GatewayError

logger = logging.getLogger(__name__)


class ReplyState(str, Enum):
    """
    Where an interaction is in Discord's reply protocol.

    FRESH -> DEFERRED -> REPLIED, or FRESH -> REPLIED. REPLIED is terminal.
    """

    FRESH = "fresh"
    DEFERRED = "deferred"
    REPLIED = "replied"


@dataclass
class Reply:
    """
    What a command handler wants the user to see.

    ephemeral only applies to the first acknowledgement; Discord keeps the
    visibility chosen at defer/respond time for every later edit.
    """

    content: Optional[str] = None
    embeds: List[discord.Embed] = field(default_factory=list)
    ephemeral: bool = False

    @classmethod
    def text(cls, content: str, *, ephemeral: bool = False) -> "Reply":
        return cls(content=content, ephemeral=ephemeral)

    @classmethod
    def embed(cls, embed: discord.Embed, *, content: Optional[str] = None, ephemeral: bool = False) -> "Reply":
        return cls(content=content, embeds=[embed], ephemeral=ephemeral)

    def send_kwargs(self) -> Dict[str, Any]:
        kwargs: Dict[str, Any] = {"ephemeral": self.ephemeral}
        if self.content is not None:
            kwargs["content"] = self.content
        if self.embeds:
            kwargs["embeds"] = list(self.embeds)
        return kwargs

    def edit_kwargs(self) -> Dict[str, Any]:
        # Edits replace the whole message: clear whichever half we don't send.
        return {"content": self.content, "embeds": list(self.embeds)}


def _coerce(payload: "Reply | str") -> Reply:
    if isinstance(payload, Reply):
        return payload
    return Reply.text(str(payload))


class InteractionReply:
    """
    Reply-state guard around one discord.Interaction.

    Discord allows exactly one first acknowledgement (defer or respond) and then
    any number of edits, each inside a time window. Checking the order here means
    an error path can never trigger "interaction has already been acknowledged".

    Every failure, local or from Discord, is raised as GatewayError.
    """

    def __init__(self, interaction: discord.Interaction) -> None:
        self.interaction = interaction
        self.state = ReplyState.FRESH
        self.visible: Optional[Reply] = None

        created = getattr(interaction, "created_at", None)
        self.issued_at: datetime = created if isinstance(created, datetime) else datetime.now(timezone.utc)

    @property
    def id(self) -> Any:
        return getattr(self.interaction, "id", None)

    def age_s(self) -> float:
        return (datetime.now(timezone.utc) - self.issued_at).total_seconds()

    def _require_fresh(self, op: str) -> None:
        if self.state is not ReplyState.FRESH:
            raise GatewayError(f"{op}() on interaction {self.id} in state {self.state.value}: already acknowledged")

    async def defer(self, *, ephemeral: bool = False) -> None:
        self._require_fresh("defer")
        try:
            await self.interaction.response.defer(ephemeral=ephemeral)
        except (discord.HTTPException, discord.InteractionResponded) as e:
            raise GatewayError(f"defer() failed after {self.age_s():.1f}s: {e}") from e
        self.state = ReplyState.DEFERRED

    async def respond(self, payload: "Reply | str") -> None:
        reply = _coerce(payload)
        self._require_fresh("respond")
        try:
            await self.interaction.response.send_message(**reply.send_kwargs())
        except (discord.HTTPException, discord.InteractionResponded) as e:
            raise GatewayError(f"respond() failed after {self.age_s():.1f}s: {e}") from e
        self.state = ReplyState.REPLIED
        self.visible = reply

    async def update(self, payload: "Reply | str") -> None:
        reply = _coerce(payload)
        if self.state is ReplyState.FRESH:
            raise GatewayError(f"update() on interaction {self.id} before defer()/respond()")
        try:
            await self.interaction.edit_original_response(**reply.edit_kwargs())
        except discord.HTTPException as e:
            raise GatewayError(f"update() failed after {self.age_s():.1f}s: {e}") from e
        self.state = ReplyState.REPLIED
        self.visible = reply

    async def send(self, payload: "Reply | str") -> None:
        """
        Deliver a handler's result: first response if FRESH, otherwise an edit.
        """
        if self.state is ReplyState.FRESH:
            await self.respond(payload)
        else:
            await self.update(payload)

    async def fail(self, message: str) -> None:
        """
        Report an error to the user from whatever state we're in.

        Never raises; a failure to deliver the error is logged. The interaction
        ends REPLIED either way so nothing else tries to acknowledge it.
        """
        try:
            await self.send(Reply.text(message, ephemeral=True))
        except GatewayError:
            logger.exception("could not deliver error message for interaction %s", self.id)
        finally:
            self.state = ReplyState.REPLIED


__all__ = ["ReplyState", "Reply", "InteractionReply"]
