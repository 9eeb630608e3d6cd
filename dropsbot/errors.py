from __future__ import annotations

from typing import Optional


class BotError(Exception):
    """Base class for errors the dispatcher knows how to report."""


class GatewayError(BotError):
    """
    Discord refused or could not deliver a response.

    Raised for reply-protocol violations (acknowledging twice, editing before
    acknowledging) and for transport failures such as an expired interaction token.
    """


class DataStoreError(BotError):
    """A database query failed (connectivity, constraint, timeout)."""


class NotLinkedError(BotError):
    """
    No Drops Cloud account is linked to the Discord identity.

    This is an expected outcome, not a fault: the dispatcher turns it into
    instructions instead of a generic error.
    """

    def __init__(self, discord_id: str, display_name: Optional[str] = None, *, is_self: bool = True) -> None:
        self.discord_id = discord_id
        self.display_name = display_name
        self.is_self = is_self
        super().__init__(f"discord_id={discord_id} is not linked")

    def user_message(self) -> str:
        if self.is_self:
            return "❌ You need to link your Discord account first.\nUse `/link` for instructions."
        name = self.display_name or "That user"
        return f"❌ {name} hasn't linked their Discord account yet."


__all__ = ["BotError", "GatewayError", "DataStoreError", "NotLinkedError"]
