from __future__ import annotations

import hmac
import logging
from typing import Any, Dict, Optional, Protocol

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field as PydField, ValidationError

from ..errors import GatewayError

logger = logging.getLogger(__name__)


class LinkNotifier(Protocol):
    """
    What the webhook needs from the bot. DropsBot implements it.
    """

    @property
    def bot_tag(self) -> Optional[str]: ...

    async def send_link_welcome(self, discord_id: str, username: str) -> None: ...


# -----------------------------
# Schemas
# -----------------------------

class LinkNotification(BaseModel):
    """
    Sent by the web app after a user links Discord on their settings page.
    Field names are the web app's (camelCase).
    """

    discordId: str = PydField(..., min_length=1)
    username: str = PydField(..., min_length=1)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _clean(value: Any) -> Any:
    """
    Strings are stripped and integer snowflakes become strings. Everything
    else (bools included) is left for validation to reject.
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, (str, int)):
        return str(value).strip()
    return value


def _authorized(header: Optional[str], secret: str) -> bool:
    if not secret or header is None:
        return False
    return hmac.compare_digest(header.encode("utf-8"), f"Bearer {secret}".encode("utf-8"))


def build_router(notifier: LinkNotifier, secret: str) -> APIRouter:
    """
    /webhook/link + /health.

    The router is built per-app so the notifier and secret are injected
    rather than read from module globals.
    """
    router = APIRouter(tags=["webhook"])

    @router.post("/webhook/link")
    async def link_notification(request: Request) -> Any:
        try:
            if not _authorized(request.headers.get("authorization"), secret):
                return _error(401, "Unauthorized")

            try:
                body = await request.json()
            except ValueError:
                return _error(400, "Missing required fields")

            if not isinstance(body, dict):
                return _error(400, "Missing required fields")

            try:
                payload = LinkNotification.model_validate({k: _clean(v) for k, v in body.items()})
            except ValidationError:
                return _error(400, "Missing required fields")

            logger.info("Received link notification for %s (%s)", payload.username, payload.discordId)

            try:
                await notifier.send_link_welcome(payload.discordId, payload.username)
            except GatewayError as e:
                logger.warning("Failed to send welcome DM to %s: %s", payload.discordId, e)
                return {
                    "success": True,
                    "dmSent": False,
                    "error": "User has DMs disabled or bot cannot reach user",
                }

            return {"success": True, "dmSent": True}
        except Exception:
            logger.exception("Error in webhook/link")
            return _error(500, "Internal server error")

    @router.get("/health")
    async def health() -> Dict[str, Any]:
        return {"status": "ok", "bot": notifier.bot_tag or "Not logged in"}

    return router


__all__ = ["LinkNotifier", "LinkNotification", "build_router"]
