from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import FastAPI

from . import __version__
from .api.webhook import LinkNotifier, build_router

if TYPE_CHECKING:
    from .config import Settings


def create_app(notifier: LinkNotifier, settings: "Settings") -> FastAPI:
    """
    The bot's HTTP surface. Served in-process by DropsBot (see discord/bot.py),
    never on its own: the webhook is useless without a logged-in client.
    """
    app = FastAPI(
        title="Drops Cloud Bot Webhook",
        version=__version__,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )

    app.include_router(build_router(notifier, settings.webhook_secret))

    return app
