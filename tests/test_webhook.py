"""
Tests for the link webhook served next to the bot.
"""

from __future__ import annotations

from typing import List, Optional, Tuple

import pytest
from fastapi.testclient import TestClient

from dropsbot.errors import GatewayError
from dropsbot.main import create_app

AUTH = {"Authorization": "Bearer s3cret"}


class FakeNotifier:
    def __init__(self, error: Optional[Exception] = None, tag: Optional[str] = "DropsBot#0001") -> None:
        self.error = error
        self.tag = tag
        self.sent: List[Tuple[str, str]] = []

    @property
    def bot_tag(self) -> Optional[str]:
        return self.tag

    async def send_link_welcome(self, discord_id: str, username: str) -> None:
        if self.error is not None:
            raise self.error
        self.sent.append((discord_id, username))


@pytest.fixture
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture
def client(notifier, settings) -> TestClient:
    return TestClient(create_app(notifier, settings))


class TestAuth:
    @pytest.mark.parametrize(
        "headers",
        [
            {},
            {"Authorization": "s3cret"},
            {"Authorization": "Bearer wrong"},
        ],
    )
    def test_rejects_bad_credentials(self, client, notifier, headers):
        resp = client.post("/webhook/link", json={"discordId": "1", "username": "a"}, headers=headers)
        assert resp.status_code == 401
        assert resp.json() == {"error": "Unauthorized"}
        assert notifier.sent == []

    def test_empty_secret_rejects_everything(self, notifier, settings):
        settings.webhook_secret = ""
        client = TestClient(create_app(notifier, settings))

        resp = client.post("/webhook/link", json={"discordId": "1", "username": "a"}, headers={"Authorization": "Bearer "})

        assert resp.status_code == 401


class TestValidation:
    @pytest.mark.parametrize(
        "body",
        [
            {},
            {"discordId": "123"},
            {"username": "alice"},
            {"discordId": "", "username": "alice"},
            {"discordId": "123", "username": "   "},
            {"discordId": None, "username": "alice"},
            {"discordId": True, "username": "alice"},
            {"discordId": "123", "username": False},
            {"discordId": ["123"], "username": "alice"},
        ],
    )
    def test_missing_fields(self, client, notifier, body):
        resp = client.post("/webhook/link", json=body, headers=AUTH)
        assert resp.status_code == 400
        assert resp.json() == {"error": "Missing required fields"}
        assert notifier.sent == []

    def test_invalid_json(self, client):
        resp = client.post(
            "/webhook/link",
            content=b"{not json",
            headers={**AUTH, "Content-Type": "application/json"},
        )
        assert resp.status_code == 400

    def test_non_object_body(self, client):
        resp = client.post("/webhook/link", json=["123", "alice"], headers=AUTH)
        assert resp.status_code == 400


class TestDelivery:
    def test_dm_sent(self, client, notifier):
        resp = client.post("/webhook/link", json={"discordId": " 123 ", "username": "alice"}, headers=AUTH)

        assert resp.status_code == 200
        assert resp.json() == {"success": True, "dmSent": True}
        assert notifier.sent == [("123", "alice")]

    def test_numeric_discord_id_is_accepted(self, client, notifier):
        resp = client.post("/webhook/link", json={"discordId": 123, "username": "alice"}, headers=AUTH)
        assert resp.status_code == 200
        assert notifier.sent == [("123", "alice")]

    def test_dm_refused_is_still_success(self, settings):
        client = TestClient(create_app(FakeNotifier(error=GatewayError("Cannot send messages to this user")), settings))

        resp = client.post("/webhook/link", json={"discordId": "123", "username": "alice"}, headers=AUTH)

        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert body["dmSent"] is False
        assert "DMs disabled" in body["error"]

    def test_unexpected_error_is_500(self, settings):
        client = TestClient(create_app(FakeNotifier(error=RuntimeError("boom")), settings))

        resp = client.post("/webhook/link", json={"discordId": "123", "username": "alice"}, headers=AUTH)

        assert resp.status_code == 500
        assert resp.json() == {"error": "Internal server error"}


class TestHealth:
    def test_logged_in(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok", "bot": "DropsBot#0001"}

    def test_not_logged_in(self, settings):
        client = TestClient(create_app(FakeNotifier(tag=None), settings))
        assert client.get("/health").json()["bot"] == "Not logged in"

    def test_docs_are_disabled(self, client):
        assert client.get("/docs").status_code == 404
        assert client.get("/openapi.json").status_code == 404
