"""
Shared fixtures: settings without .env, an in-memory SQLite store, and
mocked discord.Interaction objects.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Optional
from unittest.mock import AsyncMock, MagicMock

import discord
import pytest
from sqlalchemy.pool import StaticPool
from sqlmodel import Session

from dropsbot.config import Settings
from dropsbot.database import DataStore, init_db
from dropsbot.models import (
    AccountService,
    AccountStock,
    Announcement,
    Drop,
    UnlockedDrop,
    User,
)


def utc(*args: int) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        discord_token="test-token",
        database_url="sqlite://",
        webhook_secret="s3cret",
        app_url="https://drops.example.com/",
    )


@pytest.fixture
def store() -> DataStore:
    store = DataStore.from_url("sqlite://", poolclass=StaticPool)
    init_db(store.engine)
    yield store
    store.dispose()


@pytest.fixture
def session(store: DataStore) -> Session:
    with Session(store.engine) as s:
        yield s


def make_user(discord_id: Optional[int] = 111, display_name: str = "Tester") -> MagicMock:
    user = MagicMock()
    user.id = discord_id
    user.display_name = display_name
    user.name = display_name.lower()
    user.display_avatar.url = f"https://cdn.example.com/{discord_id}.png"
    return user


def make_interaction(user: Any = None) -> MagicMock:
    interaction = MagicMock(spec=discord.Interaction)
    interaction.id = 999
    interaction.created_at = datetime.now(timezone.utc)
    interaction.user = user or make_user()
    interaction.client = MagicMock()
    interaction.client.latency = 0.042
    interaction.response = MagicMock()
    interaction.response.send_message = AsyncMock()
    interaction.response.defer = AsyncMock()
    interaction.edit_original_response = AsyncMock()
    return interaction


def not_found() -> discord.NotFound:
    response = MagicMock(status=404, reason="Not Found")
    return discord.NotFound(response, {"code": 10062, "message": "Unknown interaction"})


@pytest.fixture
def seeded(session: Session) -> dict:
    """
    Two linked users, one unlinked-by-discord user, a handful of drops,
    services with stock and announcements.
    """
    now = datetime.now(timezone.utc)

    alice = User(
        username="alice",
        discord_id="111",
        coin_balance=500,
        total_coins_earned=900,
        total_drops_created=2,
        career_tier="Gold",
        role="vip",
        vip_expires_at=now + timedelta(days=10, hours=1),
        vip_badge_color="purple",
        bio="I post drops.",
        created_at=utc(2024, 1, 15),
    )
    bob = User(
        username="bob",
        discord_id="222",
        coin_balance=1200,
        total_drops_created=0,
        created_at=utc(2024, 3, 1),
    )
    carol = User(username="carol", discord_id=None, coin_balance=50, total_drops_created=7)
    banned = User(username="mallory", discord_id="444", coin_balance=99999, status="banned")
    session.add_all([alice, bob, carol, banned])
    session.commit()

    drops = [
        Drop(title="Netflix 4K", description="Premium account " * 10, service="Netflix", cost=20,
             unlock_count=5, owner_id=alice.id, owner_username="alice", created_at=now - timedelta(days=3)),
        Drop(title="Spotify Family", service="Spotify", cost=10, unlock_count=40,
             owner_id=bob.id, owner_username="bob", created_at=now - timedelta(days=2)),
        Drop(title="100% legit VPN", description="fast", service="VPN", cost=5, unlock_count=12,
             owner_id=alice.id, owner_username="alice", created_at=now - timedelta(days=1)),
        Drop(title="Hidden", service="Netflix", is_visible=False, unlock_count=1000, created_at=now),
        Drop(title="Old", service="Netflix", is_expired=True, unlock_count=999, created_at=now),
    ]
    session.add_all(drops)
    session.commit()

    session.add_all([
        UnlockedDrop(user_id=carol.id, drop_id=drops[0].id),
        UnlockedDrop(user_id=carol.id, drop_id=drops[1].id),
        UnlockedDrop(user_id=carol.id, drop_id=drops[2].id),
        UnlockedDrop(user_id=bob.id, drop_id=drops[0].id),
    ])

    netflix = AccountService(service_name="netflix", display_name="Netflix", description="Streaming")
    disney = AccountService(service_name="disney", display_name=None)
    retired = AccountService(service_name="retired", display_name="Retired", is_active=False)
    session.add_all([netflix, disney, retired])
    session.commit()

    session.add_all([
        AccountStock(service_id=netflix.id),
        AccountStock(service_id=netflix.id),
        AccountStock(service_id=netflix.id, status="claimed"),
        AccountStock(service_id=retired.id),
    ])

    session.add_all([
        Announcement(title="Maintenance", message="x" * 300, type="warning", created_at=now - timedelta(hours=1)),
        Announcement(title="Welcome", message="Hello!", type="info", created_at=now - timedelta(hours=2)),
        Announcement(title="Expired", message="gone", expires_at=now - timedelta(minutes=1), created_at=now),
        Announcement(title="Inactive", message="off", is_active=False, created_at=now),
        Announcement(title="Party", message="Soon", type="celebration", expires_at=now + timedelta(days=1),
                     created_at=now - timedelta(hours=3)),
        Announcement(title="Oldest", message="old", created_at=now - timedelta(days=30)),
    ])
    session.commit()

    return {"alice": alice.id, "bob": bob.id, "carol": carol.id, "drops": [d.id for d in drops]}
