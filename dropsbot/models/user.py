from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from sqlmodel import SQLModel, Field


def utcnow() -> datetime:
    # timezone-aware UTC for future-proofing
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """
    SQLite hands back naive datetimes; everything we store is UTC.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class UserRole(str, Enum):
    """
    Site roles as written by the web app. Values are display-safe.
    """

    USER = "user"
    VIP = "vip"
    MODERATOR = "moderator"
    ADMIN = "admin"


class User(SQLModel, table=True):
    """
    A Drops Cloud account.

    Notes:
    - The web application owns this table; the bot reads it and only writes
      coin_balance (via the daily bonus).
    - discord_id is a string because Discord snowflake IDs can exceed 32-bit ints.
    - vip_expires_at in the future means an active VIP membership,
      independent of the role column.
    """

    __tablename__ = "users"

    id: Optional[int] = Field(default=None, primary_key=True)

    username: str = Field(index=True)
    discord_id: Optional[str] = Field(default=None, index=True)

    # ---- Economy ----
    coin_balance: int = Field(default=0)
    total_coins_earned: int = Field(default=0)
    total_drops_created: int = Field(default=0)
    career_tier: Optional[str] = Field(default=None)

    role: str = Field(default=UserRole.USER.value, index=True)
    status: str = Field(default="active", index=True)

    # ---- Profile ----
    bio: Optional[str] = Field(default=None)
    profile_picture: Optional[str] = Field(default=None)

    # ---- VIP ----
    vip_expires_at: Optional[datetime] = Field(default=None)
    vip_granted_at: Optional[datetime] = Field(default=None)
    vip_badge_color: Optional[str] = Field(default=None)

    created_at: datetime = Field(default_factory=utcnow, index=True)

    def is_vip(self, now: Optional[datetime] = None) -> bool:
        expires = as_utc(self.vip_expires_at)
        if expires is None:
            return False
        return expires > (now or utcnow())
