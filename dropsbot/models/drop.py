from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlmodel import SQLModel, Field

from .user import utcnow


class Drop(SQLModel, table=True):
    """
    A piece of content posted on Drops Cloud that other users unlock with coins.

    owner_username is denormalized by the web app so listings don't need a join.
    """

    __tablename__ = "drops"

    id: Optional[int] = Field(default=None, primary_key=True)

    title: str
    description: Optional[str] = Field(default=None)
    service: Optional[str] = Field(default=None, index=True)

    cost: int = Field(default=0)
    unlock_count: int = Field(default=0, index=True)

    owner_id: Optional[int] = Field(default=None, foreign_key="users.id", index=True)
    owner_username: Optional[str] = Field(default=None)

    is_visible: bool = Field(default=True, index=True)
    is_expired: bool = Field(default=False, index=True)

    created_at: datetime = Field(default_factory=utcnow, index=True)


class UnlockedDrop(SQLModel, table=True):
    __tablename__ = "unlocked_drops"

    id: Optional[int] = Field(default=None, primary_key=True)

    user_id: int = Field(foreign_key="users.id", index=True)
    drop_id: int = Field(foreign_key="drops.id", index=True)

    unlocked_at: datetime = Field(default_factory=utcnow)
