from __future__ import annotations

from datetime import date
from typing import Optional

from sqlmodel import SQLModel, Field


class UserStats(SQLModel, table=True):
    """
    Per-user counters kept alongside users.

    One row per user. The bot creates the row lazily on the first /daily claim.
    """

    __tablename__ = "user_stats"

    user_id: int = Field(foreign_key="users.id", primary_key=True)

    # UTC calendar day of the last /daily claim
    last_bonus_claimed_date: Optional[date] = Field(default=None)
    total_bonuses_claimed: int = Field(default=0)
