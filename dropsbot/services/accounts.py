from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import List, Optional

from sqlalchemy import update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlmodel import Session, func, or_, select

from ..models.drop import UnlockedDrop
from ..models.user import User
from ..models.user_stats import UserStats


# -------------------------
# Lookups
# -------------------------

def get_user_by_discord_id(session: Session, discord_id: str) -> Optional[User]:
    """
    The linked account for a Discord snowflake, or None if nobody linked it.
    """
    return session.exec(select(User).where(User.discord_id == str(discord_id)).limit(1)).first()


# -------------------------
# Daily bonus
# -------------------------

@dataclass(frozen=True)
class DailyBonusResult:
    """
    Outcome of a /daily claim. claimed=False means today's bonus was already taken.
    """
    username: str
    claimed: bool
    amount: int
    new_balance: int


def _ensure_stats_row(session: Session, user_id: int) -> None:
    """
    INSERT the user_stats row unless it already exists, without raising when a
    concurrent claim inserts it first.
    """
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        stmt = pg_insert(UserStats).values(user_id=user_id, total_bonuses_claimed=0).on_conflict_do_nothing(index_elements=["user_id"])
    elif dialect == "sqlite":
        stmt = sqlite_insert(UserStats).values(user_id=user_id, total_bonuses_claimed=0).on_conflict_do_nothing(index_elements=["user_id"])
    else:
        if session.get(UserStats, user_id) is None:
            session.add(UserStats(user_id=user_id))
            session.flush()
        return
    session.connection().execute(stmt)


def claim_daily_bonus(session: Session, discord_id: str, amount: int, today: date) -> Optional[DailyBonusResult]:
    """
    Credit the daily bonus at most once per calendar day.

    Runs inside the caller's transaction (DataStore.write). The claim itself is
    a conditional UPDATE on user_stats (last_bonus_claimed_date != today): of two
    concurrent claims exactly one matches the row, the other sees rowcount 0
    and reports "already claimed". On Postgres the users row is also locked up
    front so claims for one user run one after the other.

    Returns None when the Discord account isn't linked.
    """
    user_id = session.exec(
        select(User.id).where(User.discord_id == str(discord_id)).limit(1).with_for_update()
    ).first()
    if user_id is None:
        return None

    _ensure_stats_row(session, user_id)

    conn = session.connection()
    claimed = conn.execute(
        update(UserStats)
        .where(UserStats.user_id == user_id)
        .where(or_(UserStats.last_bonus_claimed_date == None, UserStats.last_bonus_claimed_date != today))  # noqa: E711
        .values(
            last_bonus_claimed_date=today,
            total_bonuses_claimed=func.coalesce(UserStats.total_bonuses_claimed, 0) + 1,
        )
    ).rowcount == 1

    if claimed:
        conn.execute(
            update(User)
            .where(User.id == user_id)
            .values(coin_balance=func.coalesce(User.coin_balance, 0) + amount)
        )

    username, balance = conn.execute(select(User.username, User.coin_balance).where(User.id == user_id)).one()
    return DailyBonusResult(
        username=username,
        claimed=claimed,
        amount=amount if claimed else 0,
        new_balance=int(balance or 0),
    )


# -------------------------
# Leaderboard
# -------------------------

class LeaderboardCategory(str, Enum):
    """
    The only sort keys /leaderboard accepts. Values are the slash-command choice values.
    """

    COINS = "coins"
    DROPS = "drops"
    UNLOCKED = "unlocked"

    @property
    def label(self) -> str:
        return _CATEGORY_LABELS[self]


_CATEGORY_LABELS = {
    LeaderboardCategory.COINS: "Coins",
    LeaderboardCategory.DROPS: "Drops Created",
    LeaderboardCategory.UNLOCKED: "Drops Unlocked",
}


@dataclass(frozen=True)
class LeaderboardRow:
    username: str
    coin_balance: int
    total_drops_created: int
    drops_unlocked: int
    role: str

    def value_for(self, category: LeaderboardCategory) -> int:
        if category is LeaderboardCategory.DROPS:
            return self.total_drops_created
        if category is LeaderboardCategory.UNLOCKED:
            return self.drops_unlocked
        return self.coin_balance


def leaderboard(session: Session, category: LeaderboardCategory, limit: int = 10) -> List[LeaderboardRow]:
    """
    Top active users for a category.

    The ORDER BY expression is picked from a fixed mapping keyed by the enum;
    nothing caller-supplied is ever spliced into SQL.
    """
    unlocked = (
        select(func.count(UnlockedDrop.id))
        .where(UnlockedDrop.user_id == User.id)
        .correlate(User)
        .scalar_subquery()
    )
    sort_columns = {
        LeaderboardCategory.COINS: User.coin_balance,
        LeaderboardCategory.DROPS: User.total_drops_created,
        LeaderboardCategory.UNLOCKED: unlocked,
    }
    order_by = sort_columns[LeaderboardCategory(category)]

    rows = session.exec(
        select(
            User.username,
            User.coin_balance,
            User.total_drops_created,
            unlocked.label("drops_unlocked"),
            User.role,
        )
        .where(User.status == "active")
        .order_by(order_by.desc(), User.id)
        .limit(limit)
    ).all()

    return [
        LeaderboardRow(
            username=r[0],
            coin_balance=int(r[1] or 0),
            total_drops_created=int(r[2] or 0),
            drops_unlocked=int(r[3] or 0),
            role=r[4] or "user",
        )
        for r in rows
    ]


__all__ = [
    "get_user_by_discord_id",
    "DailyBonusResult",
    "claim_daily_bonus",
    "LeaderboardCategory",
    "LeaderboardRow",
    "leaderboard",
]
