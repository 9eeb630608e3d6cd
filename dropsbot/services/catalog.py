from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from sqlmodel import Session, func, or_, select

from ..models.account_service import AccountService, AccountStock, StockStatus
from ..models.announcement import Announcement
from ..models.drop import Drop
from ..models.user import utcnow


def _listed_drops():
    return select(Drop).where(Drop.is_visible == True, Drop.is_expired == False)  # noqa: E712


def latest_drops(session: Session, limit: int = 5) -> List[Drop]:
    return list(session.exec(_listed_drops().order_by(Drop.created_at.desc(), Drop.id.desc()).limit(limit)).all())


def search_drops(session: Session, query: str, limit: int = 5) -> List[Drop]:
    """
    Case-insensitive substring match on title, description and service.
    LIKE wildcards in the query are escaped so "%" matches a literal percent sign.
    """
    q = (query or "").strip()
    if not q:
        return []

    stmt = (
        _listed_drops()
        .where(
            or_(
                Drop.title.icontains(q, autoescape=True),
                Drop.description.icontains(q, autoescape=True),
                Drop.service.icontains(q, autoescape=True),
            )
        )
        .order_by(Drop.created_at.desc(), Drop.id.desc())
        .limit(limit)
    )
    return list(session.exec(stmt).all())


def top_drops(session: Session, limit: int = 5) -> List[Drop]:
    return list(session.exec(_listed_drops().order_by(Drop.unlock_count.desc(), Drop.id).limit(limit)).all())


@dataclass(frozen=True)
class ServiceStock:
    name: str
    description: Optional[str]
    stock_count: int


def active_services(session: Session, limit: int = 15) -> List[ServiceStock]:
    """
    Active account-generator services with their available stock, in one query.
    """
    stock = (
        select(func.count(AccountStock.id))
        .where(
            AccountStock.service_id == AccountService.id,
            AccountStock.status == StockStatus.AVAILABLE.value,
        )
        .correlate(AccountService)
        .scalar_subquery()
    )
    name = func.coalesce(AccountService.display_name, AccountService.service_name)

    rows = session.exec(
        select(name, AccountService.description, stock)
        .where(AccountService.is_active == True)  # noqa: E712
        .order_by(name)
        .limit(limit)
    ).all()

    return [ServiceStock(name=r[0], description=r[1], stock_count=int(r[2] or 0)) for r in rows]


def active_announcements(session: Session, now: Optional[datetime] = None, limit: int = 3) -> List[Announcement]:
    ts = now or utcnow()
    stmt = (
        select(Announcement)
        .where(Announcement.is_active == True)  # noqa: E712
        .where(or_(Announcement.expires_at == None, Announcement.expires_at > ts))  # noqa: E711
        .order_by(Announcement.created_at.desc(), Announcement.id.desc())
        .limit(limit)
    )
    return list(session.exec(stmt).all())


__all__ = [
    "latest_drops",
    "search_drops",
    "top_drops",
    "ServiceStock",
    "active_services",
    "active_announcements",
]
