# dropsbot/models/__init__.py
# Central import surface for SQLModel table registration.
# Keeping these imports ensures init_db() sees all models and creates tables.

from .user import User, UserRole
from .user_stats import UserStats

# Drops
from .drop import Drop, UnlockedDrop

# Account generator
from .account_service import AccountService, AccountStock, StockStatus

from .announcement import Announcement, AnnouncementType

__all__ = [
    "User",
    "UserRole",
    "UserStats",
    "Drop",
    "UnlockedDrop",
    "AccountService",
    "AccountStock",
    "StockStatus",
    "Announcement",
    "AnnouncementType",
]
