from __future__ import annotations

from enum import Enum
from typing import Optional

from sqlmodel import SQLModel, Field


class StockStatus(str, Enum):
    AVAILABLE = "available"
    CLAIMED = "claimed"
    INVALID = "invalid"


class AccountService(SQLModel, table=True):
    """
    A service offered by the account generator (e.g. a streaming platform).
    """

    __tablename__ = "account_services"

    id: Optional[int] = Field(default=None, primary_key=True)

    service_name: str = Field(index=True)
    display_name: Optional[str] = Field(default=None)
    description: Optional[str] = Field(default=None)

    is_active: bool = Field(default=True, index=True)


class AccountStock(SQLModel, table=True):
    """
    One generated account waiting to be claimed.
    """

    __tablename__ = "account_stock"

    id: Optional[int] = Field(default=None, primary_key=True)

    service_id: int = Field(foreign_key="account_services.id", index=True)
    status: str = Field(default=StockStatus.AVAILABLE.value, index=True)
