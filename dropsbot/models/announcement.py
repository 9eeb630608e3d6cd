from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from sqlmodel import SQLModel, Field

from .user import utcnow


class AnnouncementType(str, Enum):
    INFO = "info"
    WARNING = "warning"
    SUCCESS = "success"
    ERROR = "error"


class Announcement(SQLModel, table=True):
    """
    Site-wide announcement. expires_at=None means it never expires.
    """

    __tablename__ = "announcements"

    id: Optional[int] = Field(default=None, primary_key=True)

    title: str
    message: str = Field(default="")
    type: str = Field(default=AnnouncementType.INFO.value)

    is_active: bool = Field(default=True, index=True)
    expires_at: Optional[datetime] = Field(default=None, index=True)

    created_at: datetime = Field(default_factory=utcnow, index=True)
