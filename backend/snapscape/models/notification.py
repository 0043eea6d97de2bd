"""
In-app notification and site settings models
"""
from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from sqlmodel import Field, SQLModel


class NotificationType(str, Enum):
    COMPETITION = "competition"
    BADGE = "badge"
    RESULT = "result"
    SYSTEM = "system"
    PHOTO_SUBMISSION = "photo_submission"


class Notification(SQLModel, table=True):
    __tablename__ = "notifications"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    user_id: UUID = Field(foreign_key="users.id", index=True)
    title: str = Field(max_length=200)
    message: str
    type: NotificationType = Field(default=NotificationType.SYSTEM)
    read: bool = Field(default=False, index=True)
    related_link: Optional[str] = None
    related_competition_id: Optional[UUID] = Field(default=None, foreign_key="competitions.id")
    related_photo_id: Optional[UUID] = None
    created_at: datetime = Field(default_factory=datetime.utcnow, index=True)


class NotificationResponse(SQLModel):
    id: UUID
    title: str
    message: str
    type: NotificationType
    read: bool
    related_link: Optional[str] = None
    related_competition_id: Optional[UUID] = None
    related_photo_id: Optional[UUID] = None
    created_at: datetime


class NotificationBroadcast(SQLModel):
    """Admin broadcast to every active user"""
    title: str = Field(min_length=1, max_length=200)
    message: str = Field(min_length=1)
    type: NotificationType = NotificationType.SYSTEM
    related_link: Optional[str] = None
    send_email: bool = False


# ============================================================================
# SETTINGS (singleton row)
# ============================================================================

class Setting(SQLModel, table=True):
    __tablename__ = "settings"

    id: int = Field(default=1, primary_key=True)
    allow_notification_deletion: bool = Field(default=True)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class SettingUpdate(SQLModel):
    allow_notification_deletion: Optional[bool] = None


class SettingResponse(SQLModel):
    allow_notification_deletion: bool
    updated_at: datetime
