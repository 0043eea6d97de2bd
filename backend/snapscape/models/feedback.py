"""
Feedback and contact message models
"""
from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import EmailStr
from sqlalchemy import CheckConstraint
from sqlmodel import Field, SQLModel


class FeedbackCategory(str, Enum):
    GENERAL = "general"
    BUG = "bug"
    FEATURE_REQUEST = "feature_request"
    IMPROVEMENT = "improvement"
    OTHER = "other"


class FeedbackStatus(str, Enum):
    NEW = "new"
    REVIEWED = "reviewed"
    RESOLVED = "resolved"
    CLOSED = "closed"


class ContactCategory(str, Enum):
    GENERAL = "general"
    SUPPORT = "support"
    PARTNERSHIP = "partnership"
    MEDIA = "media"
    FEEDBACK = "feedback"
    OTHER = "other"


class ContactStatus(str, Enum):
    NEW = "new"
    REVIEWED = "reviewed"
    RESPONDED = "responded"
    CLOSED = "closed"


# ============================================================================
# FEEDBACK
# ============================================================================

class Feedback(SQLModel, table=True):
    __tablename__ = "feedback"
    __table_args__ = (
        CheckConstraint("rating BETWEEN 1 AND 5", name="ck_feedback_rating"),
    )

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    user_id: UUID = Field(foreign_key="users.id", index=True)
    rating: int
    title: str = Field(max_length=200)
    feedback: str = Field(max_length=2000)
    category: FeedbackCategory = Field(default=FeedbackCategory.GENERAL)
    is_anonymous: bool = Field(default=False)
    status: FeedbackStatus = Field(default=FeedbackStatus.NEW, index=True)
    admin_response: Optional[str] = Field(default=None, max_length=1000)
    admin_response_date: Optional[datetime] = None
    admin_user_id: Optional[UUID] = Field(default=None, foreign_key="users.id")
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class FeedbackCreate(SQLModel):
    rating: int = Field(ge=1, le=5)
    title: str = Field(min_length=1, max_length=200)
    feedback: str = Field(min_length=1, max_length=2000)
    category: FeedbackCategory = FeedbackCategory.GENERAL
    is_anonymous: bool = False


class FeedbackRespond(SQLModel):
    status: Optional[FeedbackStatus] = None
    admin_response: Optional[str] = Field(default=None, max_length=1000)


class FeedbackResponse(SQLModel):
    id: UUID
    user_id: Optional[UUID] = None
    rating: int
    title: str
    feedback: str
    category: FeedbackCategory
    is_anonymous: bool
    status: FeedbackStatus
    admin_response: Optional[str] = None
    admin_response_date: Optional[datetime] = None
    created_at: datetime


# ============================================================================
# CONTACT
# ============================================================================

class ContactMessage(SQLModel, table=True):
    __tablename__ = "contact_messages"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    name: str = Field(max_length=100)
    email: str = Field(index=True, max_length=255)
    subject: str = Field(max_length=200)
    category: ContactCategory = Field(default=ContactCategory.GENERAL)
    message: str = Field(max_length=2000)
    status: ContactStatus = Field(default=ContactStatus.NEW, index=True)
    admin_response: Optional[str] = None
    admin_response_date: Optional[datetime] = None
    admin_user_id: Optional[UUID] = Field(default=None, foreign_key="users.id")
    ip_address: Optional[str] = Field(default=None, max_length=64)
    user_agent: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class ContactCreate(SQLModel):
    name: str = Field(min_length=1, max_length=100)
    email: EmailStr
    subject: str = Field(min_length=1, max_length=200)
    category: ContactCategory = ContactCategory.GENERAL
    message: str = Field(min_length=1, max_length=2000)
    recaptcha_token: Optional[str] = None


class ContactUpdate(SQLModel):
    status: Optional[ContactStatus] = None
    admin_response: Optional[str] = None


class ContactResponse(SQLModel):
    id: UUID
    name: str
    email: str
    subject: str
    category: ContactCategory
    message: str
    status: ContactStatus
    admin_response: Optional[str] = None
    created_at: datetime
