"""
Photo submission model
"""
from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from sqlmodel import Field, SQLModel


class SubmissionStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class PhotoSubmission(SQLModel, table=True):
    """
    A photo entered into a competition.
    average_rating / ratings_count / total_rating_sum are derived from the
    ratings table and only ever written by the rating aggregator.
    """
    __tablename__ = "photo_submissions"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    user_id: UUID = Field(foreign_key="users.id", index=True)
    competition_id: UUID = Field(foreign_key="competitions.id", index=True)

    title: str = Field(max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    image_url: str
    thumbnail_url: str
    image_public_id: str = Field(max_length=255)

    status: SubmissionStatus = Field(default=SubmissionStatus.PENDING, index=True)
    archived: bool = Field(default=False)

    average_rating: float = Field(default=0)
    ratings_count: int = Field(default=0)
    total_rating_sum: int = Field(default=0)

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class SubmissionResponse(SQLModel):
    id: UUID
    user_id: UUID
    competition_id: UUID
    title: str
    description: Optional[str] = None
    image_url: str
    thumbnail_url: str
    status: SubmissionStatus
    archived: bool
    average_rating: float
    ratings_count: int
    total_rating_sum: int
    created_at: datetime


class SubmissionStatusUpdate(SQLModel):
    """Admin moderation request"""
    status: SubmissionStatus


class SubmissionArchiveUpdate(SQLModel):
    archived: bool = True
