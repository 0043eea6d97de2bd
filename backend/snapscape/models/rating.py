"""
Rating model: one 1-5 score per (user, photo)
"""
from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, UniqueConstraint
from sqlmodel import Field, SQLModel

MIN_SCORE = 1
MAX_SCORE = 5


class Rating(SQLModel, table=True):
    __tablename__ = "ratings"
    __table_args__ = (
        UniqueConstraint("user_id", "photo_id", name="uq_rating_user_photo"),
        CheckConstraint("score BETWEEN 1 AND 5", name="ck_rating_score"),
    )

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    user_id: UUID = Field(foreign_key="users.id", index=True)
    photo_id: UUID = Field(foreign_key="photo_submissions.id", index=True)
    competition_id: UUID = Field(foreign_key="competitions.id", index=True)
    score: int
    comment: Optional[str] = Field(default=None, max_length=200)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class RatingCreate(SQLModel):
    photo_id: UUID
    score: int = Field(ge=MIN_SCORE, le=MAX_SCORE)
    comment: Optional[str] = Field(default=None, max_length=200)


class RatingResponse(SQLModel):
    id: UUID
    user_id: UUID
    photo_id: UUID
    competition_id: UUID
    score: int
    comment: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class RatingSubmitResponse(SQLModel):
    """Rating plus the photo's aggregates after the write"""
    rating: RatingResponse
    average_rating: float
    ratings_count: int
    total_rating_sum: int
    created: bool


class RatingCleanupStats(SQLModel):
    ratings_before: int
    orphaned_ratings_removed: int
    duplicate_ratings_removed: int
    ratings_after: int
    total_ratings_removed: int
    affected_users: list[str]
    affected_photo_count: int
