"""
Result model: finalized top-3 placements of a competition
"""
from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, UniqueConstraint
from sqlmodel import Field, SQLModel

PRIZES = {1: "Gold Medal", 2: "Silver Medal", 3: "Bronze Medal"}


class Result(SQLModel, table=True):
    __tablename__ = "results"
    __table_args__ = (
        UniqueConstraint("competition_id", "position", name="uq_result_competition_position"),
        UniqueConstraint("competition_id", "photo_id", name="uq_result_competition_photo"),
        CheckConstraint("position BETWEEN 1 AND 3", name="ck_result_position"),
    )

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    competition_id: UUID = Field(foreign_key="competitions.id", index=True)
    user_id: UUID = Field(foreign_key="users.id", index=True)
    photo_id: UUID = Field(foreign_key="photo_submissions.id")
    position: int
    final_score: float = Field(default=0)
    prize: Optional[str] = Field(default=None, max_length=100)
    created_at: datetime = Field(default_factory=datetime.utcnow)


class ResultResponse(SQLModel):
    id: UUID
    competition_id: UUID
    competition_title: Optional[str] = None
    user_id: UUID
    user_name: Optional[str] = None
    photo_id: UUID
    photo_title: Optional[str] = None
    thumbnail_url: Optional[str] = None
    position: int
    final_score: float
    prize: Optional[str] = None
    created_at: datetime
