"""
Competition model for photo contests
"""
from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import field_validator, model_validator
from sqlmodel import Field, SQLModel


class CompetitionStatus(str, Enum):
    UPCOMING = "upcoming"
    ACTIVE = "active"
    VOTING = "voting"
    COMPLETED = "completed"
    ARCHIVED = "archived"


# Forward order of the lifecycle; automatic transitions never move left
STATUS_ORDER = [
    CompetitionStatus.UPCOMING,
    CompetitionStatus.ACTIVE,
    CompetitionStatus.VOTING,
    CompetitionStatus.COMPLETED,
    CompetitionStatus.ARCHIVED,
]

# Statuses whose scores are final
FINAL_STATUSES = (CompetitionStatus.COMPLETED, CompetitionStatus.ARCHIVED)


def to_naive_utc(value: datetime) -> datetime:
    """Stored datetimes are naive UTC."""
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class Competition(SQLModel, table=True):
    """Photo competition with submission and voting windows"""
    __tablename__ = "competitions"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    title: str = Field(index=True, max_length=100)
    description: str
    theme: str = Field(max_length=50)
    rules: str
    prizes: Optional[str] = None
    status: CompetitionStatus = Field(default=CompetitionStatus.UPCOMING, index=True)
    hide_other_submissions: bool = Field(default=False)
    start_date: datetime
    end_date: datetime
    voting_end_date: datetime
    submission_limit: int = Field(default=1, ge=1)
    voting_criteria: Optional[str] = None
    submission_format: str = Field(
        default="JPEG, minimum resolution of 700px x 700px, maximum size 25MB"
    )
    cover_image: Optional[str] = None
    manual_status_override: bool = Field(default=False)
    last_auto_status_update: Optional[datetime] = None
    created_by: Optional[UUID] = Field(default=None, foreign_key="users.id")
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class CompetitionResponse(SQLModel):
    """Competition response model"""
    id: UUID
    title: str
    description: str
    theme: str
    rules: str
    prizes: Optional[str] = None
    status: CompetitionStatus
    hide_other_submissions: bool
    start_date: datetime
    end_date: datetime
    voting_end_date: datetime
    submission_limit: int
    voting_criteria: Optional[str] = None
    submission_format: str
    cover_image: Optional[str] = None
    manual_status_override: bool
    last_auto_status_update: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class CompetitionCreate(SQLModel):
    """Competition creation model"""
    title: str = Field(min_length=1, max_length=100)
    description: str = Field(min_length=1)
    theme: str = Field(min_length=1, max_length=50)
    rules: str = Field(min_length=1)
    prizes: Optional[str] = None
    start_date: datetime
    end_date: datetime
    voting_end_date: datetime
    hide_other_submissions: bool = False
    submission_limit: int = Field(default=1, ge=1)
    voting_criteria: Optional[str] = None
    submission_format: Optional[str] = None
    cover_image: Optional[str] = None

    @field_validator("start_date", "end_date", "voting_end_date")
    @classmethod
    def normalize_dates(cls, v: datetime) -> datetime:
        return to_naive_utc(v)

    @model_validator(mode="after")
    def check_date_order(self):
        if self.end_date <= self.start_date:
            raise ValueError("End date must be after start date")
        if self.voting_end_date <= self.start_date:
            raise ValueError("Voting end date must be after start date")
        return self


class CompetitionUpdate(SQLModel):
    """Partial competition update (admin). Setting status pins it via manual_status_override."""
    title: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = None
    theme: Optional[str] = Field(default=None, max_length=50)
    rules: Optional[str] = None
    prizes: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    voting_end_date: Optional[datetime] = None
    hide_other_submissions: Optional[bool] = None
    submission_limit: Optional[int] = Field(default=None, ge=1)
    voting_criteria: Optional[str] = None
    submission_format: Optional[str] = None
    cover_image: Optional[str] = None
    status: Optional[CompetitionStatus] = None
    manual_status_override: Optional[bool] = None

    @field_validator("start_date", "end_date", "voting_end_date")
    @classmethod
    def normalize_dates(cls, v: Optional[datetime]) -> Optional[datetime]:
        return to_naive_utc(v) if v is not None else v


class StatusUpdateResult(SQLModel):
    competition_id: str
    title: str
    old_status: str
    new_status: str
    success: bool
    message: str
    error: Optional[str] = None


class StatusPreview(SQLModel):
    competition_id: str
    title: str
    current_status: CompetitionStatus
    expected_status: CompetitionStatus
    start_date: datetime
    end_date: datetime
    voting_end_date: datetime


class StatusUpdateRequest(SQLModel):
    bypass_manual_override: bool = False
