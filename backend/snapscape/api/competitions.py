"""
Competition API routes
Public browsing, admin CRUD, leaderboard and results.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import delete, update
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from snapscape.core.database import get_session
from snapscape.core.dependencies import get_current_active_user, require_admin
from snapscape.models.competition import (
    Competition,
    CompetitionCreate,
    CompetitionResponse,
    CompetitionStatus,
    CompetitionUpdate,
)
from snapscape.models.notification import Notification
from snapscape.models.rating import Rating
from snapscape.models.result import Result, ResultResponse
from snapscape.models.submission import PhotoSubmission, SubmissionResponse, SubmissionStatus
from snapscape.models.user import User
from snapscape.services.image_store import CloudinaryImageStore, get_image_store
from snapscape.services.leaderboard import LeaderboardService, invalidate_leaderboard
from snapscape.services.results_service import ResultsService
from snapscape.services.status_updater import status_from_dates
from snapscape.services.submission_service import SubmissionService

logger = logging.getLogger(__name__)

router = APIRouter()


async def _get_competition(session: AsyncSession, competition_id: UUID) -> Competition:
    competition = await session.get(Competition, competition_id)
    if not competition:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Competition not found")
    return competition


@router.get("", response_model=list[CompetitionResponse])
async def list_competitions(
    status: Optional[CompetitionStatus] = None,
    session: AsyncSession = Depends(get_session),
):
    stmt = select(Competition)
    if status:
        stmt = stmt.where(Competition.status == status)
    result = await session.execute(stmt.order_by(Competition.start_date.desc()))
    return result.scalars().all()


@router.get("/{competition_id}", response_model=CompetitionResponse)
async def get_competition(competition_id: UUID, session: AsyncSession = Depends(get_session)):
    return await _get_competition(session, competition_id)


@router.post("", response_model=CompetitionResponse, status_code=status.HTTP_201_CREATED)
async def create_competition(
    data: CompetitionCreate,
    session: AsyncSession = Depends(get_session),
    admin: User = Depends(require_admin),
):
    """Create a competition (admin only). Its initial status follows its dates."""
    fields = data.model_dump(exclude_none=True)
    competition = Competition(
        **fields,
        status=status_from_dates(datetime.utcnow(), data.start_date, data.end_date, data.voting_end_date),
        created_by=admin.id,
    )
    session.add(competition)
    await session.commit()
    await session.refresh(competition)
    logger.info(f"Competition \"{competition.title}\" created by {admin.id}")
    return competition


@router.patch("/{competition_id}", response_model=CompetitionResponse)
async def update_competition(
    competition_id: UUID,
    data: CompetitionUpdate,
    session: AsyncSession = Depends(get_session),
    admin: User = Depends(require_admin),
):
    """
    Partial update (admin only). Setting a status without an explicit
    manual_status_override pins it so the automatic updater leaves it alone.
    """
    competition = await _get_competition(session, competition_id)
    updates = data.model_dump(exclude_unset=True)

    if "status" in updates and "manual_status_override" not in updates:
        updates["manual_status_override"] = True

    for field, value in updates.items():
        setattr(competition, field, value)

    if competition.end_date <= competition.start_date:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="End date must be after start date")
    if competition.voting_end_date <= competition.start_date:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Voting end date must be after start date")

    competition.updated_at = datetime.utcnow()
    await session.commit()
    await session.refresh(competition)
    await invalidate_leaderboard(competition_id)
    return competition


@router.delete("/{competition_id}")
async def delete_competition(
    competition_id: UUID,
    session: AsyncSession = Depends(get_session),
    image_store: CloudinaryImageStore = Depends(get_image_store),
    admin: User = Depends(require_admin),
):
    """
    Delete a competition with its submissions, ratings and results (admin only).
    Notifications about it are kept but lose their competition reference, and
    every submission's image is removed from the image store.
    """
    competition = await _get_competition(session, competition_id)

    result = await session.execute(
        select(PhotoSubmission.image_public_id).where(PhotoSubmission.competition_id == competition_id)
    )
    public_ids = [public_id for public_id in result.scalars().all() if public_id]

    await session.execute(delete(Rating).where(Rating.competition_id == competition_id))
    await session.execute(delete(Result).where(Result.competition_id == competition_id))
    await session.execute(delete(PhotoSubmission).where(PhotoSubmission.competition_id == competition_id))
    await session.execute(
        update(Notification)
        .where(Notification.related_competition_id == competition_id)
        .values(related_competition_id=None)
    )
    await session.delete(competition)
    await session.commit()

    for public_id in public_ids:
        await image_store.delete(public_id)

    await invalidate_leaderboard(competition_id)
    logger.info(f"Competition {competition_id} deleted by {admin.id} ({len(public_ids)} images removed)")
    return {"message": "Competition deleted", "submissions_deleted": len(public_ids)}


@router.get("/{competition_id}/submissions", response_model=list[SubmissionResponse])
async def list_competition_submissions(
    competition_id: UUID,
    status: Optional[SubmissionStatus] = None,
    current_user: User = Depends(get_current_active_user),
    session: AsyncSession = Depends(get_session),
):
    return await SubmissionService(session).list_competition_submissions(competition_id, current_user, status)


@router.get("/{competition_id}/leaderboard")
async def get_leaderboard(
    competition_id: UUID,
    limit: int = 10,
    session: AsyncSession = Depends(get_session),
):
    return await LeaderboardService(session).get_leaderboard(competition_id, limit)


@router.get("/{competition_id}/achievements", response_model=list[ResultResponse])
async def get_competition_results(competition_id: UUID, session: AsyncSession = Depends(get_session)):
    return await ResultsService(session).competition_results(competition_id)
