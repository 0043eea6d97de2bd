"""
Rating API routes
Submit, list and withdraw 1-5 photo ratings during the voting phase.
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Request, Response, status
from sqlmodel.ext.asyncio.session import AsyncSession

from snapscape.core.database import get_session
from snapscape.core.dependencies import get_current_active_user
from snapscape.core.security import rate_limit_rating
from snapscape.models.rating import RatingCreate, RatingSubmitResponse
from snapscape.models.user import User
from snapscape.services.rating_service import RatingService

router = APIRouter()


@router.post("", response_model=RatingSubmitResponse)
@rate_limit_rating
async def submit_rating(
    request: Request,
    data: RatingCreate,
    response: Response,
    current_user: User = Depends(get_current_active_user),
    session: AsyncSession = Depends(get_session),
):
    """
    Rate a photo (or change an earlier rating)

    - One rating per user and photo; a repeat replaces the score
    - Own photos cannot be rated
    - Returns the photo's updated average and count
    - 201 for a new rating, 200 for an update
    """
    result = await RatingService(session).submit_rating(
        current_user.id, data.photo_id, data.score, data.comment
    )
    response.status_code = status.HTTP_201_CREATED if result["created"] else status.HTTP_200_OK
    return result


@router.get("/mine")
async def my_ratings(
    competition_id: Optional[UUID] = None,
    page: int = 1,
    limit: int = 20,
    current_user: User = Depends(get_current_active_user),
    session: AsyncSession = Depends(get_session),
):
    return await RatingService(session).list_user_ratings(current_user.id, competition_id, page, limit)


@router.delete("/{rating_id}")
async def delete_rating(
    rating_id: UUID,
    current_user: User = Depends(get_current_active_user),
    session: AsyncSession = Depends(get_session),
):
    return await RatingService(session).delete_rating(current_user.id, rating_id)
