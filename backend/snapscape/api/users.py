"""
User API routes
Profile, notification preferences, password change, stats and achievements
of the authenticated user.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel.ext.asyncio.session import AsyncSession

from snapscape.core.database import get_session
from snapscape.core.dependencies import get_current_active_user
from snapscape.core.security import hash_password, validate_password_strength, verify_password
from snapscape.models.result import ResultResponse
from snapscape.models.submission import SubmissionStatus
from snapscape.models.user import (
    PREFERENCE_COLUMNS,
    NotificationPreferences,
    PasswordChange,
    User,
    UserProfileUpdate,
    UserResponse,
    preferences_of,
)
from snapscape.services.rating_service import RatingService
from snapscape.services.results_service import ResultsService
from snapscape.services.submission_service import SubmissionService

router = APIRouter()


@router.get("/profile", response_model=UserResponse)
async def get_profile(current_user: User = Depends(get_current_active_user)):
    return current_user


@router.put("/profile", response_model=UserResponse)
async def update_profile(
    data: UserProfileUpdate,
    current_user: User = Depends(get_current_active_user),
    session: AsyncSession = Depends(get_session),
):
    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(current_user, field, value)
    current_user.updated_at = datetime.utcnow()
    await session.commit()
    return current_user


@router.get("/notification-preferences", response_model=NotificationPreferences)
async def get_notification_preferences(current_user: User = Depends(get_current_active_user)):
    return preferences_of(current_user)


@router.put("/notification-preferences", response_model=NotificationPreferences)
async def update_notification_preferences(
    data: NotificationPreferences,
    current_user: User = Depends(get_current_active_user),
    session: AsyncSession = Depends(get_session),
):
    for field, value in data.model_dump(exclude_none=True).items():
        setattr(current_user, PREFERENCE_COLUMNS[field], value)
    current_user.updated_at = datetime.utcnow()
    await session.commit()
    return preferences_of(current_user)


@router.post("/change-password")
async def change_password(
    data: PasswordChange,
    current_user: User = Depends(get_current_active_user),
    session: AsyncSession = Depends(get_session),
):
    if not verify_password(data.current_password, current_user.password_hash):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Current password is incorrect")

    is_valid, error_message = validate_password_strength(data.new_password)
    if not is_valid:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=error_message)

    current_user.password_hash = hash_password(data.new_password)
    current_user.updated_at = datetime.utcnow()
    await session.commit()
    return {"message": "Password changed successfully"}


@router.get("/stats")
async def get_stats(
    current_user: User = Depends(get_current_active_user),
    session: AsyncSession = Depends(get_session),
):
    return await ResultsService(session).user_stats(current_user.id)


@router.get("/achievements", response_model=list[ResultResponse])
async def get_achievements(
    current_user: User = Depends(get_current_active_user),
    session: AsyncSession = Depends(get_session),
):
    return await ResultsService(session).user_achievements(current_user.id)


@router.get("/voted-photos")
async def get_voted_photos(
    competition_id: Optional[UUID] = None,
    page: int = 1,
    limit: int = 20,
    current_user: User = Depends(get_current_active_user),
    session: AsyncSession = Depends(get_session),
):
    """Photos the current user has rated."""
    return await RatingService(session).list_user_ratings(current_user.id, competition_id, page, limit)


@router.get("/submissions")
async def get_my_submissions(
    status: Optional[SubmissionStatus] = None,
    archived: Optional[bool] = None,
    page: int = 1,
    limit: int = 12,
    current_user: User = Depends(get_current_active_user),
    session: AsyncSession = Depends(get_session),
):
    return await SubmissionService(session).list_user_submissions(
        current_user.id, status, archived, page, limit
    )
