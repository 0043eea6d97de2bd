# backend/snapscape/api/admin.py
from datetime import datetime
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import or_, select, func
from sqlmodel.ext.asyncio.session import AsyncSession

from snapscape.core.database import get_session
from snapscape.core.dependencies import get_notification_service, require_admin
from snapscape.core.security import hash_password, validate_password_strength
from snapscape.models.feedback import (
    ContactMessage,
    ContactResponse,
    ContactStatus,
    ContactUpdate,
    Feedback,
    FeedbackRespond,
    FeedbackResponse,
    FeedbackStatus,
)
from snapscape.models.notification import NotificationBroadcast
from snapscape.models.rating import RatingCleanupStats
from snapscape.models.result import ResultResponse
from snapscape.models.user import AdminPasswordReset, AdminUserUpdate, User, UserResponse, UserRole
from snapscape.services.maintenance import RatingMaintenance
from snapscape.services.notification_service import NotificationService
from snapscape.services.results_service import ResultsService

router = APIRouter(prefix="/admin", tags=["Admin"])


async def _get_user(session: AsyncSession, user_id: UUID) -> User:
    user = await session.get(User, user_id)
    if not user:
        raise HTTPException(404, "User not found")
    return user


async def _admin_count(session: AsyncSession) -> int:
    result = await session.execute(
        select(func.count()).select_from(User).where(User.role == UserRole.ADMIN, User.is_active == True)
    )
    return result.scalar_one()


@router.get("/users", response_model=list[UserResponse])
async def list_users(
    search: Optional[str] = None,
    role: Optional[UserRole] = None,
    page: int = 1,
    limit: int = 50,
    session: AsyncSession = Depends(get_session),
    admin: User = Depends(require_admin)
):
    """List users, optionally filtered by name/email search and role (admin only)"""
    page = max(page, 1)
    limit = max(1, min(limit, 200))

    stmt = select(User)
    if search:
        pattern = f"%{search.strip().lower()}%"
        stmt = stmt.where(or_(func.lower(User.name).like(pattern), func.lower(User.email).like(pattern)))
    if role:
        stmt = stmt.where(User.role == role)

    result = await session.execute(
        stmt.order_by(User.created_at.desc()).offset((page - 1) * limit).limit(limit)
    )
    return result.scalars().all()


@router.get("/users/{user_id}")
async def get_user(
    user_id: UUID,
    session: AsyncSession = Depends(get_session),
    admin: User = Depends(require_admin)
):
    """User profile plus participation stats (admin only)"""
    user = await _get_user(session, user_id)
    stats = await ResultsService(session).user_stats(user.id)
    return {"user": UserResponse.model_validate(user), "stats": stats}


@router.patch("/users/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: UUID,
    data: AdminUserUpdate,
    session: AsyncSession = Depends(get_session),
    admin: User = Depends(require_admin)
):
    """Change a user's role or active flag (admin only)"""
    user = await _get_user(session, user_id)

    # Prevent demoting or deactivating the last admin
    losing_admin = user.is_admin and user.is_active and (
        (data.role is not None and data.role != UserRole.ADMIN) or data.is_active is False
    )
    if losing_admin and await _admin_count(session) <= 1:
        raise HTTPException(400, "Cannot demote or deactivate the last admin account")

    if data.role is not None:
        user.role = data.role
    if data.is_active is not None:
        user.is_active = data.is_active
    user.updated_at = datetime.utcnow()
    await session.commit()
    return user


@router.post("/users/{user_id}/reset-password")
async def reset_user_password(
    user_id: UUID,
    data: AdminPasswordReset,
    session: AsyncSession = Depends(get_session),
    admin: User = Depends(require_admin)
):
    """Set a new password for a user (admin only)"""
    is_valid, error_message = validate_password_strength(data.new_password)
    if not is_valid:
        raise HTTPException(400, error_message)

    user = await _get_user(session, user_id)
    user.password_hash = hash_password(data.new_password)
    user.updated_at = datetime.utcnow()
    await session.commit()
    return {"message": f"Password reset for {user.email}"}


@router.post("/cleanup-votes", response_model=RatingCleanupStats)
async def cleanup_votes(
    session: AsyncSession = Depends(get_session),
    admin: User = Depends(require_admin)
):
    """Remove orphaned and duplicate ratings, then fix affected aggregates (admin only)"""
    return await RatingMaintenance(session).cleanup_ratings()


@router.post("/recompute-ratings")
async def recompute_ratings(
    session: AsyncSession = Depends(get_session),
    admin: User = Depends(require_admin)
):
    """Rebuild every submission's rating aggregates (admin only)"""
    updated = await RatingMaintenance(session).recompute_all_aggregates()
    return {"submissions_updated": updated}


@router.post("/competitions/{competition_id}/sync-results", response_model=list[ResultResponse])
async def sync_results(
    competition_id: UUID,
    session: AsyncSession = Depends(get_session),
    notifications: NotificationService = Depends(get_notification_service),
    admin: User = Depends(require_admin)
):
    """Recompute the podium of a finished competition (admin only)"""
    service = ResultsService(session, notifications)
    await service.sync_competition_results(competition_id)
    return await service.competition_results(competition_id)


@router.post("/notifications/broadcast")
async def broadcast_notification(
    data: NotificationBroadcast,
    notifications: NotificationService = Depends(get_notification_service),
    admin: User = Depends(require_admin)
):
    """Send a notification to every active user (admin only)"""
    return await notifications.broadcast(
        data.title,
        data.message,
        type=data.type,
        related_link=data.related_link,
        send_email=data.send_email,
    )


@router.get("/feedback", response_model=list[FeedbackResponse])
async def list_feedback(
    status: Optional[FeedbackStatus] = None,
    session: AsyncSession = Depends(get_session),
    admin: User = Depends(require_admin)
):
    """List feedback; anonymous entries hide their author (admin only)"""
    stmt = select(Feedback)
    if status:
        stmt = stmt.where(Feedback.status == status)
    result = await session.execute(stmt.order_by(Feedback.created_at.desc()))

    items = []
    for feedback in result.scalars().all():
        item = FeedbackResponse.model_validate(feedback)
        if feedback.is_anonymous:
            item.user_id = None
        items.append(item)
    return items


@router.patch("/feedback/{feedback_id}", response_model=FeedbackResponse)
async def respond_feedback(
    feedback_id: UUID,
    data: FeedbackRespond,
    session: AsyncSession = Depends(get_session),
    admin: User = Depends(require_admin)
):
    feedback = await session.get(Feedback, feedback_id)
    if not feedback:
        raise HTTPException(404, "Feedback not found")

    if data.status is not None:
        feedback.status = data.status
    if data.admin_response is not None:
        feedback.admin_response = data.admin_response
        feedback.admin_response_date = datetime.utcnow()
        feedback.admin_user_id = admin.id
        if data.status is None:
            feedback.status = FeedbackStatus.REVIEWED
    feedback.updated_at = datetime.utcnow()
    await session.commit()
    return feedback


@router.get("/contacts", response_model=list[ContactResponse])
async def list_contacts(
    status: Optional[ContactStatus] = None,
    session: AsyncSession = Depends(get_session),
    admin: User = Depends(require_admin)
):
    stmt = select(ContactMessage)
    if status:
        stmt = stmt.where(ContactMessage.status == status)
    result = await session.execute(stmt.order_by(ContactMessage.created_at.desc()))
    return result.scalars().all()


@router.patch("/contacts/{contact_id}", response_model=ContactResponse)
async def update_contact(
    contact_id: UUID,
    data: ContactUpdate,
    session: AsyncSession = Depends(get_session),
    admin: User = Depends(require_admin)
):
    message = await session.get(ContactMessage, contact_id)
    if not message:
        raise HTTPException(404, "Contact message not found")

    if data.status is not None:
        message.status = data.status
    if data.admin_response is not None:
        message.admin_response = data.admin_response
        message.admin_response_date = datetime.utcnow()
        message.admin_user_id = admin.id
        if data.status is None:
            message.status = ContactStatus.RESPONDED
    message.updated_at = datetime.utcnow()
    await session.commit()
    return message
