"""
Notification API routes
In-app notification inbox for the authenticated user.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import func, update
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from snapscape.core.database import get_session
from snapscape.core.dependencies import get_current_active_user
from snapscape.models.notification import Notification, NotificationResponse
from snapscape.models.user import User
from snapscape.api.settings import get_or_create_settings

router = APIRouter()


async def _own_notification(session: AsyncSession, notification_id: UUID, user: User) -> Notification:
    notification = await session.get(Notification, notification_id)
    if not notification or notification.user_id != user.id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found")
    return notification


@router.get("")
async def list_notifications(
    unread_only: bool = False,
    page: int = 1,
    limit: int = 20,
    current_user: User = Depends(get_current_active_user),
    session: AsyncSession = Depends(get_session),
):
    page = max(page, 1)
    limit = max(1, min(limit, 100))

    stmt = select(Notification).where(Notification.user_id == current_user.id)
    if unread_only:
        stmt = stmt.where(Notification.read == False)
    result = await session.execute(
        stmt.order_by(Notification.created_at.desc()).offset((page - 1) * limit).limit(limit)
    )

    unread = await session.execute(
        select(func.count(Notification.id)).where(
            Notification.user_id == current_user.id,
            Notification.read == False
        )
    )

    return {
        "notifications": [NotificationResponse.model_validate(n) for n in result.scalars().all()],
        "unread_count": unread.scalar_one(),
        "page": page,
        "limit": limit,
    }


@router.patch("/{notification_id}/read", response_model=NotificationResponse)
async def mark_read(
    notification_id: UUID,
    current_user: User = Depends(get_current_active_user),
    session: AsyncSession = Depends(get_session),
):
    notification = await _own_notification(session, notification_id, current_user)
    notification.read = True
    await session.commit()
    return notification


@router.patch("/read-all")
async def mark_all_read(
    current_user: User = Depends(get_current_active_user),
    session: AsyncSession = Depends(get_session),
):
    result = await session.execute(
        update(Notification)
        .where(Notification.user_id == current_user.id, Notification.read == False)
        .values(read=True)
    )
    await session.commit()
    return {"updated": result.rowcount}


@router.delete("/{notification_id}")
async def delete_notification(
    notification_id: UUID,
    current_user: User = Depends(get_current_active_user),
    session: AsyncSession = Depends(get_session),
):
    """Users may delete their notifications unless an admin has disabled it site-wide."""
    site_settings = await get_or_create_settings(session)
    if not site_settings.allow_notification_deletion and not current_user.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Notification deletion is disabled")

    notification = await _own_notification(session, notification_id, current_user)
    await session.delete(notification)
    await session.commit()
    return {"message": "Notification deleted"}
