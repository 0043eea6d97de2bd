"""
Feedback and contact API routes
Signed-in users leave feedback; anyone can send a contact message.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from snapscape.core.database import get_session
from snapscape.core.dependencies import get_current_active_user
from snapscape.core.security import rate_limit_contact
from snapscape.models.feedback import (
    ContactCreate,
    ContactMessage,
    Feedback,
    FeedbackCreate,
    FeedbackResponse,
)
from snapscape.models.user import User
from snapscape.services.recaptcha import verify_recaptcha

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/feedback", response_model=FeedbackResponse, status_code=status.HTTP_201_CREATED)
async def submit_feedback(
    data: FeedbackCreate,
    current_user: User = Depends(get_current_active_user),
    session: AsyncSession = Depends(get_session),
):
    feedback = Feedback(user_id=current_user.id, **data.model_dump())
    session.add(feedback)
    await session.commit()
    await session.refresh(feedback)
    return feedback


@router.get("/feedback/mine", response_model=list[FeedbackResponse])
async def my_feedback(
    current_user: User = Depends(get_current_active_user),
    session: AsyncSession = Depends(get_session),
):
    result = await session.execute(
        select(Feedback).where(Feedback.user_id == current_user.id).order_by(Feedback.created_at.desc())
    )
    return result.scalars().all()


@router.post("/contact", status_code=status.HTTP_201_CREATED)
@rate_limit_contact
async def submit_contact(
    request: Request,
    data: ContactCreate,
    session: AsyncSession = Depends(get_session),
):
    """
    Public contact form

    - Verifies reCAPTCHA (when configured)
    - Records client IP and user agent for abuse review
    """
    client_ip = request.client.host if request.client else None
    if not await verify_recaptcha(data.recaptcha_token, client_ip):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="reCAPTCHA verification failed"
        )

    message = ContactMessage(
        **data.model_dump(exclude={"recaptcha_token"}),
        ip_address=client_ip,
        user_agent=request.headers.get("user-agent"),
    )
    session.add(message)
    await session.commit()
    logger.info(f"Contact message {message.id} received ({message.category.value})")
    return {"message": "Thank you for contacting us. We will get back to you soon.", "id": str(message.id)}
