"""
Notification Service

Creates in-app notifications and sends the matching emails to users whose
notification preferences allow it. Email failures are logged, never raised.
"""

from datetime import datetime
from typing import Any, Dict, Optional
from uuid import UUID
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from snapscape.models.competition import CompetitionStatus
from snapscape.models.notification import Notification, NotificationType
from snapscape.models.result import PRIZES
from snapscape.models.submission import PhotoSubmission
from snapscape.models.user import User
from snapscape.services.email_service import EmailSender, notification_email

logger = logging.getLogger(__name__)

PLACE_LABELS = {1: "1st", 2: "2nd", 3: "3rd"}


class NotificationService:
    def __init__(self, db: AsyncSession, email_sender: Optional[EmailSender] = None):
        self.db = db
        self.email_sender = email_sender

    def create(
        self,
        user_id: UUID,
        title: str,
        message: str,
        type: NotificationType = NotificationType.SYSTEM,
        related_link: Optional[str] = None,
        related_competition_id: Optional[UUID] = None,
        related_photo_id: Optional[UUID] = None,
    ) -> Notification:
        """Stage a notification on the session. The caller commits."""
        notification = Notification(
            user_id=user_id,
            title=title,
            message=message,
            type=type,
            related_link=related_link,
            related_competition_id=related_competition_id,
            related_photo_id=related_photo_id,
        )
        self.db.add(notification)
        return notification

    async def _email(self, user: User, title: str, message: str, link: Optional[str]) -> bool:
        if not self.email_sender:
            return False
        subject, html = notification_email(title, message, link)
        return await self.email_sender.send(user.email, subject, html)

    async def notify_status_change(
        self,
        competition_id: UUID,
        competition_title: str,
        new_status: CompetitionStatus,
        voting_end_date: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """
        Voting opened: every active user is told (anyone may vote).
        Completed: participants of the competition are told.
        """
        link = f"/dashboard/competitions/{competition_id}"

        if new_status == CompetitionStatus.VOTING:
            title = f"Voting is open: {competition_title}"
            message = f'Voting has started for "{competition_title}". Rate your favourite photos!'
            if voting_end_date:
                message += f" Voting closes on {voting_end_date:%B %d, %Y %H:%M} UTC."
            stmt = select(User).where(User.is_active == True)
            preference = "notify_voting_open"
        elif new_status == CompetitionStatus.COMPLETED:
            title = f"Competition completed: {competition_title}"
            message = f'"{competition_title}" has ended. Check out the final results!'
            participant_ids = select(PhotoSubmission.user_id).where(
                PhotoSubmission.competition_id == competition_id
            )
            stmt = select(User).where(User.is_active == True, User.id.in_(participant_ids))
            preference = "notify_competition_completed"
        else:
            return {"notifications_created": 0, "emails_sent": 0, "errors": []}

        result = await self.db.execute(stmt)
        users = result.scalars().all()

        for user in users:
            self.create(
                user.id, title, message,
                type=NotificationType.COMPETITION,
                related_link=link,
                related_competition_id=competition_id,
            )
        await self.db.commit()

        emails_sent = 0
        errors = []
        for user in users:
            if not getattr(user, preference):
                continue
            if await self._email(user, title, message, link):
                emails_sent += 1
            elif self.email_sender and self.email_sender.configured:
                errors.append(f"Email to {user.email} failed")

        logger.info(
            f"Status change '{new_status.value}' for \"{competition_title}\": "
            f"{len(users)} notifications, {emails_sent} emails"
        )
        return {"notifications_created": len(users), "emails_sent": emails_sent, "errors": errors}

    async def notify_result(
        self,
        user: User,
        competition_id: UUID,
        competition_title: str,
        position: int,
        photo_id: Optional[UUID] = None,
    ) -> Notification:
        place = PLACE_LABELS.get(position, f"#{position}")
        title = f"You placed {place} in {competition_title}!"
        message = (
            f'Congratulations! Your photo finished {place} in "{competition_title}" '
            f"and earned the {PRIZES.get(position, 'podium')}."
        )
        link = "/dashboard/profile"
        notification = self.create(
            user.id, title, message,
            type=NotificationType.RESULT,
            related_link=link,
            related_competition_id=competition_id,
            related_photo_id=photo_id,
        )
        if user.notify_achievements:
            await self._email(user, title, message, link)
        return notification

    async def broadcast(
        self,
        title: str,
        message: str,
        type: NotificationType = NotificationType.SYSTEM,
        related_link: Optional[str] = None,
        send_email: bool = False,
    ) -> Dict[str, int]:
        result = await self.db.execute(select(User).where(User.is_active == True))
        users = result.scalars().all()

        for user in users:
            self.create(user.id, title, message, type=type, related_link=related_link)
        await self.db.commit()

        emails_sent = 0
        if send_email:
            for user in users:
                if await self._email(user, title, message, related_link):
                    emails_sent += 1

        logger.info(f"Broadcast '{title}' to {len(users)} users ({emails_sent} emails)")
        return {"notifications_created": len(users), "emails_sent": emails_sent}
